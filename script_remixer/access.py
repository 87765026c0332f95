"""Shared-secret gate in front of the workspace."""

import hmac
from pathlib import Path

from loguru import logger


class AccessGate:
    """Remembers a successful unlock in ``session_file``; no password means open access."""

    def __init__(self, password: str, session_file: Path):
        self.password = password
        self.session_file = session_file

    def _matches(self, attempt: str) -> bool:
        return hmac.compare_digest(attempt.encode("utf-8"), self.password.encode("utf-8"))

    def is_unlocked(self) -> bool:
        if not self.password:
            return True
        if not self.session_file.exists():
            return False
        stored = self.session_file.read_text(encoding="utf-8").strip()
        return self._matches(stored)

    def unlock(self, attempt: str) -> bool:
        if not self.password:
            return True
        if not self._matches(attempt):
            logger.warning("Access denied: incorrect access code")
            return False
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        self.session_file.write_text(attempt, encoding="utf-8")
        return True

    def lock(self) -> None:
        self.session_file.unlink(missing_ok=True)
