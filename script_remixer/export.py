"""Flat text export of the produced screenplay."""

from datetime import date
from pathlib import Path

from loguru import logger

from .models.script_state import Chapter

NOT_GENERATED = "(not generated)"


def render_script(chapters: list[Chapter]) -> str:
    """Every chapter in ascending id order, ungenerated ones with a placeholder."""
    blocks = [
        f"\n\n=== Scene {c.id}: {c.title} ===\n\n{c.content if c.has_content else NOT_GENERATED}"
        for c in sorted(chapters, key=lambda c: c.id)
    ]
    return "\n".join(blocks)


def export_filename(style: str, day: date) -> str:
    return f"Script-Remix-{style}-{day.isoformat()}.txt"


def write_script(path: Path, chapters: list[Chapter]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_script(chapters), encoding="utf-8")
    logger.info(f"Script exported to {path} ({len(chapters)} scenes)")
    return path
