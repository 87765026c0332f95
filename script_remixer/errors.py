"""Error taxonomy shared by the generation client, pipelines and workflow."""

from __future__ import annotations


class RemixerError(RuntimeError):
    """Base class for all script-remixer failures."""


class ConfigurationError(RemixerError):
    """Raised when the generation backend is not configured (missing credential)."""


class BackendError(RemixerError):
    """Raised when a generation call fails or returns an unusable response."""

    def __init__(self, message: str, *, failure_kind: str = "provider") -> None:
        super().__init__(message)
        self.failure_kind = failure_kind


class ValidationError(RemixerError):
    """Raised when user input is rejected before any backend call is made."""


class StageTransitionError(RemixerError):
    """Raised when a workflow trigger is fired from a stage that does not allow it."""


class PipelineError(RemixerError):
    """User-facing failure of one pipeline call, scoped to its stage."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.detail} ({self.hint})"
        return self.detail
