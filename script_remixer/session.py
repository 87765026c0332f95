"""Save and restore a workflow session between CLI invocations."""

import json
from pathlib import Path

from loguru import logger

from .models.script_state import ChapterStatus, GenerationStage, ScriptState

# A session saved mid-call cannot resume the call itself.
_INTERRUPTED_STAGES = {
    GenerationStage.STYLE_ANALYZING: GenerationStage.STYLE_INPUT,
    GenerationStage.BLUEPRINT_ANALYZING: GenerationStage.BLUEPRINT_INPUT,
}


def save_session(state: ScriptState, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
    logger.debug(f"Session saved to {path}")


def load_session(path: Path) -> ScriptState:
    with open(path, "r", encoding="utf-8") as f:
        state = ScriptState.from_dict(json.load(f))

    if state.stage.is_busy:
        rolled_back = _INTERRUPTED_STAGES[state.stage]
        logger.warning(f"Session was saved during {state.stage.value}, resuming at {rolled_back.value}")
        state.stage = rolled_back

    for chapter in state.chapters:
        if chapter.status is ChapterStatus.GENERATING:
            logger.warning(f"Chapter {chapter.id} was interrupted while generating, marking as error")
            chapter.status = ChapterStatus.ERROR

    logger.debug(f"Session loaded from {path} ({state.stage.value}, {len(state.chapters)} chapters)")
    return state
