from .script_state import (
    Blueprint,
    Chapter,
    ChapterStatus,
    Character,
    GenerationStage,
    Phase,
    ScriptState,
    StoryBible,
)

__all__ = [
    "Blueprint",
    "Chapter",
    "ChapterStatus",
    "Character",
    "GenerationStage",
    "Phase",
    "ScriptState",
    "StoryBible",
]
