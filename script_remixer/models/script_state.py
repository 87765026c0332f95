"""Data models for the remix workflow state."""

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum


class ChapterStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class Phase(str, Enum):
    STYLE = "style"
    BLUEPRINT = "blueprint"
    PRODUCTION = "production"


class GenerationStage(str, Enum):
    STYLE_INPUT = "STYLE_INPUT"
    STYLE_ANALYZING = "STYLE_ANALYZING"
    STYLE_CONFIRMED = "STYLE_CONFIRMED"
    BLUEPRINT_INPUT = "BLUEPRINT_INPUT"
    BLUEPRINT_ANALYZING = "BLUEPRINT_ANALYZING"
    BLUEPRINT_REVIEW = "BLUEPRINT_REVIEW"
    PRODUCTION = "PRODUCTION"

    @property
    def phase(self) -> Phase:
        return _STAGE_PHASES[self]

    @property
    def is_busy(self) -> bool:
        return self in (GenerationStage.STYLE_ANALYZING, GenerationStage.BLUEPRINT_ANALYZING)


# Every stage must appear here; tests enforce the mapping is exhaustive.
_STAGE_PHASES = {
    GenerationStage.STYLE_INPUT: Phase.STYLE,
    GenerationStage.STYLE_ANALYZING: Phase.STYLE,
    GenerationStage.STYLE_CONFIRMED: Phase.STYLE,
    GenerationStage.BLUEPRINT_INPUT: Phase.BLUEPRINT,
    GenerationStage.BLUEPRINT_ANALYZING: Phase.BLUEPRINT,
    GenerationStage.BLUEPRINT_REVIEW: Phase.BLUEPRINT,
    GenerationStage.PRODUCTION: Phase.PRODUCTION,
}


def new_character_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class Character:
    id: str = field(default_factory=new_character_id)
    name: str = ""
    archetype: str = ""
    description: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.name.strip())


@dataclass
class Chapter:
    id: int = 0
    title: str = ""
    summary: str = ""
    content: str = ""
    status: ChapterStatus = ChapterStatus.PENDING

    @property
    def has_content(self) -> bool:
        return bool(self.content.strip())


@dataclass
class Blueprint:
    feasibility: str = ""
    chapters: list[Chapter] = field(default_factory=list)


@dataclass
class ScriptState:
    # Inputs
    outline: str = ""
    custom_corpus: str = ""
    characters: list[Character] = field(default_factory=lambda: [Character()])
    entropy: float = 0.7
    selected_style: str = "WONG_KAR_WAI"

    # Learned context
    style_dna: str = ""
    feasibility_report: str = ""

    # Production
    stage: GenerationStage = GenerationStage.STYLE_INPUT
    chapters: list[Chapter] = field(default_factory=list)
    current_chapter_id: int | None = None
    error: str | None = None

    @property
    def valid_characters(self) -> list[Character]:
        return [c for c in self.characters if c.is_valid]

    def find_chapter(self, chapter_id: int) -> Chapter | None:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["stage"] = self.stage.value
        for ch in data["chapters"]:
            ch["status"] = ChapterStatus(ch["status"]).value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ScriptState":
        data = dict(data)
        data["characters"] = [Character(**c) for c in data.get("characters", [])]
        data["chapters"] = [
            Chapter(**{**c, "status": ChapterStatus(c.get("status", "pending"))})
            for c in data.get("chapters", [])
        ]
        data["stage"] = GenerationStage(data.get("stage", GenerationStage.STYLE_INPUT.value))
        return cls(**data)


@dataclass
class StoryBible:
    """Read-only view of the learned context shown next to the production set."""

    style_dna: str = ""
    feasibility_report: str = ""
    characters: list[Character] = field(default_factory=list)

    def to_markdown(self) -> str:
        parts = ["## Style DNA", self.style_dna or "(not extracted)"]
        parts += ["\n## Adaptation Strategy", self.feasibility_report or "(no blueprint yet)"]
        if self.characters:
            parts.append("\n## Characters")
            for c in self.characters:
                line = f"- **{c.name}**"
                if c.archetype:
                    line += f" ({c.archetype})"
                if c.description:
                    line += f": {c.description}"
                parts.append(line)
        return "\n".join(parts)
