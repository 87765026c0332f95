"""Blueprint Architect: map the outline onto the style and break it into scenes."""

from loguru import logger

from .base import BaseAgent
from ..config import GenerationConfig
from ..errors import BackendError, PipelineError
from ..llm import TextGenerator
from ..models.script_state import Blueprint, Chapter, ChapterStatus, Character
from ..prompts import BLUEPRINT_SCHEMA, build_blueprint_prompt
from ..utils import parse_json_response

DEFAULT_FEASIBILITY = "Analysis complete."


class BlueprintArchitect(BaseAgent):
    stage = "blueprint"
    failure_message = "Blueprint generation failed, please retry."

    def __init__(self, client: TextGenerator, config: GenerationConfig):
        super().__init__("BlueprintArchitect", client, config)

    async def generate_blueprint(
        self,
        style_dna: str,
        outline: str,
        characters: list[Character],
        entropy: float,
    ) -> Blueprint:
        prompt = build_blueprint_prompt(
            style_dna, outline, characters, self.language_for(outline)
        )
        raw = await self.call(prompt, schema=BLUEPRINT_SCHEMA, temperature=entropy)
        try:
            return self.parse_blueprint(raw)
        except BackendError as e:
            logger.warning(f"{self.name}: {e}")
            raise PipelineError(stage=self.stage, detail=self.failure_message) from e

    def parse_blueprint(self, raw: str) -> Blueprint:
        """Turn the structured response into a Blueprint with chapters numbered 1..N."""
        try:
            parsed = parse_json_response(raw or "{}")
        except ValueError as e:
            raise BackendError(str(e), failure_kind="malformed") from e
        if not isinstance(parsed, dict):
            raise BackendError(
                f"Expected a JSON object, got {type(parsed).__name__}",
                failure_kind="malformed",
            )

        sequences = parsed.get("sequences") or []
        if not isinstance(sequences, list):
            logger.warning(
                f"Blueprint 'sequences' is a {type(sequences).__name__}, not a list; no scenes produced"
            )
            sequences = []

        stubs = [item for item in sequences if isinstance(item, dict)]
        if len(stubs) != len(sequences):
            logger.warning(f"Dropped {len(sequences) - len(stubs)} malformed scene stubs")

        chapters = [
            Chapter(
                id=position,
                title=str(item.get("title") or ""),
                summary=str(item.get("summary") or ""),
                content="",
                status=ChapterStatus.PENDING,
            )
            for position, item in enumerate(stubs, start=1)
        ]
        feasibility = parsed.get("feasibilityReport")
        if not isinstance(feasibility, str) or not feasibility.strip():
            feasibility = DEFAULT_FEASIBILITY

        logger.info(f"Blueprint parsed: {len(chapters)} scenes")
        return Blueprint(feasibility=feasibility, chapters=chapters)
