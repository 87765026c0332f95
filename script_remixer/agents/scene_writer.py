"""Scene Writer: produce the full screenplay text of one scene."""

from .base import BaseAgent
from ..config import GenerationConfig
from ..llm import TextGenerator
from ..models.script_state import Chapter, Character
from ..prompts import build_scene_prompt


class SceneWriter(BaseAgent):
    stage = "scene"
    failure_message = "Scene writing failed."

    def __init__(self, client: TextGenerator, config: GenerationConfig):
        super().__init__("SceneWriter", client, config)

    def build_prompt(
        self,
        index: int,
        chapters: list[Chapter],
        style_dna: str,
        outline: str,
        characters: list[Character],
    ) -> str:
        return build_scene_prompt(
            index,
            chapters,
            style_dna,
            outline,
            characters,
            self.language_for(outline),
            min_chars=self.config.scene_min_chars,
            max_chars=self.config.scene_max_chars,
        )

    async def write_scene(
        self,
        index: int,
        chapters: list[Chapter],
        style_dna: str,
        outline: str,
        characters: list[Character],
        entropy: float,
    ) -> str:
        """Write chapter ``chapters[index]`` using every earlier chapter as context.

        Returns "" when the backend answers with no text.
        """
        if not 0 <= index < len(chapters):
            raise IndexError(f"Chapter index {index} out of range (0..{len(chapters) - 1})")
        prompt = self.build_prompt(index, chapters, style_dna, outline, characters)
        return await self.call(prompt, temperature=entropy) or ""
