"""Script Doctor: rewrite a scene according to a director's note."""

from loguru import logger

from .base import BaseAgent
from ..config import GenerationConfig
from ..llm import TextGenerator
from ..models.script_state import Character
from ..prompts import build_refine_prompt


class ScriptDoctor(BaseAgent):
    stage = "refine"
    failure_message = "AI refinement failed, please retry."

    def __init__(self, client: TextGenerator, config: GenerationConfig):
        super().__init__("ScriptDoctor", client, config)

    async def refine(
        self,
        content: str,
        instruction: str,
        style_dna: str,
        characters: list[Character],
    ) -> str:
        # Never returns less than it was given: empty answers keep the original.
        if not instruction.strip():
            return content
        prompt = build_refine_prompt(
            content, instruction, style_dna, characters, self.language_for(content)
        )
        revised = await self.call(prompt)
        if not revised:
            logger.warning(f"{self.name}: empty rewrite, keeping the original text")
            return content
        return revised
