"""Style Analyst: distil a director's formal technique into a Style DNA report."""

from loguru import logger

from .base import BaseAgent
from ..config import GenerationConfig
from ..directors import DirectorStyle, get_director
from ..llm import TextGenerator
from ..prompts import build_style_prompt

INSUFFICIENT_CORPUS = (
    "Insufficient corpus. Paste more screenplay text or choose a preset director style."
)
EMPTY_REPORT = "Unable to extract a style from this corpus."


class StyleAnalyst(BaseAgent):
    stage = "style"
    failure_message = "Style extraction failed. Check the network connection or API key."

    def __init__(self, client: TextGenerator, config: GenerationConfig):
        super().__init__("StyleAnalyst", client, config)

    def reference_material(self, style: str, custom_corpus: str) -> str:
        """Custom style uses only the pasted corpus; presets append their sample."""
        director = get_director(style)
        if director.id is DirectorStyle.CUSTOM:
            return custom_corpus
        if custom_corpus:
            return custom_corpus + "\n\n" + director.sample_corpus
        return director.sample_corpus

    async def extract_style_dna(self, style: str, custom_corpus: str = "") -> str:
        material = self.reference_material(style, custom_corpus)
        if len(material) < self.config.min_corpus_chars:
            logger.info(
                f"Corpus too short ({len(material)} < {self.config.min_corpus_chars} chars), "
                "skipping style extraction"
            )
            return INSUFFICIENT_CORPUS

        material = material[: self.config.max_corpus_chars]
        prompt = build_style_prompt(material, self.language_for(material))
        report = await self.call(prompt)
        return report or EMPTY_REPORT
