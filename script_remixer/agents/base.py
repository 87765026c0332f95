"""Base agent: routes prompts through the generation client and scopes failures."""

from typing import Any, Optional

from loguru import logger

from ..config import GenerationConfig
from ..errors import BackendError, ConfigurationError, PipelineError
from ..llm import TextGenerator
from ..utils import resolve_language


class BaseAgent:
    """Base class for the pipelines.

    Subclasses set ``stage`` and ``failure_message``; any backend or
    configuration failure during a call is re-raised as a PipelineError
    carrying them.
    """

    stage = "generation"
    failure_message = "Generation failed, please retry."

    def __init__(self, name: str, client: TextGenerator, config: GenerationConfig):
        self.name = name
        self.client = client
        self.config = config

    def language_for(self, sample: str) -> str:
        return resolve_language(self.config.language, sample)

    async def call(
        self,
        prompt: str,
        *,
        schema: Optional[dict[str, Any]] = None,
        temperature: Optional[float] = None,
    ) -> str:
        try:
            return await self.client.generate(
                prompt,
                schema=schema,
                temperature=temperature,
                action=f"{self.name}.{self.stage}",
            )
        except ConfigurationError as e:
            logger.error(f"{self.name}: {e}")
            raise PipelineError(
                stage=self.stage,
                detail=self.failure_message,
                hint=str(e),
            ) from e
        except BackendError as e:
            logger.warning(f"{self.name}: backend failure ({e.failure_kind}): {e}")
            raise PipelineError(stage=self.stage, detail=self.failure_message) from e
