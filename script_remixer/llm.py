"""Gemini generation client: one prompt in, generated text out."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from google import genai
from google.genai import types
from loguru import logger

from .config import GeminiConfig
from .errors import BackendError, ConfigurationError

SYSTEM_INSTRUCTION = """You are "Script-Remixer", an AI dedicated to the art of Screenwriting.
You respect the craft. You believe in "Show, Don't Tell".
You are an expert in Deconstruction and Style Transfer."""


class TextGenerator(Protocol):
    """Anything the pipelines can send a prompt to."""

    async def generate(
        self,
        prompt: str,
        *,
        schema: Optional[dict[str, Any]] = None,
        temperature: Optional[float] = None,
        action: str = "generate",
    ) -> str: ...


@dataclass
class CallLog:
    action: str = ""
    prompt_preview: str = ""
    response_preview: str = ""
    temperature: Optional[float] = None
    elapsed_seconds: float = 0.0


class GeminiClient:
    """Single-attempt async wrapper around ``google-genai``.

    With a ``schema`` the backend is asked for JSON matching it; the raw JSON
    text is still returned and parsing is left to the caller.
    """

    def __init__(self, config: GeminiConfig):
        self.config = config
        self.logs: list[CallLog] = []
        self._client: Optional[genai.Client] = None

    def _require_api_key(self) -> None:
        if not self.config.api_key.strip():
            raise ConfigurationError(
                "Gemini API key is missing. Set GEMINI_API_KEY or gemini.api_key in the config file."
            )

    @property
    def client(self) -> genai.Client:
        self._require_api_key()
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def _build_config(
        self, schema: Optional[dict[str, Any]], temperature: Optional[float]
    ) -> types.GenerateContentConfig:
        kwargs: dict[str, Any] = {"system_instruction": SYSTEM_INSTRUCTION}
        if temperature is None:
            temperature = self.config.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature
        if schema is not None:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = schema
        return types.GenerateContentConfig(**kwargs)

    async def generate(
        self,
        prompt: str,
        *,
        schema: Optional[dict[str, Any]] = None,
        temperature: Optional[float] = None,
        action: str = "generate",
    ) -> str:
        client = self.client
        config = self._build_config(schema, temperature)

        logger.debug(
            f"{action}: sending {len(prompt)} chars to {self.config.model} "
            f"(temperature={config.temperature}, structured={schema is not None})"
        )
        start = time.time()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.config.model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise BackendError(
                f"{action} timed out after {self.config.timeout_seconds:.0f}s",
                failure_kind="timeout",
            ) from e
        except Exception as e:
            logger.error(f"{action} failed: {e}")
            raise BackendError(f"{action} failed: {e}") from e

        text = response.text or ""
        self._log(action, prompt, text, config.temperature, time.time() - start)
        return text

    def _log(
        self,
        action: str,
        prompt: str,
        response: str,
        temperature: Optional[float],
        elapsed: float,
    ) -> None:
        logger.info(f"{action}: {len(response)} chars in {elapsed:.1f}s")
        self.logs.append(
            CallLog(
                action=action,
                prompt_preview=prompt[:200],
                response_preview=response[:200],
                temperature=temperature,
                elapsed_seconds=round(elapsed, 2),
            )
        )
