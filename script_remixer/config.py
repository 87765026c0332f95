import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
import yaml

ENTROPY_MIN = 0.2
ENTROPY_MAX = 1.5


def _env_api_key() -> str:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", "")


class GeminiConfig(BaseModel):
    api_key: str = Field(default_factory=_env_api_key)
    model: str = Field(default="gemini-2.5-flash")
    # None leaves sampling to the backend default
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    timeout_seconds: float = Field(default=120.0, gt=0)


class GenerationConfig(BaseModel):
    entropy: float = Field(default=0.7, ge=ENTROPY_MIN, le=ENTROPY_MAX)
    min_corpus_chars: int = Field(default=50, ge=0)
    max_corpus_chars: int = Field(default=20000, gt=0)
    batch_delay_seconds: float = Field(default=1.0, ge=0)
    scene_min_chars: int = Field(default=3000, gt=0)
    scene_max_chars: int = Field(default=4000, gt=0)
    language: Literal["auto", "zh", "en"] = Field(default="auto")


class AccessConfig(BaseModel):
    password: str = Field(default_factory=lambda: os.environ.get("APP_PASSWORD", ""))
    session_file: Path = Field(default=Path.home() / ".script_remixer" / "access")


class AppConfig(BaseModel):
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path, include_secrets: bool = False):
        exclude = None
        if not include_secrets:
            exclude = {"gemini": {"api_key"}, "access": {"password"}}
        data = self.model_dump(mode="json", exclude=exclude)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)
