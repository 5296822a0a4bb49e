from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


ENV_PREFIX = "VOICEHAND_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "openai/gpt-oss-120b"
    llm_api_key: str | None = None
    llm_temperature: float = 0.0
    interpreter_timeout_s: float = Field(default=30.0, gt=0)
    enforce_action_rotation: bool = True
    event_queue_size: int = Field(default=256, ge=1)
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = ConfigDict(extra="forbid")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``VOICEHAND_*`` variables (and a ``.env`` file).

        ``GROQ_API_KEY`` is accepted as the API key when
        ``VOICEHAND_LLM_API_KEY`` is not set.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            variable = f"{ENV_PREFIX}{name.upper()}"
            if variable in environ:
                values[name] = environ[variable]
        if "llm_api_key" not in values and environ.get("GROQ_API_KEY"):
            values["llm_api_key"] = environ["GROQ_API_KEY"]
        return cls.model_validate(values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("voicehand_backend").setLevel(level)
