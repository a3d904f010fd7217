"""Settings schema for the quote assistant.

Validates and coerces values gathered from defaults, ``pyproject.toml``, the
environment and programmatic overrides into one typed settings object.
"""

from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quote_assist.constants import (
    CACHE_KEY_MAX_CHARS,
    DEFAULT_MAX_TASK_SUGGESTIONS,
    DEFAULT_MODEL,
    DEFAULT_REQUESTS_PER_WINDOW,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    DEFAULT_WINDOW_SECONDS,
)

ENV_PREFIX = "QUOTE_ASSIST_"


class QuoteAssistSettings(BaseSettings):
    """Pydantic settings schema, read from ``QUOTE_ASSIST_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    # --- Generation ---

    api_key: str | None = Field(default=None, description="Gemini API key")
    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    top_k: int = Field(default=DEFAULT_TOP_K, ge=1)
    top_p: float = Field(default=DEFAULT_TOP_P, gt=0.0, le=1.0)

    # --- Governance ---

    requests_per_window: int = Field(
        default=DEFAULT_REQUESTS_PER_WINDOW,
        ge=1,
        description="Local request quota per rate window",
    )
    window_seconds: float = Field(default=DEFAULT_WINDOW_SECONDS, gt=0)
    cache_max_entries: int | None = Field(
        default=None,
        ge=1,
        description="LRU bound for the response cache; None never evicts",
    )
    cache_key_max_chars: int = Field(default=CACHE_KEY_MAX_CHARS, ge=1)

    # --- Recovery ---

    max_task_suggestions: int = Field(default=DEFAULT_MAX_TASK_SUGGESTIONS, ge=1)

    @model_validator(mode="after")
    def _strip_api_key(self) -> "QuoteAssistSettings":
        if self.api_key is not None and not self.api_key.strip():
            self.api_key = None
        return self

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        """Schema defaults, without reading the environment."""
        return {
            name: field.get_default(call_default_factory=True)
            for name, field in cls.model_fields.items()
        }

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()
