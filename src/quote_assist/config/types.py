"""Resolved and frozen configuration values.

Configuration is resolved once, with the origin of every field recorded, and
then frozen into the object the runtime components receive.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Literal, NamedTuple

from .schema import ENV_PREFIX

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

_SECRET_FIELDS = frozenset({"api_key"})


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to the generator and governor."""

    api_key: str | None
    model: str
    temperature: float
    top_k: int
    top_p: float
    requests_per_window: int
    window_seconds: float
    cache_max_entries: int | None
    cache_key_max_chars: int
    max_task_suggestions: int

    @property
    def window_duration_ms(self) -> float:
        return self.window_seconds * 1000.0

    def __repr__(self) -> str:
        """Representation with the API key redacted."""
        shown = ", ".join(
            f"{f.name}={_display(f.name, getattr(self, f.name))!r}"
            for f in fields(self)
        )
        return f"FrozenConfig({shown})"

    __str__ = __repr__


def _display(name: str, value: Any) -> Any:
    if name in _SECRET_FIELDS and value is not None:
        return "[REDACTED]"
    return value


class ResolvedConfig(NamedTuple):
    """Merged configuration plus where each value came from."""

    api_key: str | None
    model: str
    temperature: float
    top_k: int
    top_p: float
    requests_per_window: int
    window_seconds: float
    cache_max_entries: int | None
    cache_key_max_chars: int
    max_task_suggestions: int

    origin: SourceMap

    def __repr__(self) -> str:
        """Representation with the API key redacted."""
        shown = ", ".join(
            f"{name}={_display(name, value)!r}"
            for name, value in self._asdict().items()
            if name != "origin"
        )
        return f"ResolvedConfig({shown}, origin={dict(self.origin)!r})"

    __str__ = __repr__

    def to_frozen(self) -> FrozenConfig:
        values = self._asdict()
        values.pop("origin")
        return FrozenConfig(**values)

    def with_overrides(self, **overrides: Any) -> "ResolvedConfig":
        """Copy with programmatic overrides applied; unknown names are ignored."""
        values = self._asdict()
        origin = dict(self.origin)
        for name, value in overrides.items():
            if name in values and name != "origin":
                values[name] = value
                origin[name] = "programmatic"
        values["origin"] = origin
        return ResolvedConfig(**values)

    def audit(self) -> str:
        """One line per field naming its origin; secrets are never shown."""
        lines = []
        for name, value in self._asdict().items():
            if name == "origin":
                continue
            origin = self.origin.get(name, "default")
            if name in _SECRET_FIELDS:
                shown = "None" if value is None else "<redacted>"
            elif origin == "env":
                shown = f"{ENV_PREFIX}{name.upper()}={value}"
            else:
                shown = str(value)
            lines.append(f"{name}: {origin}:{shown}")
        return "\n".join(lines)
