"""Project-file configuration from ``[tool.quote_assist]`` in pyproject.toml."""

from pathlib import Path
import tomllib
from typing import Any

from quote_assist.exceptions import ConfigurationError

TOOL_SECTION = "quote_assist"


class ConfigFileError(ConfigurationError):
    """Raised when a configuration file cannot be read or lacks a profile."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with the offending file and a message."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


def find_pyproject(start_dir: Path | None = None) -> Path | None:
    """Nearest pyproject.toml at or above `start_dir` (default: cwd)."""
    current = Path(start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


class FileConfigLoader:
    """Reads the tool section, optionally narrowed to a named profile.

    Profiles live under ``[tool.quote_assist.profiles.<name>]`` and are
    layered over the base section.
    """

    def _read_section(self, project_root: Path | None) -> tuple[Path | None, dict[str, Any]]:
        path = find_pyproject(project_root)
        if path is None:
            return None, {}
        try:
            with path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e
        return path, dict(data.get("tool", {}).get(TOOL_SECTION, {}))

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Base section values, overlaid with `profile` when given.

        Raises:
            ConfigFileError: If the file is malformed or the profile is missing.
        """
        path, section = self._read_section(project_root)
        profiles = section.pop("profiles", {})
        if not profile:
            return section
        if path is None or profile not in profiles:
            raise ConfigFileError(
                path or Path("pyproject.toml"),
                f"Profile '{profile}' not found. Available profiles: {sorted(profiles)}",
            )
        return {**section, **profiles[profile]}

    def list_profiles(self, project_root: Path | None = None) -> list[str]:
        _, section = self._read_section(project_root)
        return sorted(section.get("profiles", {}))
