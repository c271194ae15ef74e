"""Site configuration for Spook.

The configuration lives in ``config.toml`` at the project root. It is loaded once
per command invocation and stays immutable for the rest of the run.

Key names are matched loosely, so ``baseURL``, ``base_url`` and ``BaseURL`` all
refer to the same setting.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

CONFIG_FILENAME = "config.toml"

DEFAULT_PAGINATION = 10
DEFAULT_PUBLISH_DIR = "public"

# normalized key -> (attribute, expected type)
_FIELDS: dict[str, tuple[str, type]] = {
    "title": ("title", str),
    "description": ("description", str),
    "owner": ("owner", str),
    "baseurl": ("base_url", str),
    "pagination": ("pagination", int),
    "theme": ("theme", str),
    "publishdir": ("publish_dir", str),
}


class ConfigError(Exception):
    """Configuration is missing or invalid."""


def normalize_key(key: str) -> str:
    """Normalize a TOML key so that camelCase and snake_case spellings match.

    Examples:
        >>> normalize_key("baseURL")
        'baseurl'
        >>> normalize_key("publish_dir")
        'publishdir'
    """
    return key.lower().replace("_", "").replace("-", "")


@dataclass(frozen=True)
class Config:
    """Site-wide settings.

    Attributes:
        title: Website title.
        description: Website description.
        owner: Website owner, the default author of posts.
        base_url: Absolute URL (or absolute path) the site is published under.
        pagination: Number of posts per list page.
        theme: Directory name of the active theme under ``theme/``.
        publish_dir: Output directory for ``build``.
    """

    title: str = ""
    description: str = ""
    owner: str = ""
    base_url: str = ""
    pagination: int = DEFAULT_PAGINATION
    theme: str = ""
    publish_dir: str = DEFAULT_PUBLISH_DIR

    def theme_dir(self, project_root: Path) -> Path:
        return project_root / "theme" / self.theme

    def validate(self, check_theme: bool = True) -> None:
        """Check the settings every render depends on.

        Raises:
            ConfigError: If the base URL or (when requested) the theme is unusable.
        """
        if not self.base_url:
            raise ConfigError("No base URL set in configuration file")
        if not _is_absolute_url(self.base_url):
            raise ConfigError("Base URL must be an absolute URL path")
        if check_theme and not self.theme:
            raise ConfigError("No theme specified in configuration file")
        if self.pagination < 1:
            raise ConfigError("Pagination must be at least 1")

    def to_toml(self) -> dict[str, Any]:
        """Return the settings keyed the way ``config.toml`` spells them."""
        return {
            "title": self.title,
            "description": self.description,
            "owner": self.owner,
            "baseURL": self.base_url,
            "pagination": self.pagination,
            "theme": self.theme,
            "publishDir": self.publish_dir,
        }


def _is_absolute_url(value: str) -> bool:
    if value.startswith("/"):
        return True
    parts = urlsplit(value)
    return bool(parts.scheme and parts.netloc)


def config_from_mapping(data: dict[str, Any]) -> Config:
    """Build a Config from decoded TOML data.

    Unknown keys are ignored. An empty ``publishDir`` falls back to the default.

    Raises:
        ConfigError: If a recognized key holds a value of the wrong type.
    """
    values: dict[str, Any] = {}
    for key, value in data.items():
        entry = _FIELDS.get(normalize_key(key))
        if entry is None:
            continue
        attr, expected = entry
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ConfigError(
                f"Config key '{key}' must be of type {expected.__name__}"
            )
        values[attr] = value.strip() if isinstance(value, str) else value

    if not values.get("publish_dir"):
        values.pop("publish_dir", None)
    return Config(**values)


def load_config(project_root: Path, check_theme: bool = True) -> Config:
    """Load and validate ``config.toml`` from the project root.

    Args:
        project_root: Root directory of the site.
        check_theme: Whether a theme must be configured.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file is missing, undecodable, or invalid.
    """
    config_path = project_root / CONFIG_FILENAME
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"No {CONFIG_FILENAME} found in {project_root}") from None
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    config = config_from_mapping(data)
    config.validate(check_theme=check_theme)
    return config
