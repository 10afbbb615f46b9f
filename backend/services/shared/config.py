"""Settings for Slideshow Studio.

One YAML document (``backend/config/settings.yaml`` by default, or the file
named by ``SLIDESHOW_STUDIO_CONFIG``) read into a :class:`Config`. A ``.env``
at the project root is loaded into the process environment first, without
overriding variables that are already set.

Services never read a Config directly; ``create_app`` pulls the values it
needs and passes them to constructors.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "backend" / "config" / "settings.yaml"
CONFIG_ENV_VAR = "SLIDESHOW_STUDIO_CONFIG"

_MISSING = object()


def _read_mapping(path: Path) -> Dict[str, Any]:
    with path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a YAML mapping, got {type(data).__name__}")
    return data


class Config:
    """Read-only view over a settings file."""

    def __init__(self, config_path: str):
        self.path = Path(config_path)
        if not self.path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        self._data = _read_mapping(self.path)

        dotenv_file = PROJECT_ROOT / ".env"
        if dotenv_file.is_file():
            load_dotenv(dotenv_file, override=False)

    @classmethod
    def from_environment(cls) -> "Config":
        return cls(os.environ.get(CONFIG_ENV_VAR) or str(DEFAULT_CONFIG_PATH))

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"audio.max_upload_mb"``.

        Returns ``default`` when any segment is missing or the walk hits a
        non-mapping value before the last segment.
        """
        node: Any = self._data
        for part in key.split("."):
            node = node.get(part, _MISSING) if isinstance(node, dict) else _MISSING
            if node is _MISSING:
                return default
        return node

    def get_path(self, key: str) -> Path:
        """Dotted key as a :class:`Path`; ``KeyError`` if unset."""
        value = self.get(key)
        if value is None:
            raise KeyError(f"Config key not found: {key}")
        return Path(str(value))

    def get_env(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return os.environ.get(name, default)
