"""
core/audio/_preset_loader.py — Load MarkerConfig presets from bundled YAML.

Uses importlib.resources (stdlib) to read YAML files bundled in the
core/audio/presets/ package. Results are cached in a module-level dict so
each YAML file is parsed only once per process.
"""

from __future__ import annotations

import importlib.resources
from typing import Any

import yaml  # PyYAML

from core.config import MarkerConfig

# ---------------------------------------------------------------------------
# Preset name → YAML filename mapping
# ---------------------------------------------------------------------------

_PRESET_FILE_MAP: dict[str, str] = {
    "film song": "film_song.yaml",
    "pop single": "pop_single.yaml",
}

DEFAULT_PRESET: str = "film song"

_CACHE: dict[str, MarkerConfig] = {}


def _normalise(name: str) -> str:
    return name.lower().strip().replace("_", " ").replace("-", " ")


def load_preset_data(name: str) -> dict[str, Any]:
    """Return the raw parsed YAML mapping for a preset."""
    key = _normalise(name)
    filename = _PRESET_FILE_MAP.get(key)
    if filename is None:
        raise ValueError(f"Unknown preset {name!r}. Available: {available_presets()}")

    pkg = importlib.resources.files("core.audio.presets")
    text = (pkg / filename).read_text(encoding="utf-8")
    data: dict[str, Any] = yaml.safe_load(text) or {}
    return data


def load_preset(name: str = DEFAULT_PRESET) -> MarkerConfig:
    """Return the MarkerConfig for a named preset.

    Preset names are case-insensitive; underscores, hyphens and spaces are
    interchangeable ("film_song" == "Film Song").

    Args:
        name: Preset name, e.g. 'film song', 'pop-single'.

    Returns:
        MarkerConfig with the preset's overrides applied to the defaults.

    Raises:
        ValueError: If the preset is unknown or its values are invalid.
    """
    key = _normalise(name)
    if key in _CACHE:
        return _CACHE[key]

    config = MarkerConfig.from_dict(load_preset_data(name))
    _CACHE[key] = config
    return config


def available_presets() -> list[str]:
    """Return sorted list of all bundled preset names."""
    return sorted(_PRESET_FILE_MAP.keys())
