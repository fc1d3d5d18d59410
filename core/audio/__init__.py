"""
core/audio — Pure clue-marker analysis module.

Turns a decoded song into the four clue markers of a game set: intro,
interlude 1 ("clip"), vocal ("bonus") and interlude 2 ("hint").
All functions are pure: they take a SampleBuffer or EnergyProfile and return
frozen dataclasses. No file or network I/O — that lives in
ingestion/audio_loader.py and ingestion/auto_markers.py.

Architecture note:
    numpy and scipy are pure computation libraries (no I/O, no side effects).
    The band-pass renderer is always injected as a parameter so the search
    logic can be tested with a fake renderer.

Public API:
    Types:      SampleBuffer, EnergyWindow, EnergyProfile, Region, MarkerSet
    Features:   extract_energy_profile, extract_basic_profile, extract_rich_profile
    Filters:    BandPassRenderer, ScipyBandPassRenderer
    Search:     find_region
    Markers:    assemble_markers, analyze_buffer, intro_region
    Presets:    load_preset, available_presets
"""

from core.audio._preset_loader import available_presets, load_preset
from core.audio.features import (
    extract_basic_profile,
    extract_energy_profile,
    extract_rich_profile,
)
from core.audio.filters import BandPassRenderer, ScipyBandPassRenderer
from core.audio.markers import analyze_buffer, assemble_markers, intro_region
from core.audio.regions import find_region
from core.audio.types import EnergyProfile, EnergyWindow, MarkerSet, Region, SampleBuffer

__all__ = [
    # Types
    "SampleBuffer",
    "EnergyWindow",
    "EnergyProfile",
    "Region",
    "MarkerSet",
    # Features
    "extract_energy_profile",
    "extract_basic_profile",
    "extract_rich_profile",
    # Filters
    "BandPassRenderer",
    "ScipyBandPassRenderer",
    # Search + assembly
    "find_region",
    "assemble_markers",
    "analyze_buffer",
    "intro_region",
    # Presets
    "load_preset",
    "available_presets",
]
