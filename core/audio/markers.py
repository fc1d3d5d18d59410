"""
core/audio/markers.py — Assemble the four clue markers from a profile.

Pure module: EnergyProfile in → MarkerSet out. Fetching and decoding live in
ingestion/auto_markers.py.

Song-structure template (film-song arrangement, rich mode):

    0 ─ intro (fixed 8 s)
        ... pallavi / anupallavi ...
    22-38 % ─ interlude 1   instrumental, 10 s   ("clip")
    38-55 % ─ charanam      vocal,         8 s   ("bonus")
    55-75 % ─ interlude 2   instrumental, 10 s   ("hint")

Each searched window starts after the previous marker's end plus a gap, so
interlude 1 → vocal → interlude 2 come out in time order for any
non-degenerate song. Basic-mode profiles use absolute-second windows and
"loud" scoring instead.
"""

from __future__ import annotations

from collections.abc import Callable

from core.audio.features import extract_energy_profile
from core.audio.filters import BandPassRenderer
from core.audio.regions import find_region
from core.audio.types import EnergyProfile, MarkerSet, Region, SampleBuffer
from core.config import DEFAULT_CONFIG, SEARCHED_MARKERS, MarkerConfig

# Search mode per searched marker, by profile mode
_SEARCH_MODES: dict[str, dict[str, str]] = {
    "rich": {"interlude1": "instrumental", "vocal": "vocal", "interlude2": "instrumental"},
    "basic": {"interlude1": "loud", "vocal": "loud", "interlude2": "loud"},
}


def intro_region(duration_sec: float, *, config: MarkerConfig = DEFAULT_CONFIG) -> Region:
    """The intro marker: always ``[0, min(duration, intro_sec)]``."""
    return Region(start=0.0, end=min(max(0.0, duration_sec), config.intro_sec))


def search_regions(
    profile: EnergyProfile,
    *,
    config: MarkerConfig = DEFAULT_CONFIG,
) -> dict[str, Region]:
    """Resolve interlude 1, vocal and interlude 2 in order.

    Returns:
        Dict with keys "interlude1", "vocal", "interlude2".
    """
    duration = profile.duration_sec
    windows = config.windows_for(profile.mode)
    modes = _SEARCH_MODES[profile.mode]
    scale = config.length_scale(duration)

    regions: dict[str, Region] = {}
    previous_end: float | None = None
    for name in SEARCHED_MARKERS:
        rule = windows[name]
        search_start, search_end = rule.bounds(duration, previous_end=previous_end, scale=scale)
        region = find_region(
            profile,
            search_start,
            search_end,
            rule.target_sec,
            mode=modes[name],
            config=config,
        )
        regions[name] = region
        previous_end = region.end
    return regions


def assemble_markers(
    profile: EnergyProfile,
    *,
    song_id: str = "",
    config: MarkerConfig = DEFAULT_CONFIG,
) -> MarkerSet:
    """Build the tagged MarkerSet for one analysed song.

    Args:
        profile: EnergyProfile from extract_energy_profile().
        song_id: Identifier copied into the result.
        config:  Marker configuration.

    Returns:
        MarkerSet with is_auto_marked=True, is_manually_edited=False,
        is_configured=True.
    """
    found = search_regions(profile, config=config)
    return MarkerSet(
        song_id=song_id,
        intro=intro_region(profile.duration_sec, config=config),
        interlude1=found["interlude1"],
        interlude2=found["interlude2"],
        vocal=found["vocal"],
        mode=profile.mode,
        is_auto_marked=True,
        is_manually_edited=False,
        is_configured=True,
    )


def analyze_buffer(
    buffer: SampleBuffer,
    *,
    song_id: str = "",
    config: MarkerConfig = DEFAULT_CONFIG,
    renderer: BandPassRenderer | None = None,
    on_fallback: Callable[[str], None] | None = None,
) -> MarkerSet:
    """Profile a decoded buffer and assemble its markers.

    Pipeline:
        1. extract_energy_profile(buffer) → EnergyProfile (rich or basic)
        2. assemble_markers(profile) → MarkerSet

    Args:
        buffer:      Decoded mono audio.
        song_id:     Identifier copied into the result.
        config:      Marker configuration.
        renderer:    Band-pass capability. None = basic mode.
        on_fallback: Forwarded to extract_energy_profile().

    Returns:
        MarkerSet for the buffer. Degenerate buffers yield edge-anchored
        regions, never an exception.
    """
    profile = extract_energy_profile(
        buffer,
        config=config,
        renderer=renderer,
        on_fallback=on_fallback,
    )
    return assemble_markers(profile, song_id=song_id, config=config)
