"""
Configuration dataclasses for the clue-marker engine.

These immutable config objects hold every tuned constant of the marker
heuristic (window sizes, scoring weights, thresholds, search windows), so the
analysis functions take a single ``config`` argument instead of a long list
of literals. Genre-specific variants live as YAML presets under
core/audio/presets/ and are loaded with ``core.audio.load_preset``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

# Modes understood by the extractor and the assembler.
ANALYSIS_MODES: frozenset[str] = frozenset({"basic", "rich"})


@dataclass(frozen=True)
class BandSpec:
    """
    Band-pass filter specification for vocal-formant isolation.

    Attributes:
        low_hz: Lower cutoff in Hz. Defaults to 300 Hz.
        high_hz: Upper cutoff in Hz. Defaults to 3400 Hz (telephone band),
            which puts the geometric centre near 1 kHz.
        order: Butterworth prototype order. A band-pass of order N has
            2N poles. Defaults to 2 (wide, gentle skirts).
        analysis_rate: Internal sample rate the filter runs at. Defaults to
            12 kHz, enough headroom above ``high_hz`` for envelope analysis.
    """

    low_hz: float = 300.0
    high_hz: float = 3400.0
    order: int = 2
    analysis_rate: int = 12_000

    def __post_init__(self) -> None:
        """Validate band edges against the analysis rate."""
        if self.low_hz <= 0:
            raise ValueError(f"low_hz must be positive, got {self.low_hz}")
        if self.high_hz <= self.low_hz:
            raise ValueError(
                f"high_hz ({self.high_hz}) must be greater than low_hz ({self.low_hz})"
            )
        if self.order <= 0:
            raise ValueError(f"order must be positive, got {self.order}")
        if self.high_hz >= self.analysis_rate / 2.0:
            raise ValueError(
                f"high_hz ({self.high_hz}) must be below the analysis Nyquist "
                f"({self.analysis_rate / 2.0})"
            )

    @property
    def center_hz(self) -> float:
        """Geometric centre frequency of the band."""
        return float((self.low_hz * self.high_hz) ** 0.5)


@dataclass(frozen=True)
class SearchWindow:
    """
    Search range rule for one searched marker.

    The search start is the maximum of every configured lower bound and the
    search end the minimum of every configured upper bound:

        start = max(prev_end + gap_sec, D * norm_start, floor_sec * scale)
        end   = min(D * norm_end, ceiling_sec * scale, D - tail_margin_sec,
                    start + span_sec)

    Unset (``None``) bounds are skipped. ``scale`` is the song-length factor
    from ``MarkerConfig.length_scale`` when ``scale_by_length`` is True, 1.0
    otherwise.

    Attributes:
        target_sec: Length of the region to return.
        gap_sec: Seconds to leave after the previous searched marker. None
            means the window is not anchored to a previous marker.
        norm_start: Lower bound as a fraction of the song duration.
        norm_end: Upper bound as a fraction of the song duration.
        floor_sec: Absolute lower bound in seconds.
        ceiling_sec: Absolute upper bound in seconds.
        tail_margin_sec: Keep the search end this far from the song end.
        span_sec: Maximum width of the search range after its start.
        scale_by_length: Multiply floor/ceiling by the song-length factor.
    """

    target_sec: float
    gap_sec: float | None = None
    norm_start: float = 0.0
    norm_end: float = 1.0
    floor_sec: float | None = None
    ceiling_sec: float | None = None
    tail_margin_sec: float | None = None
    span_sec: float | None = None
    scale_by_length: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.target_sec <= 0:
            raise ValueError(f"target_sec must be positive, got {self.target_sec}")
        if not 0.0 <= self.norm_start <= self.norm_end <= 1.0:
            raise ValueError(
                f"norm_start/norm_end must satisfy 0 <= start <= end <= 1, "
                f"got ({self.norm_start}, {self.norm_end})"
            )
        if self.gap_sec is not None and self.gap_sec < 0:
            raise ValueError(f"gap_sec must be non-negative, got {self.gap_sec}")
        if self.span_sec is not None and self.span_sec <= 0:
            raise ValueError(f"span_sec must be positive, got {self.span_sec}")

    def bounds(
        self,
        duration_sec: float,
        *,
        previous_end: float | None = None,
        scale: float = 1.0,
    ) -> tuple[float, float]:
        """Return the (search_start, search_end) pair in seconds for a song."""
        factor = scale if self.scale_by_length else 1.0

        lower = [duration_sec * self.norm_start]
        if self.gap_sec is not None and previous_end is not None:
            lower.append(previous_end + self.gap_sec)
        if self.floor_sec is not None:
            lower.append(self.floor_sec * factor)
        start = max(lower)

        upper = [duration_sec * self.norm_end]
        if self.ceiling_sec is not None:
            upper.append(self.ceiling_sec * factor)
        if self.tail_margin_sec is not None:
            upper.append(duration_sec - self.tail_margin_sec)
        if self.span_sec is not None:
            upper.append(start + self.span_sec)
        return start, min(upper)


def _rich_windows() -> dict[str, SearchWindow]:
    return {
        "interlude1": SearchWindow(
            target_sec=10.0,
            norm_start=0.22,
            norm_end=0.38,
            floor_sec=60.0,
            ceiling_sec=120.0,
            scale_by_length=True,
        ),
        "vocal": SearchWindow(
            target_sec=8.0,
            gap_sec=5.0,
            norm_start=0.38,
            norm_end=0.55,
            tail_margin_sec=30.0,
        ),
        "interlude2": SearchWindow(
            target_sec=10.0,
            gap_sec=10.0,
            norm_start=0.55,
            norm_end=0.75,
            tail_margin_sec=10.0,
        ),
    }


def _basic_windows() -> dict[str, SearchWindow]:
    return {
        "interlude1": SearchWindow(target_sec=10.0, floor_sec=45.0, ceiling_sec=90.0),
        "vocal": SearchWindow(target_sec=8.0, gap_sec=10.0, span_sec=30.0),
        "interlude2": SearchWindow(target_sec=10.0, gap_sec=10.0, span_sec=50.0),
    }


# Searched markers, in the order the assembler resolves them.
SEARCHED_MARKERS: tuple[str, ...] = ("interlude1", "vocal", "interlude2")


@dataclass(frozen=True)
class MarkerConfig:
    """
    Configuration for the auto-marking heuristic.

    Defaults are tuned for the verse / interlude / chorus arrangement of
    4-5 minute film songs. All values are internal defaults; callers that
    never pass a config get exactly this behaviour.

    Attributes:
        window_sec: Rich-mode profile window length. Defaults to 0.1 s.
        basic_window_sec: Basic-mode profile window length. Defaults to 0.5 s.
        band: Vocal-formant band-pass specification.
        silence_floor: Full-band RMS below which vocalness is forced to 0.
        onset_threshold: Energy rise between consecutive windows that
            flags an onset. Defaults to 0.03.
        onset_energy_floor: Minimum window energy for an onset to be used
            as a snap target. Defaults to 0.02.
        onset_lookback_sec: How far back a region start may snap. Defaults
            to 2 s.
        min_block_energy: Summed block energy a rich-mode candidate must
            exceed to compete. Defaults to 0.01.
        vocal_weight: Vocalness multiplier in vocal scoring. Defaults to 2.0.
        instrumental_weight: Multiplier in instrumental scoring. Defaults
            to 1.5.
        vocal_penalty_threshold: Vocalness above which instrumental scoring
            applies the ``1 - vocalness`` penalty. Defaults to 0.5.
        intro_sec: Length of the fixed intro marker. Defaults to 8 s.
        length_norm_sec: Song length that maps to scale 1.0. Defaults to 300 s.
        scale_min: Lower clamp of the song-length factor.
        scale_max: Upper clamp of the song-length factor.
        rich_windows: Search rules per searched marker in rich mode. Stored as
            a read-only mapping.
        basic_windows: Search rules per searched marker in basic mode.

    Example:
        >>> config = MarkerConfig(intro_sec=6.0)
        >>> markers = assemble_markers(profile, config=config)
    """

    window_sec: float = 0.1
    basic_window_sec: float = 0.5
    band: BandSpec = field(default_factory=BandSpec)
    silence_floor: float = 1e-3
    onset_threshold: float = 0.03
    onset_energy_floor: float = 0.02
    onset_lookback_sec: float = 2.0
    min_block_energy: float = 0.01
    vocal_weight: float = 2.0
    instrumental_weight: float = 1.5
    vocal_penalty_threshold: float = 0.5
    intro_sec: float = 8.0
    length_norm_sec: float = 300.0
    scale_min: float = 0.8
    scale_max: float = 1.2
    rich_windows: Mapping[str, SearchWindow] = field(default_factory=_rich_windows)
    basic_windows: Mapping[str, SearchWindow] = field(default_factory=_basic_windows)

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.window_sec <= 0:
            raise ValueError(f"window_sec must be positive, got {self.window_sec}")
        if self.basic_window_sec <= 0:
            raise ValueError(
                f"basic_window_sec must be positive, got {self.basic_window_sec}"
            )
        if self.onset_lookback_sec < 0:
            raise ValueError(
                f"onset_lookback_sec must be non-negative, got {self.onset_lookback_sec}"
            )
        if self.intro_sec <= 0:
            raise ValueError(f"intro_sec must be positive, got {self.intro_sec}")
        if self.length_norm_sec <= 0:
            raise ValueError(
                f"length_norm_sec must be positive, got {self.length_norm_sec}"
            )
        if self.scale_min > self.scale_max:
            raise ValueError(
                f"scale_min ({self.scale_min}) must not exceed scale_max ({self.scale_max})"
            )
        for label, windows in (("rich_windows", self.rich_windows), ("basic_windows", self.basic_windows)):
            missing = [name for name in SEARCHED_MARKERS if name not in windows]
            if missing:
                raise ValueError(f"{label} is missing search windows for {missing}")
        # Read-only views over private copies: instances are shared through the
        # preset cache and DEFAULT_CONFIG.
        object.__setattr__(self, "rich_windows", MappingProxyType(dict(self.rich_windows)))
        object.__setattr__(self, "basic_windows", MappingProxyType(dict(self.basic_windows)))

    def __hash__(self) -> int:
        return hash(
            tuple(
                tuple(sorted(value.items())) if isinstance(value, Mapping) else value
                for value in (getattr(self, f.name) for f in fields(self))
            )
        )

    def length_scale(self, duration_sec: float) -> float:
        """Song-length factor ``clamp(duration / length_norm_sec, min, max)``."""
        return min(self.scale_max, max(self.scale_min, duration_sec / self.length_norm_sec))

    def windows_for(self, mode: str) -> Mapping[str, SearchWindow]:
        """Return the search rules for an analysis mode."""
        if mode not in ANALYSIS_MODES:
            raise ValueError(f"Unknown mode {mode!r}, valid options: {sorted(ANALYSIS_MODES)}")
        return self.rich_windows if mode == "rich" else self.basic_windows

    def profile_window_sec(self, mode: str) -> float:
        """Profile window length for an analysis mode."""
        if mode not in ANALYSIS_MODES:
            raise ValueError(f"Unknown mode {mode!r}, valid options: {sorted(ANALYSIS_MODES)}")
        return self.window_sec if mode == "rich" else self.basic_window_sec

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MarkerConfig:
        """Build a config from a plain mapping (e.g. a parsed YAML preset).

        Keys that are absent keep their defaults. ``band`` is a mapping of
        BandSpec fields; ``rich_windows`` / ``basic_windows`` map a marker
        name to SearchWindow fields and override per marker.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown MarkerConfig keys: {unknown}")

        base = cls()
        overrides: dict[str, Any] = {}
        try:
            for key, value in data.items():
                if key == "band":
                    overrides["band"] = replace(base.band, **value)
                elif key in ("rich_windows", "basic_windows"):
                    merged = dict(getattr(base, key))
                    for name, spec in value.items():
                        if name in merged:
                            merged[name] = replace(merged[name], **spec)
                        else:
                            merged[name] = SearchWindow(**spec)
                    overrides[key] = merged
                else:
                    overrides[key] = value
        except TypeError as exc:
            raise ValueError(f"Invalid MarkerConfig value: {exc}") from exc
        return replace(base, **overrides)


# Pre-defined configurations

DEFAULT_CONFIG = MarkerConfig()
"""Film-song defaults: 0.1 s rich windows, 300-3400 Hz vocal band, 8 s intro."""
