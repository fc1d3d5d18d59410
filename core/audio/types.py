"""
core/audio/types.py — Frozen data types for clue-marker analysis.

All types are frozen dataclasses — immutable value objects that can be
safely passed between layers.

Design principles:
    - No I/O, no state, no side effects.
    - Invariants are documented but only cheap ones are enforced at
      construction time — the rest is guaranteed by the creation sites
      (features.py, regions.py, markers.py).
    - `EnergyProfile.windows` is a tuple (immutable sequence); the numpy
      views used by the region search are computed properties.
    - `MarkerSet.as_dict()` emits the field names the game-set editor and
      its persisted records already use (introStart, clipStart, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """Decoded mono audio handed to the analysis core.

    Owned by the caller; the core only reads it.

    Invariants:
        samples.ndim == 1
        sample_rate > 0
        duration_sec == len(samples) / sample_rate
    """

    samples: np.ndarray
    """Mono float samples, nominal range [-1, 1]."""

    sample_rate: int
    """Sample rate in Hz."""

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.samples.ndim != 1:
            raise ValueError(f"samples must be 1-D, got shape {self.samples.shape}")

    @property
    def duration_sec(self) -> float:
        """Duration in seconds (samples / sample_rate)."""
        return float(len(self.samples)) / float(self.sample_rate)

    @classmethod
    def from_array(cls, y: np.ndarray, sample_rate: int) -> SampleBuffer:
        """Build a buffer from any array, keeping only the first channel.

        Multi-channel arrays are expected as (channels, samples), which is
        what librosa returns with ``mono=False``.
        """
        arr = np.asarray(y, dtype=np.float32)
        if arr.ndim > 1:
            arr = arr[0]
        return cls(samples=arr, sample_rate=int(sample_rate))


@dataclass(frozen=True)
class EnergyWindow:
    """One fixed-width analysis window of an EnergyProfile.

    Invariants:
        total_energy >= 0
        vocal_energy is None  <=> vocalness is None  (basic mode)
    """

    index: int
    start_sec: float
    total_energy: float
    """Full-band RMS of the window."""

    is_onset: bool
    """True when total_energy rose by more than the onset threshold."""

    vocal_energy: float | None = None
    """RMS of the vocal-band filtered signal. None in basic mode."""

    vocalness: float | None = None
    """vocal_energy / total_energy, 0.0 for near-silent windows. None in
    basic mode. Not clamped to 1.0."""


@dataclass(frozen=True)
class EnergyProfile:
    """Windowed energy profile of one song.

    Invariants:
        len(windows) == floor(duration_sec / window_sec)
        windows[i].index == i, contiguous and ordered by time
        mode in {"basic", "rich"}
    """

    windows: tuple[EnergyWindow, ...]
    window_sec: float
    duration_sec: float
    mode: str

    def __len__(self) -> int:
        return len(self.windows)

    @property
    def has_vocalness(self) -> bool:
        return self.mode == "rich"

    @property
    def total_energy(self) -> np.ndarray:
        return np.array([w.total_energy for w in self.windows], dtype=np.float64)

    @property
    def vocalness(self) -> np.ndarray:
        """Per-window vocalness; zeros for a basic-mode profile."""
        return np.array([w.vocalness or 0.0 for w in self.windows], dtype=np.float64)

    @property
    def onsets(self) -> np.ndarray:
        return np.array([w.is_onset for w in self.windows], dtype=bool)


@dataclass(frozen=True)
class Region:
    """A {start, end} time span in seconds.

    Invariants:
        0 <= start <= end
        end <= song duration (guaranteed by regions.clamp_region)
    """

    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start < 0.0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")

    @property
    def length(self) -> float:
        return self.end - self.start

    def overlaps(self, start: float, end: float) -> bool:
        """True when this region shares any time with [start, end)."""
        return self.start < end and start < self.end


@dataclass(frozen=True)
class MarkerSet:
    """The four auto-proposed clue markers for one song.

    `interlude1` is the "main clip", `interlude2` the "hint" and `vocal`
    the "bonus" clue in the editor's vocabulary.
    """

    song_id: str
    intro: Region
    interlude1: Region
    interlude2: Region
    vocal: Region
    mode: str = "rich"
    """Analysis mode that produced the markers ("rich" or "basic")."""

    is_auto_marked: bool = True
    is_manually_edited: bool = False
    is_configured: bool = True

    def as_dict(self) -> dict[str, Any]:
        """Serialise with the game-set record field names."""
        return {
            "songId": self.song_id,
            "introStart": round(self.intro.start, 3),
            "introEnd": round(self.intro.end, 3),
            "clipStart": round(self.interlude1.start, 3),
            "clipEnd": round(self.interlude1.end, 3),
            "hintStart": round(self.interlude2.start, 3),
            "hintEnd": round(self.interlude2.end, 3),
            "bonusStart": round(self.vocal.start, 3),
            "bonusEnd": round(self.vocal.end, 3),
            "isAutoMarked": self.is_auto_marked,
            "isManuallyEdited": self.is_manually_edited,
            "isConfigured": self.is_configured,
        }
