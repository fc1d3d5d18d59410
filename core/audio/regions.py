"""
core/audio/regions.py — Best-block search over an EnergyProfile.

Pure module: profile + search range in, Region out.

Theory
======
A searched marker is the contiguous block of
``span = ceil(target / window_sec)`` windows with the best score inside the
caller's search range:

  - rich "vocal":        score_w = e * (1 + v * vocal_weight)
  - rich "instrumental": score_w = e * penalty * instrumental_weight,
                         penalty = 1 - v when v > 0.5 else 1
    block score = mean(score_w); the block only competes when
    sum(e) > min_block_energy.
  - basic "loud" / "quiet": block score = sum(e), max or min wins.

Ties go to the earliest block. The winning start is then snapped back to the
nearest onset within the look-back (2 s) so clips begin on a hit, and the
final region is clamped into [0, duration].
"""

from __future__ import annotations

import math

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from core.audio.types import EnergyProfile, Region
from core.config import DEFAULT_CONFIG, MarkerConfig

SEARCH_MODES = ("instrumental", "vocal", "loud", "quiet")

_INDEX_EPS: float = 1e-9


def _to_index(seconds: float, window_sec: float) -> int:
    return int(math.floor(seconds / window_sec + _INDEX_EPS))


def window_span(target_sec: float, window_sec: float) -> int:
    """Number of windows a block of ``target_sec`` covers: ceil(t / w)."""
    return max(1, int(math.ceil(target_sec / window_sec - _INDEX_EPS)))


def clamp_region(start: float, target_sec: float, duration_sec: float) -> Region:
    """Place a ``target_sec`` region at ``start`` inside [0, duration].

    The region keeps its full length whenever the duration allows, sliding
    left if it would overrun the end; otherwise it is truncated to the whole
    song.
    """
    duration = max(0.0, duration_sec)
    begin = min(max(0.0, start), max(0.0, duration - target_sec))
    end = min(duration, begin + target_sec)
    return Region(start=begin, end=end)


def window_scores(profile: EnergyProfile, mode: str, *, config: MarkerConfig) -> np.ndarray:
    """Per-window rich-mode scores for ``mode`` ("vocal" or "instrumental")."""
    energy = profile.total_energy
    vocalness = profile.vocalness
    if mode == "vocal":
        return energy * (1.0 + vocalness * config.vocal_weight)
    penalty = np.where(vocalness > config.vocal_penalty_threshold, 1.0 - vocalness, 1.0)
    return energy * penalty * config.instrumental_weight


def snap_to_onset(profile: EnergyProfile, index: int, *, config: MarkerConfig) -> int:
    """Move ``index`` back to the nearest usable onset within the look-back.

    Scans ``index, index - 1, ...`` for ``floor(lookback / window_sec)``
    windows and returns the first window flagged as an onset whose energy is
    above ``onset_energy_floor``. Returns ``index`` unchanged when none is
    found.
    """
    lookback = _to_index(config.onset_lookback_sec, profile.window_sec)
    for k in range(lookback):
        idx = index - k
        if idx < 0:
            break
        if idx >= len(profile.windows):
            continue
        window = profile.windows[idx]
        if window.is_onset and window.total_energy > config.onset_energy_floor:
            return idx
    return index


def best_block_index(
    profile: EnergyProfile,
    start_idx: int,
    end_idx: int,
    span: int,
    mode: str,
    *,
    config: MarkerConfig,
) -> int:
    """Index of the best-scoring block start in ``[start_idx, limit)``.

    ``limit = min(end_idx, len(profile) - span)``. Returns ``start_idx`` when
    no candidate exists or, in rich modes, none clears the minimum energy.
    """
    n = len(profile)
    limit = min(end_idx, n - span)
    if limit <= start_idx:
        return start_idx

    energy = profile.total_energy
    # One row per candidate block; row i covers windows [i, i + span).
    energy_sums = sliding_window_view(energy, span)[start_idx:limit].sum(axis=1)

    if mode in ("loud", "quiet"):
        pick = np.argmax if mode == "loud" else np.argmin
        return start_idx + int(pick(energy_sums))

    scores = window_scores(profile, mode, config=config)
    avg_scores = sliding_window_view(scores, span)[start_idx:limit].sum(axis=1) / span
    eligible = energy_sums > config.min_block_energy
    if not np.any(eligible):
        return start_idx
    masked = np.where(eligible, avg_scores, -np.inf)
    # argmax returns the first maximum → earliest block wins ties
    return start_idx + int(np.argmax(masked))


def find_region(
    profile: EnergyProfile,
    search_start: float,
    search_end: float,
    target_sec: float,
    *,
    mode: str,
    config: MarkerConfig = DEFAULT_CONFIG,
) -> Region:
    """Find the best ``target_sec`` region inside [search_start, search_end].

    Args:
        profile:      EnergyProfile of the song.
        search_start: Earliest block start in seconds.
        search_end:   Latest block start bound in seconds (exclusive).
        target_sec:   Region length in seconds.
        mode:         "vocal" / "instrumental" (rich profiles) or
                      "loud" / "quiet" (any profile).
        config:       Marker configuration.

    Returns:
        Region of length ``target_sec`` (less only when the song is shorter),
        clamped into [0, profile.duration_sec].

    Raises:
        ValueError: Unknown mode, non-positive target, or a vocal-aware mode
                    on a basic-mode profile.
    """
    if mode not in SEARCH_MODES:
        raise ValueError(f"Unknown search mode {mode!r}, valid options: {list(SEARCH_MODES)}")
    if target_sec <= 0:
        raise ValueError(f"target_sec must be positive, got {target_sec}")
    if mode in ("vocal", "instrumental") and not profile.has_vocalness:
        raise ValueError(f"Search mode {mode!r} needs a rich-mode profile")

    window_sec = profile.window_sec
    start_idx = max(0, _to_index(max(0.0, search_start), window_sec))
    end_idx = _to_index(max(0.0, search_end), window_sec)
    span = window_span(target_sec, window_sec)

    if start_idx >= len(profile):
        # Search range lies past the analysed audio: anchor at the edge.
        return clamp_region(search_start, target_sec, profile.duration_sec)

    best = best_block_index(profile, start_idx, end_idx, span, mode, config=config)
    snapped = snap_to_onset(profile, best, config=config)
    return clamp_region(snapped * window_sec, target_sec, profile.duration_sec)
