"""
core/audio/features.py — Windowed energy profiling of decoded songs.

All functions take a SampleBuffer and return an EnergyProfile. The band-pass
renderer is always injected as a parameter so this module is testable with a
fake renderer, and so callers decide whether the rich analysis is available.

Design:
    - Basic mode: full-band RMS per 0.5 s window, onset flags. No vocalness.
    - Rich mode: the song is rendered through a vocal-formant band-pass
      (300-3400 Hz) at 12 kHz, windows of 0.1 s are taken on the rendered
      signal and mapped back proportionally onto the original sample
      indices for the full-band RMS. vocalness = vocal RMS / full-band RMS.
    - `extract_energy_profile()` is the high-level entry point. It probes the
      renderer and falls back to basic mode when the renderer is missing,
      unavailable for the sample rate, or raises while rendering.

RMS is computed at full resolution (every sample of the window), never on a
strided subset.
"""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np

from core.audio.filters import BandPassRenderer
from core.audio.types import EnergyProfile, EnergyWindow, SampleBuffer
from core.config import DEFAULT_CONFIG, MarkerConfig

# Tolerance for float division in window/index arithmetic (10 / 0.1 etc.)
_INDEX_EPS: float = 1e-9


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def window_count(duration_sec: float, window_sec: float) -> int:
    """Number of whole windows covering ``duration_sec``: floor(D / w)."""
    if duration_sec <= 0.0:
        return 0
    return int(math.floor(duration_sec / window_sec + _INDEX_EPS))


def rms(x: np.ndarray) -> float:
    """Root-mean-square of ``x``. 0.0 for an empty slice."""
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(x, dtype=np.float64))))


def _onset_flags(energies: list[float], threshold: float) -> list[bool]:
    """Flag windows whose energy rose by more than ``threshold``.

    The window before the first one counts as silent (energy 0).
    """
    flags: list[bool] = []
    prev = 0.0
    for e in energies:
        flags.append(e - prev > threshold)
        prev = e
    return flags


# ---------------------------------------------------------------------------
# Basic mode
# ---------------------------------------------------------------------------


def extract_basic_profile(
    buffer: SampleBuffer,
    *,
    config: MarkerConfig = DEFAULT_CONFIG,
) -> EnergyProfile:
    """Full-band energy profile with ``config.basic_window_sec`` windows.

    Args:
        buffer: Decoded mono audio.
        config: Marker configuration.

    Returns:
        EnergyProfile in "basic" mode. Windows carry no vocal fields.
        A buffer shorter than one window yields an empty profile.
    """
    window_sec = config.basic_window_sec
    duration = buffer.duration_sec
    n_windows = window_count(duration, window_sec)
    samples = buffer.samples

    energies: list[float] = []
    for i in range(n_windows):
        start = int(math.floor(i * window_sec * buffer.sample_rate + _INDEX_EPS))
        end = int(math.floor((i + 1) * window_sec * buffer.sample_rate + _INDEX_EPS))
        energies.append(rms(samples[start:end]))

    onsets = _onset_flags(energies, config.onset_threshold)
    windows = tuple(
        EnergyWindow(
            index=i,
            start_sec=i * window_sec,
            total_energy=energies[i],
            is_onset=onsets[i],
        )
        for i in range(n_windows)
    )
    return EnergyProfile(
        windows=windows,
        window_sec=window_sec,
        duration_sec=duration,
        mode="basic",
    )


# ---------------------------------------------------------------------------
# Rich mode
# ---------------------------------------------------------------------------


def extract_rich_profile(
    buffer: SampleBuffer,
    *,
    renderer: BandPassRenderer,
    config: MarkerConfig = DEFAULT_CONFIG,
) -> EnergyProfile:
    """Energy + vocalness profile with ``config.window_sec`` windows.

    Pipeline:
        1. renderer.render(samples) → vocal-band signal at analysis rate
        2. per window: RMS of the vocal-band slice
        3. per window: RMS of the matching original-rate slice
           (indices scaled by sample_rate / analysis_rate)
        4. vocalness = vocal / total (0 when total < silence_floor)
        5. onset = total rose by more than onset_threshold

    Args:
        buffer: Decoded mono audio.
        renderer: Band-pass rendering capability.
        config: Marker configuration.

    Returns:
        EnergyProfile in "rich" mode.

    Raises:
        Whatever ``renderer.render`` raises. Use extract_energy_profile()
        for the fail-closed variant.
    """
    band = config.band
    window_sec = config.window_sec
    duration = buffer.duration_sec
    n_windows = window_count(duration, window_sec)

    filtered = np.asarray(renderer.render(buffer.samples, buffer.sample_rate, band))
    samples = buffer.samples

    analysis_window = max(1, int(round(band.analysis_rate * window_sec)))
    ratio = buffer.sample_rate / float(band.analysis_rate)

    totals: list[float] = []
    vocals: list[float] = []
    for i in range(n_windows):
        a_start = i * analysis_window
        a_end = a_start + analysis_window
        vocals.append(rms(filtered[a_start:a_end]))

        o_start = int(math.floor(a_start * ratio))
        o_end = int(math.floor(a_end * ratio))
        totals.append(rms(samples[o_start:o_end]))

    onsets = _onset_flags(totals, config.onset_threshold)
    windows: list[EnergyWindow] = []
    for i in range(n_windows):
        total = totals[i]
        vocalness = vocals[i] / total if total > config.silence_floor else 0.0
        windows.append(
            EnergyWindow(
                index=i,
                start_sec=i * window_sec,
                total_energy=total,
                is_onset=onsets[i],
                vocal_energy=vocals[i],
                vocalness=vocalness,
            )
        )

    return EnergyProfile(
        windows=tuple(windows),
        window_sec=window_sec,
        duration_sec=duration,
        mode="rich",
    )


# ---------------------------------------------------------------------------
# Entry point with fallback
# ---------------------------------------------------------------------------


def extract_energy_profile(
    buffer: SampleBuffer,
    *,
    config: MarkerConfig = DEFAULT_CONFIG,
    renderer: BandPassRenderer | None = None,
    on_fallback: Callable[[str], None] | None = None,
) -> EnergyProfile:
    """Profile a song, preferring rich mode and failing closed to basic.

    Rich mode runs when ``renderer`` is given and its capability probe
    accepts the buffer's sample rate. A renderer that raises while rendering
    also falls back to basic mode instead of propagating.

    Args:
        buffer: Decoded mono audio.
        config: Marker configuration.
        renderer: Band-pass capability. None = basic mode.
        on_fallback: Optional callable receiving a short reason string
                     whenever rich mode was requested but basic mode was
                     used. Lets the I/O layer log and count fallbacks.

    Returns:
        EnergyProfile; check ``profile.mode`` for the mode actually used.
    """
    if renderer is None:
        return extract_basic_profile(buffer, config=config)

    if not renderer.is_available(buffer.sample_rate, config.band):
        if on_fallback is not None:
            on_fallback(f"band-pass unavailable at {buffer.sample_rate} Hz")
        return extract_basic_profile(buffer, config=config)

    try:
        return extract_rich_profile(buffer, renderer=renderer, config=config)
    except Exception as exc:
        if on_fallback is not None:
            on_fallback(f"band-pass render failed: {exc}")
        return extract_basic_profile(buffer, config=config)
