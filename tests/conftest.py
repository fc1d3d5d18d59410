"""
Shared fixtures for the test suite.

Centralizes synthetic audio and profile builders so individual test files
don't need to repeat signal-generation boilerplate.
"""

from __future__ import annotations

import numpy as np
import pytest

from core.audio.types import EnergyProfile, EnergyWindow, SampleBuffer

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEST_SR: int = 16_000
"""Sample rate for synthetic buffers — fast to resample to 12 kHz (3:4)."""

LOUD_RMS: float = 0.8
"""Target RMS for loud synthetic blocks."""


# ---------------------------------------------------------------------------
# Signal builders
# ---------------------------------------------------------------------------


def sine(freq_hz: float, duration_sec: float, *, rms: float = LOUD_RMS, sr: int = TEST_SR) -> np.ndarray:
    """Sine tone with the given RMS (amplitude = rms * sqrt(2))."""
    t = np.arange(int(round(duration_sec * sr))) / sr
    return (rms * np.sqrt(2.0) * np.sin(2.0 * np.pi * freq_hz * t)).astype(np.float32)


def silent_buffer(duration_sec: float, *, sr: int = TEST_SR) -> SampleBuffer:
    return SampleBuffer(samples=np.zeros(int(round(duration_sec * sr)), dtype=np.float32), sample_rate=sr)


def song_with_blocks(
    duration_sec: float,
    blocks: list[tuple[float, float, float]],
    *,
    sr: int = TEST_SR,
) -> SampleBuffer:
    """Silent song with sine blocks inserted.

    Args:
        duration_sec: Song length.
        blocks: (start_sec, length_sec, freq_hz) triples.
    """
    y = np.zeros(int(round(duration_sec * sr)), dtype=np.float32)
    for start, length, freq in blocks:
        i0 = int(round(start * sr))
        tone = sine(freq, length, sr=sr)
        y[i0 : i0 + tone.size] = tone[: y.size - i0]
    return SampleBuffer(samples=y, sample_rate=sr)


def make_profile(
    energies: list[float] | np.ndarray,
    *,
    vocalness: list[float] | np.ndarray | None = None,
    onsets: list[bool] | None = None,
    window_sec: float = 0.1,
    duration_sec: float | None = None,
) -> EnergyProfile:
    """Hand-built EnergyProfile. Rich mode when vocalness is given."""
    energies = [float(e) for e in energies]
    n = len(energies)
    if onsets is None:
        onsets = [False] * n
    rich = vocalness is not None
    windows = tuple(
        EnergyWindow(
            index=i,
            start_sec=i * window_sec,
            total_energy=energies[i],
            is_onset=bool(onsets[i]),
            vocal_energy=(energies[i] * float(vocalness[i])) if rich else None,
            vocalness=float(vocalness[i]) if rich else None,
        )
        for i in range(n)
    )
    return EnergyProfile(
        windows=windows,
        window_sec=window_sec,
        duration_sec=duration_sec if duration_sec is not None else n * window_sec,
        mode="rich" if rich else "basic",
    )


# ---------------------------------------------------------------------------
# Fake renderer
# ---------------------------------------------------------------------------


class FakeRenderer:
    """Deterministic band-pass stand-in — returns a scaled copy at analysis rate."""

    def __init__(self, gain: float = 0.5, available: bool = True, fail: bool = False) -> None:
        self.gain = gain
        self.available = available
        self.fail = fail
        self.calls = 0

    def is_available(self, sample_rate, band) -> bool:
        return self.available

    def render(self, samples, sample_rate, band):
        self.calls += 1
        if self.fail:
            raise RuntimeError("render backend crashed")
        n_out = int(np.ceil(len(samples) * band.analysis_rate / sample_rate))
        idx = np.minimum((np.arange(n_out) * sample_rate / band.analysis_rate).astype(int), len(samples) - 1)
        if len(samples) == 0:
            return np.zeros(0)
        return np.asarray(samples, dtype=np.float64)[idx] * self.gain


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture(scope="session")
def vocal_and_bass_song() -> SampleBuffer:
    """200 s song: 1 kHz (vocal band) block at 70 s, 60 Hz (bass) block at 130 s."""
    return song_with_blocks(200.0, [(70.0, 10.0, 1000.0), (130.0, 10.0, 60.0)])
