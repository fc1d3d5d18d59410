"""
core/audio/filters.py — Band-pass rendering capability for vocal profiling.

Rich-mode profiling needs the song rendered through a vocal-formant
band-pass filter at a reduced sample rate. That rendering is abstracted as a
capability so the scoring and search logic can be unit-tested with a fake
renderer, and so the extractor can probe for it and fall back to basic mode.

Design:
    - `BandPassRenderer` is a runtime-checkable Protocol, so any object
      with the two methods qualifies without inheriting from it.
    - `ScipyBandPassRenderer` is the default implementation: polyphase
      resampling to the analysis rate, then a Butterworth band-pass in SOS
      form.
"""

from __future__ import annotations

from math import gcd
from typing import Protocol, runtime_checkable

import numpy as np
from scipy import signal as scipy_signal

from core.config import BandSpec


@runtime_checkable
class BandPassRenderer(Protocol):
    """
    Protocol for offline band-pass renderers.

    Any object with ``is_available`` and ``render`` can back rich-mode
    profiling.
    """

    def is_available(self, sample_rate: int, band: BandSpec) -> bool:
        """Capability probe: can this renderer filter audio at ``sample_rate``?"""
        ...

    def render(self, samples: np.ndarray, sample_rate: int, band: BandSpec) -> np.ndarray:
        """
        Render ``samples`` through the band-pass at ``band.analysis_rate``.

        Args:
            samples: Mono input at ``sample_rate``. Never modified.
            sample_rate: Input sample rate in Hz.
            band: Filter specification.

        Returns:
            Filtered mono signal sampled at ``band.analysis_rate``, of length
            ``ceil(len(samples) * analysis_rate / sample_rate)``.
        """
        ...


def resample_to(samples: np.ndarray, sample_rate: int, target_rate: int) -> np.ndarray:
    """Polyphase resample ``samples`` from ``sample_rate`` to ``target_rate``."""
    if sample_rate == target_rate or samples.size == 0:
        return np.asarray(samples, dtype=np.float64).copy()
    g = gcd(int(sample_rate), int(target_rate))
    up = int(target_rate) // g
    down = int(sample_rate) // g
    return scipy_signal.resample_poly(np.asarray(samples, dtype=np.float64), up, down)


class ScipyBandPassRenderer:
    """Offline band-pass renderer built on scipy.signal.

    Renders faster than real time and has no state between calls, so one
    instance may be shared by any number of analyses.
    """

    def is_available(self, sample_rate: int, band: BandSpec) -> bool:
        # The band must be representable at the analysis rate, and the
        # source must carry content up to the upper edge.
        nyquist = band.analysis_rate / 2.0
        return sample_rate > 0 and band.high_hz < nyquist and band.high_hz < sample_rate / 2.0

    def design(self, band: BandSpec) -> np.ndarray:
        """Return the SOS coefficients of the band-pass at the analysis rate."""
        nyquist = band.analysis_rate / 2.0
        return scipy_signal.butter(
            band.order,
            [band.low_hz / nyquist, band.high_hz / nyquist],
            btype="bandpass",
            output="sos",
        )

    def render(self, samples: np.ndarray, sample_rate: int, band: BandSpec) -> np.ndarray:
        resampled = resample_to(samples, sample_rate, band.analysis_rate)
        if resampled.size == 0:
            return resampled
        return scipy_signal.sosfilt(self.design(band), resampled)
