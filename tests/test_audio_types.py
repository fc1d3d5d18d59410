"""
Tests for core/audio/types.py — frozen analysis value objects.
"""

import numpy as np
import pytest

from core.audio.types import EnergyProfile, EnergyWindow, MarkerSet, Region, SampleBuffer

# ---------------------------------------------------------------------------
# SampleBuffer
# ---------------------------------------------------------------------------


class TestSampleBuffer:
    def test_duration_is_samples_over_rate(self):
        buf = SampleBuffer(samples=np.zeros(48_000, dtype=np.float32), sample_rate=16_000)
        assert buf.duration_sec == pytest.approx(3.0)

    def test_empty_buffer_has_zero_duration(self):
        buf = SampleBuffer(samples=np.zeros(0, dtype=np.float32), sample_rate=44_100)
        assert buf.duration_sec == 0.0

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError, match="sample_rate"):
            SampleBuffer(samples=np.zeros(10), sample_rate=0)

    def test_rejects_multichannel_samples(self):
        with pytest.raises(ValueError, match="1-D"):
            SampleBuffer(samples=np.zeros((2, 10)), sample_rate=44_100)

    def test_from_array_keeps_first_channel(self):
        stereo = np.vstack([np.full(100, 0.25), np.full(100, -0.75)])
        buf = SampleBuffer.from_array(stereo, 8_000)
        assert buf.samples.shape == (100,)
        assert np.allclose(buf.samples, 0.25)

    def test_from_array_casts_to_float32(self):
        buf = SampleBuffer.from_array(np.zeros(10, dtype=np.float64), 8_000)
        assert buf.samples.dtype == np.float32
        assert buf.sample_rate == 8_000


# ---------------------------------------------------------------------------
# Region
# ---------------------------------------------------------------------------


class TestRegion:
    def test_length(self):
        assert Region(start=12.5, end=22.5).length == pytest.approx(10.0)

    def test_zero_length_allowed(self):
        assert Region(start=0.0, end=0.0).length == 0.0

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError, match="start"):
            Region(start=-0.1, end=5.0)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="end"):
            Region(start=5.0, end=4.0)

    def test_overlaps(self):
        region = Region(start=70.0, end=78.0)
        assert region.overlaps(75.0, 85.0)
        assert region.overlaps(60.0, 70.5)
        assert not region.overlaps(78.0, 90.0)
        assert not region.overlaps(50.0, 70.0)


# ---------------------------------------------------------------------------
# EnergyProfile
# ---------------------------------------------------------------------------


def _window(i: int, energy: float, *, vocalness: float | None = None, onset: bool = False):
    return EnergyWindow(
        index=i,
        start_sec=i * 0.1,
        total_energy=energy,
        is_onset=onset,
        vocal_energy=None if vocalness is None else energy * vocalness,
        vocalness=vocalness,
    )


class TestEnergyProfile:
    def test_numpy_views(self):
        profile = EnergyProfile(
            windows=(_window(0, 0.1, vocalness=0.5), _window(1, 0.4, vocalness=0.9, onset=True)),
            window_sec=0.1,
            duration_sec=0.2,
            mode="rich",
        )
        assert len(profile) == 2
        assert np.allclose(profile.total_energy, [0.1, 0.4])
        assert np.allclose(profile.vocalness, [0.5, 0.9])
        assert profile.onsets.tolist() == [False, True]
        assert profile.has_vocalness

    def test_basic_profile_vocalness_is_zero(self):
        profile = EnergyProfile(
            windows=(_window(0, 0.3),),
            window_sec=0.5,
            duration_sec=0.5,
            mode="basic",
        )
        assert not profile.has_vocalness
        assert profile.vocalness.tolist() == [0.0]


# ---------------------------------------------------------------------------
# MarkerSet
# ---------------------------------------------------------------------------


class TestMarkerSet:
    def _markers(self) -> MarkerSet:
        return MarkerSet(
            song_id="song-7",
            intro=Region(0.0, 8.0),
            interlude1=Region(66.0, 76.0),
            interlude2=Region(165.0, 175.0),
            vocal=Region(120.0, 128.0),
        )

    def test_default_flags(self):
        markers = self._markers()
        assert markers.is_auto_marked is True
        assert markers.is_manually_edited is False
        assert markers.is_configured is True

    def test_as_dict_uses_game_set_field_names(self):
        data = self._markers().as_dict()
        assert data == {
            "songId": "song-7",
            "introStart": 0.0,
            "introEnd": 8.0,
            "clipStart": 66.0,
            "clipEnd": 76.0,
            "hintStart": 165.0,
            "hintEnd": 175.0,
            "bonusStart": 120.0,
            "bonusEnd": 128.0,
            "isAutoMarked": True,
            "isManuallyEdited": False,
            "isConfigured": True,
        }

    def test_as_dict_has_no_point_fields(self):
        data = self._markers().as_dict()
        assert not any(key.endswith("Points") for key in data)
