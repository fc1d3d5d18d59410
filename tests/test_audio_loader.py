"""
Tests for ingestion/audio_loader.py — fetch + decode boundary.

All decode tests mock librosa.load() via patch.dict("sys.modules", ...) to
avoid requiring real audio files or audio backend. HTTP tests use
httpx.MockTransport, so no network is touched.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import numpy as np
import pytest

from core.audio.types import SampleBuffer
from ingestion.audio_loader import (
    AUDIO_EXTENSIONS,
    AudioDecodeError,
    decode_audio_bytes,
    fetch_audio_bytes,
    is_remote,
    load_audio,
    load_from_url,
    local_path,
)

# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


def _make_mock_librosa(sr: int = 44100, n_samples: int = 44100 * 5) -> MagicMock:
    """Return a mock librosa module that simulates a successful load."""
    mock = MagicMock()
    y = np.zeros(n_samples, dtype=np.float32)
    mock.load.return_value = (y, sr)
    return mock


def _mock_client(status: int = 200, content: bytes = b"ID3fake") -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=content)

    return httpx.Client(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Error conditions
# ---------------------------------------------------------------------------


class TestLoadAudioErrors:
    def test_raises_file_not_found(self):
        """Non-existent file raises FileNotFoundError."""
        with patch.dict("sys.modules", {"librosa": _make_mock_librosa()}):
            with pytest.raises(FileNotFoundError, match="not found"):
                load_audio("/nonexistent/song.mp3")

    def test_raises_value_error_for_unsupported_extension(self, tmp_path):
        """PDF or unsupported format raises ValueError."""
        doc = tmp_path / "lyrics.pdf"
        doc.write_bytes(b"not audio")
        with patch.dict("sys.modules", {"librosa": _make_mock_librosa()}):
            with pytest.raises(ValueError, match="Unsupported audio format"):
                load_audio(doc)

    def test_raises_decode_error_on_librosa_failure(self, tmp_path):
        """librosa.load() raising an exception → AudioDecodeError."""
        audio_file = tmp_path / "corrupt.mp3"
        audio_file.write_bytes(b"not valid audio data")

        mock_librosa = _make_mock_librosa()
        mock_librosa.load.side_effect = Exception("decode error")

        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            with pytest.raises(AudioDecodeError, match="Failed to decode"):
                load_audio(audio_file)

    def test_decode_error_is_runtime_error(self):
        assert issubclass(AudioDecodeError, RuntimeError)


# ---------------------------------------------------------------------------
# Successful loading
# ---------------------------------------------------------------------------


class TestLoadAudioSuccess:
    def test_returns_sample_buffer(self, tmp_path):
        audio_file = tmp_path / "song.mp3"
        audio_file.write_bytes(b"fake mp3")

        mock_librosa = _make_mock_librosa(sr=44100, n_samples=44100 * 5)
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            buffer = load_audio(audio_file)

        assert isinstance(buffer, SampleBuffer)
        assert buffer.sample_rate == 44100
        assert buffer.duration_sec == pytest.approx(5.0)

    def test_sample_rate_is_python_int(self, tmp_path):
        audio_file = tmp_path / "song.wav"
        audio_file.write_bytes(b"fake wav")

        mock_librosa = _make_mock_librosa(sr=np.int64(22050))
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            buffer = load_audio(audio_file)

        assert type(buffer.sample_rate) is int

    def test_loads_whole_song_by_default(self, tmp_path):
        """The marker search needs the full song: duration defaults to None."""
        audio_file = tmp_path / "song.flac"
        audio_file.write_bytes(b"fake flac")

        mock_librosa = _make_mock_librosa()
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            load_audio(audio_file)

        call_kwargs = mock_librosa.load.call_args[1]
        assert call_kwargs["duration"] is None
        assert call_kwargs["sr"] is None
        assert call_kwargs["mono"] is True

    def test_stereo_result_keeps_first_channel(self, tmp_path):
        audio_file = tmp_path / "song.wav"
        audio_file.write_bytes(b"fake wav")

        mock_librosa = MagicMock()
        mock_librosa.load.return_value = (np.vstack([np.ones(100), np.zeros(100)]), 8000)
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            buffer = load_audio(audio_file, mono=False)

        assert buffer.samples.shape == (100,)
        assert np.allclose(buffer.samples, 1.0)

    def test_accepts_string_path(self, tmp_path):
        audio_file = tmp_path / "song.mp3"
        audio_file.write_bytes(b"fake")

        with patch.dict("sys.modules", {"librosa": _make_mock_librosa()}):
            buffer = load_audio(str(audio_file))

        assert buffer.samples.size > 0


class TestAudioExtensions:
    def test_common_formats_supported(self):
        for ext in [".mp3", ".wav", ".flac", ".aiff", ".ogg", ".m4a"]:
            assert ext in AUDIO_EXTENSIONS, f"{ext} missing from AUDIO_EXTENSIONS"

    def test_all_extensions_are_lowercase(self):
        for ext in AUDIO_EXTENSIONS:
            assert ext == ext.lower(), f"Extension {ext!r} is not lowercase"


# ---------------------------------------------------------------------------
# In-memory decode
# ---------------------------------------------------------------------------


class TestDecodeAudioBytes:
    def test_empty_payload_rejected(self):
        with patch.dict("sys.modules", {"librosa": _make_mock_librosa()}):
            with pytest.raises(AudioDecodeError, match="empty payload"):
                decode_audio_bytes(b"")

    def test_decodes_from_memory(self):
        mock_librosa = _make_mock_librosa(sr=16000, n_samples=16000)
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            buffer = decode_audio_bytes(b"RIFFfake", sr=16000)

        assert buffer.sample_rate == 16000
        source = mock_librosa.load.call_args[0][0]
        assert source.read() == b"RIFFfake"

    def test_decoder_failure_wrapped(self):
        mock_librosa = _make_mock_librosa()
        mock_librosa.load.side_effect = Exception("bad header")
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            with pytest.raises(AudioDecodeError, match="bad header"):
                decode_audio_bytes(b"garbage")


# ---------------------------------------------------------------------------
# HTTP fetch
# ---------------------------------------------------------------------------


class TestFetchAudioBytes:
    def test_returns_body(self):
        with _mock_client(content=b"audio-bytes") as client:
            assert fetch_audio_bytes("https://cdn.example.com/1.mp3", client=client) == b"audio-bytes"

    def test_http_error_raised(self):
        with _mock_client(status=404) as client:
            with pytest.raises(httpx.HTTPStatusError):
                fetch_audio_bytes("https://cdn.example.com/missing.mp3", client=client)


# ---------------------------------------------------------------------------
# URL routing
# ---------------------------------------------------------------------------


class TestUrlRouting:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://cdn.example.com/a.mp3", True),
            ("HTTP://cdn.example.com/a.mp3", True),
            ("file:///music/a.mp3", False),
            ("/music/a.mp3", False),
            ("relative/a.mp3", False),
        ],
    )
    def test_is_remote(self, url, expected):
        assert is_remote(url) is expected

    def test_local_path_from_file_url(self):
        assert local_path("file:///music/my%20song.mp3") == Path("/music/my song.mp3")

    def test_local_path_plain(self):
        assert local_path("/music/a.mp3") == Path("/music/a.mp3")

    def test_remote_url_fetched_and_decoded(self):
        buffer = SampleBuffer(np.zeros(10, dtype=np.float32), 8000)
        with patch("ingestion.audio_loader.fetch_audio_bytes", return_value=b"data") as fetch, patch(
            "ingestion.audio_loader.decode_audio_bytes", return_value=buffer
        ) as decode:
            result = load_from_url("https://cdn.example.com/a.mp3")

        assert result is buffer
        fetch.assert_called_once()
        assert decode.call_args[0][0] == b"data"

    def test_local_url_loaded_from_disk(self):
        buffer = SampleBuffer(np.zeros(10, dtype=np.float32), 8000)
        with patch("ingestion.audio_loader.load_audio", return_value=buffer) as load, patch(
            "ingestion.audio_loader.fetch_audio_bytes"
        ) as fetch:
            result = load_from_url("file:///music/a.mp3")

        assert result is buffer
        assert load.call_args[0][0] == Path("/music/a.mp3")
        fetch.assert_not_called()
