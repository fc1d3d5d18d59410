"""
ingestion/audio_loader.py — Fetch + decode boundary for song audio.

This is the ONLY module in the marker pipeline that reads files or talks to
the network. Everything downstream (core/audio/features.py,
core/audio/regions.py, core/audio/markers.py) takes a decoded SampleBuffer —
never file paths or URLs.

Usage:
    from ingestion.audio_loader import load_audio, load_from_url
    buffer = load_audio("/path/to/song.mp3")
    buffer = load_from_url("https://cdn.example.com/songs/42.mp3")
"""

from __future__ import annotations

import io
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from core.audio.types import SampleBuffer

# Supported audio file extensions (must be loadable by librosa / soundfile)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus"}
)

# Timeout for remote audio downloads, in seconds
DEFAULT_TIMEOUT: float = 30.0

_REMOTE_SCHEMES: frozenset[str] = frozenset({"http", "https"})


class AudioDecodeError(RuntimeError):
    """Audio bytes or file could not be decoded (corrupt, truncated, DRM, ...)."""


def is_remote(url: str) -> bool:
    """True for http(s) URLs, False for local paths and file:// URLs."""
    return urlparse(url).scheme.lower() in _REMOTE_SCHEMES


def local_path(url: str) -> Path:
    """Turn a file:// URL or plain path into a Path."""
    parsed = urlparse(url)
    if parsed.scheme.lower() == "file":
        return Path(unquote(parsed.path))
    return Path(url)


def load_audio(
    path: str | Path,
    *,
    sr: int | None = None,
    mono: bool = True,
    duration: float | None = None,
) -> SampleBuffer:
    """Load an audio file and return a SampleBuffer.

    Args:
        path: Absolute or relative path to an audio file.
              Supported formats: mp3, wav, flac, aiff, ogg, m4a, opus.
        sr: Target sample rate in Hz. None preserves the native rate.
        mono: Mix down to mono when True (default). When False the first
              channel is kept.
        duration: Maximum seconds to load. None loads the whole song, which
                  the marker search needs.

    Returns:
        SampleBuffer with float32 samples and the loaded sample rate.

    Raises:
        FileNotFoundError: File does not exist at the given path.
        ValueError: File extension is not a supported audio format.
        AudioDecodeError: librosa/soundfile could not decode the file.
    """
    import librosa  # deferred to allow testing without audio backend

    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    if file_path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise ValueError(
            f"Unsupported audio format {file_path.suffix!r}. "
            f"Supported: {sorted(AUDIO_EXTENSIONS)}"
        )

    try:
        y, loaded_sr = librosa.load(
            file_path,
            sr=sr,
            mono=mono,
            duration=duration,
            offset=0.0,
        )
    except Exception as exc:
        raise AudioDecodeError(
            f"Failed to decode audio file {file_path.name!r}: {exc}"
        ) from exc

    return SampleBuffer.from_array(y, int(loaded_sr))


def decode_audio_bytes(
    data: bytes,
    *,
    sr: int | None = None,
    mono: bool = True,
) -> SampleBuffer:
    """Decode in-memory audio bytes into a SampleBuffer.

    Raises:
        AudioDecodeError: Empty payload or undecodable bytes.
    """
    import librosa  # deferred to allow testing without audio backend

    if not data:
        raise AudioDecodeError("Failed to decode audio: empty payload")

    try:
        y, loaded_sr = librosa.load(io.BytesIO(data), sr=sr, mono=mono)
    except Exception as exc:
        raise AudioDecodeError(f"Failed to decode audio bytes: {exc}") from exc

    return SampleBuffer.from_array(y, int(loaded_sr))


def fetch_audio_bytes(
    url: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bytes:
    """Download the bytes behind an http(s) URL.

    Args:
        url: Remote audio URL.
        client: Optional shared httpx.Client. A short-lived client is used
                when None.
        timeout: Request timeout in seconds (ignored with a shared client).

    Raises:
        httpx.HTTPError: Connection failure or non-2xx response.
    """
    if client is not None:
        response = client.get(url)
    else:
        with httpx.Client(timeout=timeout, follow_redirects=True) as own_client:
            response = own_client.get(url)
    response.raise_for_status()
    return response.content


def load_from_url(
    url: str,
    *,
    client: httpx.Client | None = None,
    sr: int | None = None,
) -> SampleBuffer:
    """Fetch and decode the audio behind ``url``.

    Remote URLs are downloaded with httpx and decoded from memory; local
    paths and file:// URLs are decoded straight from disk.

    Raises:
        httpx.HTTPError: Remote fetch failed.
        FileNotFoundError, ValueError: Local file missing or unsupported.
        AudioDecodeError: Audio could not be decoded.
    """
    if is_remote(url):
        return decode_audio_bytes(fetch_audio_bytes(url, client=client), sr=sr)
    return load_audio(local_path(url), sr=sr)
