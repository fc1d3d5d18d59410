"""
ingestion/auto_markers.py — Orchestrator for song → clue markers.

AutoMarkerEngine wires together the production pipeline:

    song id
        │
        ├─ resolve_audio_url()      [injected — library / storage layer]
        │       ↓
        ├─ load_from_url()          [ingestion/audio_loader.py — fetch + decode]
        │       ↓
        ├─ extract_energy_profile() [core/audio/features.py — pure DSP]
        │       ↓
        └─ assemble_markers()       [core/audio/markers.py — window search]

This module is in `ingestion/` because it performs I/O and absorbs its
failures. The analysis itself is pure and lives in `core/audio/`.

Failure policy: process_song() never raises. Missing audio, fetch errors,
decode errors and analysis errors are logged and turned into None, so one bad
file cannot abort a batch. Callers treat None as "leave this song's markers
unset".

Usage:
    engine = AutoMarkerEngine(library.get_audio_url)
    markers = engine.process_song("song-42")
    if markers is not None:
        game_set.merge(markers.as_dict())
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from core.audio.filters import BandPassRenderer, ScipyBandPassRenderer
from core.audio.markers import analyze_buffer
from core.audio.types import MarkerSet, SampleBuffer
from core.config import DEFAULT_CONFIG, MarkerConfig
from infrastructure.metrics import (
    LatencyTimer,
    record_band_pass_fallback,
    record_song_processed,
)
from ingestion.audio_loader import load_from_url

logger = logging.getLogger(__name__)

# Pause between songs in process_batch(), in seconds
DEFAULT_BATCH_PAUSE: float = 0.02

UrlResolver = Callable[[str], str | None]
AudioLoader = Callable[[str], SampleBuffer]
ProgressCallback = Callable[[int, int, str], None]


class AutoMarkerEngine:
    """Fetches, decodes and auto-marks songs.

    The engine holds no per-song state: every process_song() call is
    independent. Collaborators are injected so tests can run without audio
    files, network or the audio stack.

    Example:
        engine = AutoMarkerEngine(lambda song_id: f"/library/{song_id}.mp3")
        markers = engine.process_song("42")
        print(markers.as_dict() if markers else "skipped")
    """

    def __init__(
        self,
        resolve_audio_url: UrlResolver,
        *,
        config: MarkerConfig = DEFAULT_CONFIG,
        renderer: BandPassRenderer | None = None,
        rich: bool = True,
        load_audio: AudioLoader | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        """Initialise the engine.

        Args:
            resolve_audio_url: Callable song_id → URL or path. An empty
                               result means "no audio for this song".
            config:            Marker configuration (see core.config).
            renderer:          Band-pass capability for rich mode. None with
                               rich=True uses ScipyBandPassRenderer.
            rich:              False forces basic single-band analysis.
            load_audio:        Callable URL → SampleBuffer. Defaults to
                               ingestion.audio_loader.load_from_url.
            sleep:             Pause function used between batch songs.
        """
        self._resolve_audio_url = resolve_audio_url
        self._config = config
        self._renderer: BandPassRenderer | None = None
        if rich:
            self._renderer = renderer if renderer is not None else ScipyBandPassRenderer()
        self._load_audio: AudioLoader = load_audio or load_from_url
        self._sleep = sleep

    @property
    def config(self) -> MarkerConfig:
        return self._config

    @property
    def rich(self) -> bool:
        """True when the engine attempts rich (vocal-band) analysis."""
        return self._renderer is not None

    # ------------------------------------------------------------------
    # Single song
    # ------------------------------------------------------------------

    def analyze(self, buffer: SampleBuffer, *, song_id: str = "") -> MarkerSet:
        """Run the pure analysis on an already-decoded buffer."""

        def _on_fallback(reason: str) -> None:
            logger.warning("Auto-marker falling back to basic mode for %s: %s", song_id, reason)
            record_band_pass_fallback()

        return analyze_buffer(
            buffer,
            song_id=song_id,
            config=self._config,
            renderer=self._renderer,
            on_fallback=_on_fallback,
        )

    def process_song(self, song_id: str) -> MarkerSet | None:
        """Resolve, fetch, decode and auto-mark one song.

        Args:
            song_id: Library identifier of the song.

        Returns:
            MarkerSet, or None when the song has no audio or any step
            failed. Never raises.
        """
        status = "failed"
        markers: MarkerSet | None = None
        with LatencyTimer() as timer:
            try:
                url = self._resolve_audio_url(song_id)
                if not url:
                    logger.info("Auto-marker skipped %s: no audio available", song_id)
                    status = "no_audio"
                else:
                    buffer = self._load_audio(url)
                    markers = self.analyze(buffer, song_id=song_id)
                    status = "marked"
            except Exception as exc:
                logger.warning("Auto-marker failed for %s: %s", song_id, exc)
                markers = None
                status = "failed"

        record_song_processed(status=status, latency_seconds=timer.elapsed)
        if markers is not None:
            logger.debug(
                "Auto-marked %s (%s mode) in %.2fs",
                song_id,
                markers.mode,
                timer.elapsed,
            )
        return markers

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def process_batch(
        self,
        song_ids: Iterable[str],
        *,
        pause_sec: float = DEFAULT_BATCH_PAUSE,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, MarkerSet | None]:
        """Auto-mark songs one after another.

        Songs are processed sequentially with a short pause between them so
        a host UI stays responsive. A failing song yields None and the batch
        continues.

        Args:
            song_ids:    Song identifiers, processed in order. Repeated ids
                         are processed once, at their first position.
            pause_sec:   Pause between songs in seconds. 0 disables it.
            on_progress: Optional callable (done, total, song_id) called after
                         each song.

        Returns:
            Dict song_id → MarkerSet or None, in processing order.
        """
        # First occurrence wins; `total` counts distinct songs.
        ids = list(dict.fromkeys(song_ids))
        total = len(ids)
        results: dict[str, MarkerSet | None] = {}

        for done, song_id in enumerate(ids, start=1):
            results[song_id] = self.process_song(song_id)
            if on_progress is not None:
                try:
                    on_progress(done, total, song_id)
                except Exception as exc:
                    logger.warning("Progress callback failed: %s", exc)
            if pause_sec > 0 and done < total:
                self._sleep(pause_sec)

        marked = sum(1 for m in results.values() if m is not None)
        logger.info("Auto-marked %d/%d songs", marked, total)
        return results
