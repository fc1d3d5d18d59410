"""Prometheus metrics for the clue-marker engine.

Exposes per-song outcomes so a batch run can be watched as an aggregate
progress counter rather than per-song errors.

Metrics:
    clue_songs_processed_total       Counter by status (marked/no_audio/failed)
    clue_process_song_seconds        Histogram of process_song latency
    clue_band_pass_fallback_total    Rich analyses that fell back to basic mode

Usage::

    from infrastructure.metrics import (
        LatencyTimer,
        record_band_pass_fallback,
        record_song_processed,
    )
"""

from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)

# Lazy import: prometheus_client is optional. If not installed, all calls
# are no-ops.
_registry_available = False
try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Histogram,
        generate_latest,
    )

    _REGISTRY = CollectorRegistry()

    songs_processed_total = Counter(
        "clue_songs_processed_total",
        "Songs run through process_song, by outcome",
        ["status"],
        registry=_REGISTRY,
    )

    process_song_seconds = Histogram(
        "clue_process_song_seconds",
        "Fetch + decode + analysis latency per song in seconds",
        buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        registry=_REGISTRY,
    )

    band_pass_fallback_total = Counter(
        "clue_band_pass_fallback_total",
        "Rich analyses that fell back to basic single-band mode",
        registry=_REGISTRY,
    )

    _registry_available = True
    logger.info("Prometheus metrics registry initialized")

except ImportError:
    logger.info("prometheus_client not installed — metrics disabled")
    _REGISTRY = None  # type: ignore[assignment]


# Valid values for the status label
SONG_STATUSES: frozenset[str] = frozenset({"marked", "no_audio", "failed"})


# ---------------------------------------------------------------------------
# Public helpers: all are no-ops when prometheus_client is not installed
# ---------------------------------------------------------------------------


def record_song_processed(*, status: str, latency_seconds: float) -> None:
    """Record one finished process_song call.

    Args:
        status: One of "marked", "no_audio", "failed".
        latency_seconds: Wall-clock time for the call in seconds.

    Raises:
        ValueError: If ``status`` is not one of SONG_STATUSES.
    """
    if status not in SONG_STATUSES:
        raise ValueError(f"Unknown status {status!r}, valid options: {sorted(SONG_STATUSES)}")
    if not _registry_available:
        return
    songs_processed_total.labels(status=status).inc()
    process_song_seconds.observe(latency_seconds)


def record_band_pass_fallback() -> None:
    """Increment the rich → basic fallback counter."""
    if _registry_available:
        band_pass_fallback_total.inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
        Returns empty bytes if prometheus_client is not available.
    """
    if not _registry_available:
        return b"", "text/plain"
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            markers = engine.process_song(song_id)
        record_song_processed(status="marked", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
