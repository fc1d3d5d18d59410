"""
Batch auto-marking of a local song folder.

Runs every supported audio file in a directory through AutoMarkerEngine and
writes the resulting clue markers as a JSON list (one record per marked
song, using the game-set field names). Songs that fail are skipped and
counted.

Usage:
    python scripts/auto_mark.py ~/Music/quiz-night
    python scripts/auto_mark.py ~/Music/quiz-night --preset pop-single -o markers.json
    python scripts/auto_mark.py ~/Music/quiz-night --basic --verbose
    python scripts/auto_mark.py ~/Music/quiz-night --metrics run.prom

Output:
    JSON list on stdout, or in the --output file. With --metrics, the run's
    Prometheus counters are written to that file in text exposition format.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.audio import available_presets, load_preset  # noqa: E402
from infrastructure.metrics import get_metrics_response  # noqa: E402
from ingestion.audio_loader import AUDIO_EXTENSIONS  # noqa: E402
from ingestion.auto_markers import AutoMarkerEngine  # noqa: E402

logger = logging.getLogger("auto_mark")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    """Send logs to stderr so stdout stays clean JSON."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        stream=sys.stderr,
    )
    # Silence noisy third-party loggers
    for name in ("librosa", "numba", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def discover_songs(folder: Path) -> dict[str, Path]:
    """Map song id (file stem) → path for every supported file in ``folder``."""
    return {
        path.stem: path
        for path in sorted(folder.iterdir())
        if path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Auto-mark clue regions for a folder of songs.")
    parser.add_argument("folder", type=Path, help="Directory containing audio files")
    parser.add_argument(
        "--preset",
        default="film song",
        help=f"Marker preset. Available: {', '.join(available_presets())}",
    )
    parser.add_argument(
        "--basic",
        action="store_true",
        help="Single-band energy analysis only (no vocal band-pass)",
    )
    parser.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout")
    parser.add_argument(
        "--metrics",
        type=Path,
        help="Write the run's Prometheus metrics (text format) to this file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if not args.folder.is_dir():
        logger.error("Not a directory: %s", args.folder)
        return 2

    try:
        config = load_preset(args.preset)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    songs = discover_songs(args.folder)
    if not songs:
        logger.warning("No audio files found in %s", args.folder)

    def _resolve(song_id: str) -> str | None:
        path = songs.get(song_id)
        return str(path) if path is not None else None

    def _progress(done: int, total: int, song_id: str) -> None:
        logger.info("[%d/%d] %s", done, total, song_id)

    engine = AutoMarkerEngine(_resolve, config=config, rich=not args.basic)
    results = engine.process_batch(songs, pause_sec=0.0, on_progress=_progress)

    records = [markers.as_dict() for markers in results.values() if markers is not None]
    skipped = len(results) - len(records)
    payload = json.dumps(records, indent=2)

    if args.output is not None:
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %d marker sets to %s", len(records), args.output)
    else:
        print(payload)

    if args.metrics is not None:
        body, _ = get_metrics_response()
        args.metrics.write_bytes(body)
        logger.info("Wrote metrics to %s", args.metrics)

    if skipped:
        logger.warning("%d song(s) could not be marked", skipped)
    return 0


if __name__ == "__main__":
    sys.exit(main())
