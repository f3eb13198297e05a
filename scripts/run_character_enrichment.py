#!/usr/bin/env python3
"""
Run one scheduled character enrichment batch.

Intended to be invoked by cron (or any external scheduler) at the cadence of
the chosen preset. Batch shape can be overridden per run.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from character_enrichment import SCHEDULE_PRESETS, BatchReport, StoreUnavailableError
from common.config import get_settings
from common.models.anime import Anime
from common.utils.id_generation import generate_ulid
from enrichment_service.runtime import build_runtime, close_runtime

logger = logging.getLogger("run_character_enrichment")


def load_seed_file(file_path: str) -> list[Anime]:
    """Load anime documents from a JSON file (a list, or {"data": [...]}).

    Entries without an id get a fresh ULID.
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            raw: Any = json.load(f)
    except FileNotFoundError:
        print(f"Error: Seed file not found: {file_path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in seed file: {e}")
        sys.exit(1)

    entries = raw.get("data", []) if isinstance(raw, dict) else raw
    documents = []
    for entry in entries:
        entry.setdefault("id", generate_ulid("anime"))
        documents.append(Anime.model_validate(entry))
    return documents


def print_report(report: BatchReport) -> None:
    print(f"\n{'=' * 60}")
    print(f"Anime processed:      {report.anime_processed}")
    print(f"Characters processed: {report.processed}")
    print(f"  succeeded: {report.succeeded}")
    print(f"  failed:    {report.failed}")
    print(f"  skipped:   {report.skipped}")
    print(f"  in flight: {report.in_progress}")
    if report.errors:
        print("Errors:")
        for err in report.errors:
            print(f"  - {err}")
    print(f"{'=' * 60}")


async def main() -> int:
    """
    Parse CLI options, build the enrichment runtime and run one batch.

    Returns the process exit code: 0 on completion, 2 when the document store
    is unreachable.
    """
    parser = argparse.ArgumentParser(
        description="Run one character enrichment batch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_character_enrichment.py --preset hourly
  python run_character_enrichment.py --preset weekly                       # includes retries
  python run_character_enrichment.py --anime-batch-size 2 --characters-per-anime 3
  python run_character_enrichment.py --priority --anime-batch-size 5       # newest un-enriched anime

Presets: frequent (2x3), hourly (3x5), daily (10x5), weekly (20x5, retries)
        """,
    )
    parser.add_argument(
        "--preset",
        choices=sorted(SCHEDULE_PRESETS),
        help="Batch shape of a scheduled cadence",
    )
    parser.add_argument("--anime-batch-size", type=int, help="Anime to process")
    parser.add_argument(
        "--characters-per-anime", type=int, help="Characters to enrich per anime"
    )
    parser.add_argument(
        "--include-retries",
        action="store_true",
        help="Also retry failed characters past their cooldown",
    )
    parser.add_argument(
        "--priority",
        action="store_true",
        help="Enrich the newest anime with never-enriched characters",
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="JSON file of anime documents to load before running (development)",
    )

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.service.log_level),
        format=settings.service.log_format,
    )

    anime_batch_size = args.anime_batch_size
    characters_per_anime = args.characters_per_anime
    include_retries = args.include_retries
    if args.preset:
        preset = SCHEDULE_PRESETS[args.preset]
        if anime_batch_size is None:
            anime_batch_size = preset.anime_batch_size
        if characters_per_anime is None:
            characters_per_anime = preset.characters_per_anime
        include_retries = include_retries or preset.include_retries

    runtime = await build_runtime(settings)
    try:
        if args.seed:
            documents = load_seed_file(args.seed)
            for anime in documents:
                await runtime.repository.save(anime)
            print(f"Seeded {len(documents)} anime from {Path(args.seed).name}")

        if args.priority:
            report = await runtime.service.enrich_priority(
                limit=5 if anime_batch_size is None else anime_batch_size,
                characters_per_anime=10 if characters_per_anime is None else characters_per_anime,
            )
        else:
            report = await runtime.service.enrich_batch(
                anime_batch_size, characters_per_anime, include_retries
            )
    except StoreUnavailableError:
        logger.exception("Document store unavailable; batch aborted")
        return 2
    finally:
        await close_runtime(runtime)

    print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
