"""
Command line entry point for the PIG score engine.

    pig-score score --sample sample.json --baselines baselines.json
    pig-score score --sample sample.json --database
    pig-score score-match --match match.json --timeline timeline.json --participant-id 3 --baselines b.json
    pig-score aggregate --match m1.json --timeline t1.json --match m2.json --output baselines.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.adapters.baseline_cache import BaselineCache
from src.config.settings import get_settings
from src.contracts.baseline import ChampionPatchBaseline
from src.contracts.participant import ParticipantSample
from src.core.aggregation import StatsAggregator
from src.core.observability import clear_correlation_id, configure_logging, set_correlation_id
from src.core.ports import BaselinePort
from src.core.scoring import (
    InvalidSampleError,
    PigScoreCalculator,
    ScoringError,
    extract_participant_outcome,
    extract_participant_sample,
)

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    settings = get_settings()
    configure_logging(settings.app_log_level)


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def load_baselines(path: Path) -> list[ChampionPatchBaseline]:
    """Read baselines from a JSON list.

    Entries are either baseline documents carrying ``championName`` and
    ``patch``, or stored rows ``{"champion_name", "patch", "data"}``.
    """
    baselines = []
    for entry in _read_json(path):
        if "data" in entry:
            entry = {**entry["data"], "championName": entry["champion_name"], "patch": entry["patch"]}
        baselines.append(ChampionPatchBaseline.model_validate(entry))
    return baselines


async def _baseline_source(args: argparse.Namespace) -> tuple[BaselinePort, Any]:
    if args.database:
        from src.adapters.database import DatabaseAdapter

        db = DatabaseAdapter()
        await db.connect()
        return BaselineCache(db), db
    if not args.baselines:
        raise SystemExit("Either --baselines or --database is required")
    return BaselineCache.from_baselines(load_baselines(args.baselines)), None


async def _score(args: argparse.Namespace, sample: ParticipantSample) -> int:
    cache, db = await _baseline_source(args)
    try:
        calculator = PigScoreCalculator(cache)
        breakdown = await calculator.calculate_async(sample)
    finally:
        if db is not None:
            await db.disconnect()
    if breakdown is None:
        logger.warning(f"No score for {sample.champion_name}: unscoreable sample or no reliable baseline")
        print("null")
        return 2
    print(breakdown.model_dump_json(indent=2))
    return 0


async def cmd_score(args: argparse.Namespace) -> int:
    sample = ParticipantSample.model_validate(_read_json(args.sample))
    return await _score(args, sample)


async def cmd_score_match(args: argparse.Namespace) -> int:
    timeline = _read_json(args.timeline) if args.timeline else None
    sample = extract_participant_sample(
        _read_json(args.match),
        timeline,
        participant_id=args.participant_id,
        puuid=args.puuid,
        death_quality=args.death_quality,
    )
    return await _score(args, sample)


async def cmd_aggregate(args: argparse.Namespace) -> int:
    timelines = list(args.timeline or [])
    aggregator = StatsAggregator()
    for index, match_path in enumerate(args.match):
        match = _read_json(match_path)
        timeline = _read_json(timelines[index]) if index < len(timelines) else None
        for participant in match.get("info", {}).get("participants", []):
            aggregator.add(
                extract_participant_outcome(match, timeline, participant_id=participant.get("participantId"))
            )
    logger.info(
        f"Aggregated {aggregator.participant_count} participants into "
        f"{aggregator.champion_patch_count} baselines"
    )
    documents = [
        {"champion_name": key.champion_name, "patch": key.patch, "data": data}
        for key, data in aggregator.baseline_documents().items()
    ]
    payload = json.dumps(documents, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
    else:
        print(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pig-score", description="PIG score engine")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_baseline_args(p: argparse.ArgumentParser) -> None:
        source = p.add_mutually_exclusive_group()
        source.add_argument("--baselines", type=Path, help="JSON list of baselines")
        source.add_argument("--database", action="store_true", help="Read baselines from DATABASE_URL")

    score = sub.add_parser("score", help="Score a ParticipantSample JSON document")
    score.add_argument("--sample", type=Path, required=True)
    add_baseline_args(score)
    score.set_defaults(handler=cmd_score)

    score_match = sub.add_parser("score-match", help="Score one participant of a Match-V5 payload")
    score_match.add_argument("--match", type=Path, required=True)
    score_match.add_argument("--timeline", type=Path)
    who = score_match.add_mutually_exclusive_group(required=True)
    who.add_argument("--participant-id", type=int)
    who.add_argument("--puuid")
    score_match.add_argument("--death-quality", type=float)
    add_baseline_args(score_match)
    score_match.set_defaults(handler=cmd_score_match)

    aggregate = sub.add_parser("aggregate", help="Fold Match-V5 payloads into baselines")
    aggregate.add_argument("--match", type=Path, action="append", required=True)
    aggregate.add_argument("--timeline", type=Path, action="append", help="Timeline per --match, in order")
    aggregate.add_argument("--output", type=Path)
    aggregate.set_defaults(handler=cmd_aggregate)
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    set_correlation_id()
    try:
        return await args.handler(args)
    except (InvalidSampleError, ValidationError) as e:
        logger.error(f"Invalid input: {e}")
        return 1
    except ScoringError as e:
        logger.error(f"Scoring failed: {e}")
        return 1
    finally:
        clear_correlation_id()


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
