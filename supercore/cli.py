"""supercore CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import sys
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader
    from supercore.models.outcome import HistoryRecord


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="supercore",
        description="Adaptive signal ensemble for BIG/SMALL outcome streams",
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--predict", action="store_true", help="Run one prediction cycle over a history file")
    mode.add_argument("--replay", action="store_true", help="Walk forward through a history file and score it")
    mode.add_argument("--run", action="store_true", help="Poll the result feed and predict continuously")

    parser.add_argument(
        "--history",
        type=str,
        default=None,
        help="JSON history file, newest first (required for --predict and --replay)",
    )
    parser.add_argument(
        "--state",
        type=str,
        default=None,
        help="Engine state JSON file, read before and written after --predict",
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default="config",
        help="Config directory path (default: config)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Environment name (default: from SUPERCORE_ENV)",
    )
    parser.add_argument(
        "--preset",
        type=str,
        default=None,
        help="Tuning preset from <config-dir>/presets/ (e.g. conservative)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="RNG seed for reproducible forced decisions",
    )

    return parser


def _load_config(args: argparse.Namespace) -> ConfigLoader:
    from supercore.config.loader import ConfigLoader

    config = ConfigLoader(config_dir=args.config_dir, env=args.env)
    config.load()
    if args.preset:
        config.load_preset(args.preset)
    config.validate_ranges()
    return config


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, value: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(value, f, indent=2, default=str)


def _read_history(path: Path) -> list[HistoryRecord]:
    from supercore.runner import decode_history

    return decode_history(_read_json(path))


def run_predict(args: argparse.Namespace) -> int:
    """One cycle; prints the prediction and writes state and history back."""
    from supercore.engine.orchestrator import CycleOrchestrator
    from supercore.runner import build_ml_client, encode_history

    config = _load_config(args)
    history_path = Path(args.history)
    history = _read_history(history_path)

    prior: Any = None
    state_path = Path(args.state) if args.state else None
    if state_path is not None and state_path.exists():
        try:
            prior = _read_json(state_path)
        except json.JSONDecodeError:
            print(f"State file {state_path} is not valid JSON; starting cold.", file=sys.stderr)

    orchestrator = CycleOrchestrator(config, ml_client=build_ml_client(config))
    result = orchestrator.run_cycle_sync(history, prior, rng=random.Random(args.seed))

    if state_path is not None:
        _write_json(state_path, result.state.to_payload())
    limit = int(config.get("data.history_limit", 500))
    _write_json(history_path, encode_history(result.history[:limit]))

    print(result.prediction.model_dump_json(indent=2))
    return 0


async def _replay(config: ConfigLoader, history: list[HistoryRecord], seed: int | None) -> dict[str, Any]:
    from supercore.engine.orchestrator import CycleOrchestrator
    from supercore.models.outcome import HistoryRecord
    from supercore.runner import build_ml_client, merge_result

    orchestrator = CycleOrchestrator(config, ml_client=build_ml_client(config))
    rng = random.Random(seed)
    limit = int(config.get("data.history_limit", 500))

    state: Any = None
    working: list[HistoryRecord] = []
    scored = hits = forced = forced_hits = 0
    levels: Counter[int] = Counter()
    for record in reversed([r for r in history if r.is_resolved]):
        result = await orchestrator.run_cycle([HistoryRecord(period=record.period), *working], state, rng=rng)
        state = result.state
        working, _ = merge_result(result.history, record, limit)

        prediction = result.prediction
        correct = prediction.final_decision == record.outcome
        scored += 1
        hits += correct
        levels[prediction.confidence_level] += 1
        if prediction.is_forced_prediction:
            forced += 1
            forced_hits += correct

    ensemble = scored - forced
    return {
        "periods": scored,
        "hit_rate": round(hits / scored, 4) if scored else None,
        "forced": forced,
        "ensemble_hit_rate": round((hits - forced_hits) / ensemble, 4) if ensemble else None,
        "levels": {str(level): levels[level] for level in (1, 2, 3)},
        "final_drift_state": state.drift.last_state.value if state is not None else None,
    }


def run_replay(args: argparse.Namespace) -> int:
    """Sequential walk-forward over a history file, oldest period first."""
    config = _load_config(args)
    history = _read_history(Path(args.history))
    if not history:
        print(f"No usable records in {args.history}", file=sys.stderr)
        return 1

    summary = asyncio.run(_replay(config, history, args.seed))
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from supercore.config.loader import ConfigError

    parser = build_parser()
    args = parser.parse_args(argv)

    if (args.predict or args.replay) and not args.history:
        parser.error("--history is required for --predict and --replay")

    try:
        if args.predict:
            return run_predict(args)

        if args.replay:
            return run_replay(args)

        if args.run:
            print(f"Starting result poller (env: {args.env or 'default'})")
            from supercore.runner import run_poller

            return run_poller(config_dir=args.config_dir, env=args.env, preset=args.preset, seed=args.seed)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"File not found: {exc.filename}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
