"""Command-line utility for generating insight bundles from normalized readings.

The tool expects a JSON insight request::

    {
        "glucose": [{"timestamp": "2025-01-01T00:00:00Z", "value": 110}, ...],
        "insulin": [{"timestamp": "2025-01-01T00:00:00Z", "value": 2.5}, ...],
        "medication": {"before": [...], "after": [...]},
        "lifestyle": {"exercise": true, "stress": 5, "sleep": 7.5}
    }

Use ``--learn`` with a learning request (``glucose``/``insulin``/
``environmental``/``lifestyle`` feedback lists) to run one adaptive learning
cycle first; the resulting ensemble weights are reported with the insights.
Results are written as JSON to stdout or to ``--output`` if provided.
"""
from __future__ import annotations

import argparse
import json
import logging
import math
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from cgm_insights.aggregator import InsightAggregator
from cgm_insights.config import LearningSettings
from cgm_insights.ingest import parse_insight_request, parse_learning_batch
from cgm_insights.learning import AdaptiveLearningEngine


def to_jsonable(value: Any) -> Any:
    """Convert result dataclasses into JSON-compatible structures."""

    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _load_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Missing input file: {path}")
    with path.open() as handle:
        return json.load(handle)


def run(
    request: Mapping[str, Any],
    *,
    learning_request: Mapping[str, Any] | None = None,
    settings: LearningSettings | None = None,
    seed: int | None = None,
) -> dict[str, Any]:
    settings = settings or LearningSettings()
    engine = AdaptiveLearningEngine(settings)
    output: dict[str, Any] = {}

    if learning_request is not None:
        outcome = engine.learn_from_new_data(parse_learning_batch(learning_request))
        output["learning"] = to_jsonable(outcome)
        output["status"] = to_jsonable(engine.get_system_status())

    aggregator = InsightAggregator(
        engine.get_system_status().adaptive_weights,
        settings=settings,
        rng=np.random.default_rng(seed),
    )
    bundle = aggregator.generate_comprehensive_insights(**parse_insight_request(request))
    output["insights"] = to_jsonable(bundle)
    return output


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate CGM insight bundles")
    parser.add_argument("--input", type=Path, required=True, help="JSON insight request")
    parser.add_argument("--learn", type=Path, help="Optional JSON learning request to run first")
    parser.add_argument("--output", type=Path, help="Optional output JSON file")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print JSON with the given indent")
    parser.add_argument("--seed", type=int, default=None, help="Seed for k-means initialisation")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(message)s")

    request = _load_json(args.input)
    learning_request = _load_json(args.learn) if args.learn else None
    results = run(
        request,
        learning_request=learning_request,
        settings=LearningSettings.from_env(),
        seed=args.seed,
    )

    output_text = json.dumps(results, indent=args.indent)
    if args.output:
        args.output.write_text(output_text)
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
