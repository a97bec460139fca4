#!/usr/bin/env python3
"""Replay a scripted sequence of oracle rounds and triggers through the engine.

Scenario file (YAML):

    engine: {heartbeat_seconds: 3300}
    fee: {kind: linear, daily_rate_bps: 250, reference_price: 5000}
    oracle: {price: 5000, timestamp: 0}
    events:
      - {at: 0, trigger: true}
      - {at: 3600, set_price: 6000}
      - {at: 7200, trigger: true}

Prints one line per trigger. Exits 1 on the first rejected trigger.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Mapping

from volfund.core.config import engine_config_from_mapping, fee_function_from_mapping, load_config_document
from volfund.core.errors import FundingEngineError
from volfund.core.oracle import InMemoryPriceOracle
from volfund.integration.engine import FeeAccumulationEngine
from volfund.state.checkpoint import CheckpointStore


def _run(doc: Mapping[str, Any], *, state_dir: Path | None) -> int:
    config = engine_config_from_mapping(doc.get("engine"))
    fee_function = fee_function_from_mapping(doc.get("fee"), precision=config.precision)
    oracle_cfg = doc.get("oracle") or {}
    oracle = InMemoryPriceOracle(int(oracle_cfg.get("price", 0)), int(oracle_cfg.get("timestamp", 0)))

    if state_dir is not None:
        engine = FeeAccumulationEngine.from_store(CheckpointStore(state_dir), oracle, fee_function, config)
    else:
        engine = FeeAccumulationEngine(oracle, fee_function, config)

    for event in doc.get("events") or []:
        at = int(event["at"])
        if "set_price" in event:
            oracle.set_price(int(event["set_price"]), at)
        if event.get("trigger"):
            try:
                value = engine.on_trigger(at)
            except FundingEngineError as exc:
                print(f"[replay] REJECT at={at}: {type(exc).__name__}: {exc}")
                return 1
            print(f"[replay] at={at} value={value} turbulence={engine.turbulence_percent()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("scenario", type=Path, help="YAML scenario file")
    ap.add_argument("--state-dir", type=Path, default=None, help="checkpoint directory (optional)")
    args = ap.parse_args(argv)
    return _run(load_config_document(args.scenario), state_dir=args.state_dir)


if __name__ == "__main__":
    sys.exit(main())
