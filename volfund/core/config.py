"""
Configuration loading (imperative shell helpers).

Engine constants live in a YAML document:

    engine:
      precision: 10000000000
      heartbeat_seconds: 3300
      growth_step: 100
      decay_step: 50
      max_turbulence: 1000
      min_turbulence_floor: 100
      max_rounds_scanned: 128
    fee:
      kind: linear            # or: tiered
      daily_rate_bps: 250
      reference_price: 5000

Missing keys fall back to ``EngineConfig`` defaults; unknown keys are rejected.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .fee_function import FeeFunction, LinearFeeFunction, tiered_from_pairs
from .types import EngineConfig


_ENGINE_KEYS = frozenset(f.name for f in fields(EngineConfig))


def _require_mapping(value: Any, *, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{name} must be a mapping")
    return value


def engine_config_from_mapping(obj: Mapping[str, Any] | None) -> EngineConfig:
    obj = _require_mapping(obj, name="engine")
    unknown = sorted(set(obj) - _ENGINE_KEYS)
    if unknown:
        raise ConfigurationError(f"unknown engine config keys: {', '.join(unknown)}")
    try:
        return EngineConfig(**dict(obj))
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc


def fee_function_from_mapping(obj: Mapping[str, Any] | None, *, precision: int) -> FeeFunction:
    obj = dict(_require_mapping(obj, name="fee"))
    kind = obj.pop("kind", "linear")
    try:
        if kind == "linear":
            unknown = sorted(set(obj) - {"daily_rate_bps", "reference_price"})
            if unknown:
                raise ConfigurationError(f"unknown linear fee keys: {', '.join(unknown)}")
            return LinearFeeFunction(precision=precision, **obj)
        if kind == "tiered":
            unknown = sorted(set(obj) - {"base_rate_bps", "tiers"})
            if unknown:
                raise ConfigurationError(f"unknown tiered fee keys: {', '.join(unknown)}")
            tiers = obj.get("tiers") or []
            pairs = [(int(t["min_price"]), int(t["daily_rate_bps"])) for t in tiers]
            return tiered_from_pairs(pairs, int(obj.get("base_rate_bps", 0)), precision)
    except (TypeError, KeyError) as exc:
        raise ConfigurationError(f"invalid fee config: {exc}") from exc
    raise ConfigurationError(f"unknown fee kind: {kind!r}")


def load_config_document(path: str | Path) -> Mapping[str, Any]:
    doc = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return _require_mapping(doc, name="config document")


def load_engine_config(path: str | Path) -> EngineConfig:
    """Load the ``engine:`` block of a YAML config file."""
    return engine_config_from_mapping(load_config_document(path).get("engine"))


def load_fee_function(path: str | Path, config: EngineConfig) -> FeeFunction:
    """Load the ``fee:`` block of a YAML config file."""
    return fee_function_from_mapping(load_config_document(path).get("fee"), precision=config.precision)
