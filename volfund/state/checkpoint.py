"""
On-disk checkpoints for one engine instance.

Layout (one directory per engine):
- ``ledger.jsonl``: append-only log, one canonical JSON object
  ``{"timestamp": .., "value": ..}`` per line.
- ``state.json``: fixed-size record ``{"version", "ledger_length", "ledger_head",
  "engine", "turbulence", "commitment"}``, replaced atomically.

Per trigger the ledger line is appended (and fsynced) first, then the state
record is replaced. ``ledger_length`` in the state record is the commit point:
lines beyond it belong to a trigger that never committed and are discarded.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from ..core.types import EngineState, TurbulenceState
from .canonical import canonical_json_bytes, commitment_hex


CHECKPOINT_VERSION = 1
LEDGER_FILENAME = "ledger.jsonl"
STATE_FILENAME = "state.json"


def _record_to_dict(record: Any) -> Dict[str, Any]:
    return {f.name: getattr(record, f.name) for f in fields(record)}


def engine_state_from_dict(d: Mapping[str, Any]) -> EngineState:
    """Raises KeyError on missing fields and TypeError on wrong types."""
    return EngineState(**{f.name: d[f.name] for f in fields(EngineState)})


def turbulence_state_from_dict(d: Mapping[str, Any]) -> TurbulenceState:
    return TurbulenceState(**{f.name: d[f.name] for f in fields(TurbulenceState)})


@dataclass(frozen=True)
class Checkpoint:
    ledger: List[Tuple[int, int]]
    engine_state: EngineState
    turbulence_state: TurbulenceState


class CheckpointStore:
    """Append-only ledger log plus an atomically replaced state record."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.ledger_path = self.directory / LEDGER_FILENAME
        self.state_path = self.directory / STATE_FILENAME
        # Byte offset of the last committed ledger line; None until scanned.
        self._committed_bytes: Optional[int] = None

    # ------------------------------------------------------------------ read

    def _read_state_record(self) -> Optional[Dict[str, Any]]:
        if not self.state_path.is_file():
            return None
        record = json.loads(self.state_path.read_text(encoding="utf-8"))
        if not isinstance(record, dict):
            raise ValueError(f"{self.state_path} must hold a JSON object")
        if record.get("version") != CHECKPOINT_VERSION:
            raise ValueError(f"unsupported checkpoint version: {record.get('version')!r}")
        body = {k: v for k, v in record.items() if k != "commitment"}
        if record.get("commitment") != commitment_hex("checkpoint", body, version=CHECKPOINT_VERSION):
            raise ValueError(f"{self.state_path} commitment mismatch")
        return record

    def _read_ledger_lines(self, length: int) -> Tuple[List[Tuple[int, int]], int]:
        entries: List[Tuple[int, int]] = []
        offset = 0
        if length == 0 or not self.ledger_path.is_file():
            return entries, offset
        with self.ledger_path.open("rb") as fh:
            for raw in fh:
                if len(entries) == length:
                    break
                obj = json.loads(raw)
                entries.append((int(obj["timestamp"]), int(obj["value"])))
                offset += len(raw)
        if len(entries) != length:
            raise ValueError(f"ledger log holds {len(entries)} entries, state record expects {length}")
        return entries, offset

    def load(self) -> Optional[Checkpoint]:
        """Return the last committed checkpoint, or None for an empty store."""
        record = self._read_state_record()
        if record is None:
            self._committed_bytes = 0
            if self.ledger_path.is_file() and self.ledger_path.stat().st_size > 0:
                logger.warning("discarding uncommitted ledger lines in {}", self.ledger_path)
            return None

        length = int(record["ledger_length"])
        entries, offset = self._read_ledger_lines(length)
        self._committed_bytes = offset
        if self.ledger_path.stat().st_size > offset:
            logger.warning(
                "discarding {} bytes of uncommitted ledger lines in {}",
                self.ledger_path.stat().st_size - offset,
                self.ledger_path,
            )

        head = record.get("ledger_head")
        if entries and (head is None or tuple(head) != entries[-1]):
            raise ValueError("ledger head in state record does not match ledger log")

        return Checkpoint(
            ledger=entries,
            engine_state=engine_state_from_dict(record["engine"]),
            turbulence_state=turbulence_state_from_dict(record["turbulence"]),
        )

    # ----------------------------------------------------------------- write

    def record(
        self,
        *,
        ledger_length: int,
        entry: Tuple[int, int],
        engine_state: EngineState,
        turbulence_state: TurbulenceState,
    ) -> None:
        """Commit one trigger: ``entry`` becomes ledger line ``ledger_length - 1``."""
        if self._committed_bytes is None:
            self.load()
        assert self._committed_bytes is not None

        line = canonical_json_bytes({"timestamp": entry[0], "value": entry[1]}) + b"\n"
        mode = "r+b" if self.ledger_path.is_file() else "wb"
        with self.ledger_path.open(mode) as fh:
            fh.truncate(self._committed_bytes)
            fh.seek(self._committed_bytes)
            fh.write(line)
            fh.flush()
            os.fsync(fh.fileno())

        body = {
            "version": CHECKPOINT_VERSION,
            "ledger_length": ledger_length,
            "ledger_head": [entry[0], entry[1]],
            "engine": _record_to_dict(engine_state),
            "turbulence": _record_to_dict(turbulence_state),
        }
        record = dict(body, commitment=commitment_hex("checkpoint", body, version=CHECKPOINT_VERSION))
        tmp_path = self.state_path.with_suffix(".json.tmp")
        with tmp_path.open("wb") as fh:
            fh.write(canonical_json_bytes(record))
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, self.state_path)

        self._committed_bytes += len(line)
        logger.debug("checkpointed ledger entry #{} at {}", ledger_length, entry[0])
