from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import Any

from volfund.core.fee_function import LinearFeeFunction


def _import_tool(module_name: str, rel_path: str) -> Any:
    root = Path(__file__).resolve().parents[1]
    abs_path = root / rel_path
    spec = importlib.util.spec_from_file_location(module_name, abs_path)
    assert spec and spec.loader, f"Could not load spec for {module_name} from {abs_path}"
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


replay = _import_tool("replay_triggers", "tools/replay_triggers.py")

BASE = 10**10
SCENARIO = (
    "oracle: {price: 5000, timestamp: 0}\n"
    "events:\n"
    "  - {at: 0, trigger: true}\n"
    "  - {at: 3600, set_price: 6000}\n"
    "  - {at: 7200, trigger: true}\n"
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "scenario.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_replay_prints_each_trigger(tmp_path: Path, capsys) -> None:
    rc = replay.main([str(_write(tmp_path, SCENARIO))])
    assert rc == 0
    fee = LinearFeeFunction()
    expected = BASE + fee.fee_for_interval(5000, 3600) + fee.fee_for_interval(6000, 3600)
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        f"[replay] at=0 value={BASE} turbulence=0",
        f"[replay] at=7200 value={expected} turbulence=0",
    ]


def test_replay_stops_on_rejected_trigger(tmp_path: Path, capsys) -> None:
    text = SCENARIO + "  - {at: 7200, trigger: true}\n"
    rc = replay.main([str(_write(tmp_path, text))])
    assert rc == 1
    out = capsys.readouterr().out
    assert "[replay] REJECT at=7200: StaleTriggerError" in out


def test_replay_resumes_from_state_dir(tmp_path: Path, capsys) -> None:
    scenario = _write(tmp_path, SCENARIO)
    state_dir = tmp_path / "state"
    assert replay.main([str(scenario), "--state-dir", str(state_dir)]) == 0
    capsys.readouterr()

    # The checkpointed ledger already holds these triggers.
    assert replay.main([str(scenario), "--state-dir", str(state_dir)]) == 1
    assert "REJECT at=0" in capsys.readouterr().out
