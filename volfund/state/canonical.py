"""
Deterministic canonical encoding for persisted engine records.

Checkpoint files are hashed and compared byte-for-byte, so every record goes
through one encoder: sorted keys, no whitespace, integers only.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


CANONICAL_ENCODING_VERSION = 1


def _reject_floats(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _reject_floats(v)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _reject_floats(item)


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing and append-only logs.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace, so one record is one line)
    - allow_nan=False
    - floats rejected (fixed-point values are ints end to end)
    """
    _reject_floats(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Domain separation prefix for commitments.

    ASCII-only and NUL-terminated so concatenation stays unambiguous.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label or not label.isascii():
        raise ValueError("label must be ASCII without NUL")
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"volfund:" + label.encode("ascii") + b":v" + str(version).encode("ascii") + b"\x00"


def commitment_hex(label: str, value: Any, *, version: int = 1) -> str:
    return sha256_hex(domain_sep_bytes(label, version=version) + canonical_json_bytes(value))
