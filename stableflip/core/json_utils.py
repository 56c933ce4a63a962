"""
Fast JSON utilities backed by orjson.

Used for structured log payloads and the persisted engine state.

Usage:
    from stableflip.core.json_utils import dumps, loads

    log.info(dumps({"event": "quote_placed", "tick": -50}))
"""

from __future__ import annotations

from typing import Any

import orjson

# orjson refuses integers outside the signed/unsigned 64-bit range
_INT_MIN = -(2 ** 63)
_INT_MAX = 2 ** 64 - 1


def _coerce(obj: Any) -> Any:
    """Stringify integers orjson cannot encode (uint128 order ids, uint256 amounts)."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return obj if _INT_MIN <= obj <= _INT_MAX else str(obj)
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_coerce(v) for v in obj]
    return obj


def dumps(obj: Any) -> str:
    """Compact JSON encode to string."""
    return orjson.dumps(_coerce(obj), default=str).decode("utf-8")


def dumps_pretty(obj: Any) -> bytes:
    """Indented JSON encode to bytes, for human-readable files."""
    return orjson.dumps(_coerce(obj), default=str, option=orjson.OPT_INDENT_2)


def loads(s: str | bytes) -> Any:
    return orjson.loads(s)
