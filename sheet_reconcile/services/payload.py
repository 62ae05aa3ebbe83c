from __future__ import annotations

import json
from collections.abc import Sequence

"""Master payload codec.

Master payloads are JSON. New payloads are written as an object mapping column
name to value, in header order, so that a later archive with reordered
columns still lines up by name. Plain JSON arrays (positional values) are
accepted on read.
"""

__all__ = [
    "MalformedPayloadError",
    "encode_payload",
    "decode_payload",
]


class MalformedPayloadError(ValueError):
    """The stored payload is not a JSON object/array of scalar values."""


def encode_payload(columns: Sequence[str], values: Sequence[str]) -> str:
    if len(columns) != len(values):
        raise ValueError(f"{len(columns)} columns but {len(values)} values")
    return json.dumps(dict(zip(columns, values, strict=True)), ensure_ascii=False)


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise MalformedPayloadError("nested values are not supported")
    return str(value)


def decode_payload(data: str | None, columns: Sequence[str]) -> tuple[str, ...]:
    """Decode ``data`` into values aligned with ``columns``.

    - object: looked up by column name; absent names yield ``""``
    - array: taken by position; missing trailing positions yield ``""``
    """
    if data is None:
        raise MalformedPayloadError("payload is empty")
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"invalid json: {e}") from e

    if isinstance(parsed, dict):
        return tuple(_as_text(parsed.get(col)) for col in columns)
    if isinstance(parsed, list):
        padded = list(parsed[: len(columns)]) + [None] * max(len(columns) - len(parsed), 0)
        return tuple(_as_text(v) for v in padded)
    raise MalformedPayloadError(f"expected object or array, got {type(parsed).__name__}")
