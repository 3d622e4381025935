"""Bounds-checked little-endian primitive reads."""

from __future__ import annotations

import math
import struct

_STRUCT_FORMATS: dict[str, struct.Struct] = {
    "<f4": struct.Struct("<f"),
    "u1": struct.Struct("<B"),
    "<u2": struct.Struct("<H"),
    "<u4": struct.Struct("<I"),
}


def read_scalar(buffer: bytes | bytearray | memoryview, offset: int, dtype: str) -> float | int | None:
    """Read one primitive at `offset`.

    Returns `None` when the read would fall outside `buffer` or when a float
    decodes to NaN/inf, so truncated input is never confused with a real zero.
    """
    codec = _STRUCT_FORMATS.get(dtype)
    if codec is None:
        raise ValueError(f"unsupported primitive dtype: {dtype}")
    if offset < 0 or offset + codec.size > len(buffer):
        return None
    (value,) = codec.unpack_from(buffer, offset)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
