"""Tests for bounds-checked primitive reads."""

from __future__ import annotations

import struct

import pytest

from dumpsight.data.binary import read_scalar


def test_reads_little_endian_primitives() -> None:
    buffer = struct.pack("<fBHI", 1.5, 7, 513, 70_000)
    assert read_scalar(buffer, 0, "<f4") == pytest.approx(1.5)
    assert read_scalar(buffer, 4, "u1") == 7
    assert read_scalar(buffer, 5, "<u2") == 513
    assert read_scalar(buffer, 7, "<u4") == 70_000


def test_out_of_bounds_read_returns_none_not_zero() -> None:
    assert read_scalar(b"\x00\x00", 0, "<f4") is None
    assert read_scalar(b"\x00\x00", 2, "u1") is None
    assert read_scalar(b"\x00\x00", -1, "u1") is None
    assert read_scalar(b"\x00\x00", 0, "<u2") == 0


def test_non_finite_float_returns_none() -> None:
    assert read_scalar(struct.pack("<f", float("nan")), 0, "<f4") is None
    assert read_scalar(struct.pack("<f", float("inf")), 0, "<f4") is None


def test_unknown_dtype_raises() -> None:
    with pytest.raises(ValueError, match="unsupported primitive dtype"):
        read_scalar(b"\x00" * 8, 0, "<f8")
