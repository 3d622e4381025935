"""Tests for filename timestamp parsing."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dumpsight.data.timestamps import parse_filename_timestamp, resolve_base_timestamp
from dumpsight.domain.models import TimestampProvenance


@pytest.mark.parametrize(
    "filename",
    ["MP_20250121_181938.bin", "MP_20250121-181938.bin", "MP_20250121T181938.bin", "MP20250121181938.bin"],
)
def test_parses_supported_separators(filename: str) -> None:
    expected = int(datetime(2025, 1, 21, 18, 19, 38, tzinfo=UTC).timestamp() * 1000)
    assert parse_filename_timestamp(filename) == expected


def test_invalid_date_is_skipped() -> None:
    assert parse_filename_timestamp("MP_20251341_181938.bin") is None
    assert parse_filename_timestamp("MP_dump.bin") is None


def test_resolve_uses_clock_when_filename_has_no_timestamp() -> None:
    assert resolve_base_timestamp("MP.bin", clock=lambda: 12.5) == (12_500, TimestampProvenance.WALL_CLOCK)
    stamp, provenance = resolve_base_timestamp("MP_20000101_000000.bin", clock=lambda: 12.5)
    assert provenance == TimestampProvenance.FILENAME
    assert stamp == 946_684_800_000
