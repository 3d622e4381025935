"""Base timestamp resolution from dump filenames."""

from __future__ import annotations

from datetime import UTC, datetime
import re
import time
from typing import Callable

from dumpsight.domain.models import TimestampProvenance

_FILENAME_TIMESTAMP_PATTERN = re.compile(r"(?<!\d)(?P<date>\d{8})[_\-T]?(?P<time>\d{6})(?!\d)")


def parse_filename_timestamp(filename: str) -> int | None:
    """Return epoch milliseconds (UTC) for the first valid `YYYYMMDD[_-T]HHMMSS` in a filename."""
    for match in _FILENAME_TIMESTAMP_PATTERN.finditer(filename):
        try:
            parsed = datetime.strptime(
                f"{match.group('date')}{match.group('time')}",
                "%Y%m%d%H%M%S",
            ).replace(tzinfo=UTC)
        except ValueError:
            continue
        return int(parsed.timestamp() * 1000)
    return None


def resolve_base_timestamp(
    filename: str,
    *,
    clock: Callable[[], float] | None = None,
) -> tuple[int, TimestampProvenance]:
    """Return base timestamp and its provenance; falls back to wall-clock time."""
    parsed = parse_filename_timestamp(filename)
    if parsed is not None:
        return parsed, TimestampProvenance.FILENAME
    now = time.time() if clock is None else clock()
    return int(now * 1000), TimestampProvenance.WALL_CLOCK
