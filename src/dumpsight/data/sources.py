"""Seekable byte sources for dump files."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Callable

from dumpsight.data.layouts import HEADER_SIZE


@dataclass(frozen=True, slots=True)
class DumpSource:
    """Named dump payload that can be opened as a binary stream."""

    filename: str
    size: int
    opener: Callable[[], BinaryIO]

    @classmethod
    def from_path(cls, path: str | Path) -> DumpSource:
        """Describe a dump file on disk; `OSError` propagates for unreadable paths."""
        resolved = Path(path)
        if not resolved.exists():
            raise FileNotFoundError(f"dump file does not exist: {resolved}")
        if not resolved.is_file():
            raise IsADirectoryError(f"dump path is not a file: {resolved}")
        return cls(
            filename=resolved.name,
            size=resolved.stat().st_size,
            opener=lambda: resolved.open("rb"),
        )

    @classmethod
    def from_bytes(cls, payload: bytes, *, filename: str) -> DumpSource:
        """Wrap an in-memory dump."""
        data = bytes(payload)
        return cls(filename=filename, size=len(data), opener=lambda: BytesIO(data))

    def open(self) -> BinaryIO:
        return self.opener()

    def read_header(self) -> bytes:
        """Return up to the first `HEADER_SIZE` bytes."""
        with self.open() as stream:
            return stream.read(HEADER_SIZE)
