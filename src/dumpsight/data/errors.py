"""Fatal decoding errors."""

from __future__ import annotations


class FormatError(ValueError):
    """Dump does not match any supported layout (too short, unknown device type)."""
