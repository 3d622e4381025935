"""Dump decoding, field layouts and header extraction."""

from dumpsight.data.decoder import (
    DEFAULT_BATCH_SIZE,
    DecodeOutcome,
    DecoderConfig,
    decode_all,
    decode_dump,
    record_count,
)
from dumpsight.data.errors import FormatError
from dumpsight.data.header import extract_device_info
from dumpsight.data.layouts import HEADER_SIZE, MDG_LAYOUT, MP_LAYOUT, DeviceLayout, FieldSpec, layout_for
from dumpsight.data.sources import DumpSource
from dumpsight.data.timestamps import parse_filename_timestamp, resolve_base_timestamp

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "HEADER_SIZE",
    "MDG_LAYOUT",
    "MP_LAYOUT",
    "DecodeOutcome",
    "DecoderConfig",
    "DeviceLayout",
    "DumpSource",
    "FieldSpec",
    "FormatError",
    "decode_all",
    "decode_dump",
    "extract_device_info",
    "layout_for",
    "parse_filename_timestamp",
    "record_count",
    "resolve_base_timestamp",
]
