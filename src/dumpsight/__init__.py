"""DumpSight: MP/MDG telemetry dump decoding and health analysis."""
