"""CLI runner that decodes one dump, analyzes it and emits JSON reports."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Sequence

from dumpsight.data import DecoderConfig, DumpSource
from dumpsight.domain import OverallStatus
from dumpsight.health import AnalysisConfig
from dumpsight.integration import (
    InMemoryDumpStore,
    analysis_to_jsonable,
    device_info_to_jsonable,
    job_to_jsonable,
    outcome_to_jsonable,
    process_dump,
    summarize_fields,
)
from dumpsight.logging_config import configure_logging


@dataclass(frozen=True, slots=True)
class AnalyzeCliArtifacts:
    """Paths and verdict produced by one CLI execution."""

    device_info_path: Path
    analysis_report_path: Path
    run_report_path: Path
    overall_status: OverallStatus
    critical_count: int
    warning_count: int


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for dump analysis."""
    parser = argparse.ArgumentParser(
        prog="dumpsight-analyze",
        description="Decode an MP/MDG memory dump, run health analysis and emit JSON reports.",
    )
    parser.add_argument("dump_path", type=Path, help="Path to the binary dump file.")
    parser.add_argument(
        "--device-type",
        choices=("auto", "MP", "MDG"),
        default="auto",
        help="Device layout to decode with; 'auto' infers it from the filename.",
    )
    parser.add_argument(
        "--workspace-root",
        type=Path,
        default=Path.cwd(),
        help="Workspace root path used to resolve relative inputs/outputs.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("artifacts/dumpsight"),
        help="Directory for device_info.json, analysis_report.json, and run_report.json.",
    )
    parser.add_argument("--batch-size", type=int, default=1000, help="Records decoded per batch.")
    parser.add_argument(
        "--max-buffer-bytes",
        type=int,
        default=None,
        help="Optional soft ceiling on the decode buffer; shrinks the effective batch size.",
    )
    parser.add_argument(
        "--max-occurrence-times",
        type=int,
        default=100,
        help="Maximum occurrence timestamps kept per issue.",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Console log level.",
    )
    parser.add_argument(
        "--fail-on-critical",
        action="store_true",
        help="Return exit code 1 if the overall status is critical.",
    )
    return parser


def run_analysis_from_args(args: argparse.Namespace) -> AnalyzeCliArtifacts:
    """Process one dump and persist output artifacts."""
    workspace_root = args.workspace_root.resolve()
    dump_path = _resolve_path(workspace_root, args.dump_path)
    output_dir = _resolve_path(workspace_root, args.output_dir)

    decoder_config = DecoderConfig(batch_size=args.batch_size, max_buffer_bytes=args.max_buffer_bytes)
    analysis_config = AnalysisConfig(max_occurrence_times=args.max_occurrence_times)
    store = InMemoryDumpStore()
    source = DumpSource.from_path(dump_path)
    report = process_dump(
        source,
        store,
        device_type=None if args.device_type == "auto" else args.device_type,
        decoder_config=decoder_config,
        analysis_config=analysis_config,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    device_info_path = output_dir / "device_info.json"
    analysis_report_path = output_dir / "analysis_report.json"
    run_report_path = output_dir / "run_report.json"

    _write_json(device_info_path, device_info_to_jsonable(report.device_info))
    _write_json(analysis_report_path, analysis_to_jsonable(report.analysis))
    _write_json(
        run_report_path,
        {
            "workspace_root": str(workspace_root),
            "dump_path": str(dump_path),
            "dump_size_bytes": source.size,
            "job": job_to_jsonable(store.get_dump(report.dump_id)),
            "decoder_config": asdict(decoder_config),
            "decode": outcome_to_jsonable(report.outcome),
            "max_occurrence_times": analysis_config.max_occurrence_times,
            "field_summary": summarize_fields(report.records),
            "overall_status": report.analysis.overall_status.value,
            "device_info_path": str(device_info_path),
            "analysis_report_path": str(analysis_report_path),
        },
    )

    return AnalyzeCliArtifacts(
        device_info_path=device_info_path,
        analysis_report_path=analysis_report_path,
        run_report_path=run_report_path,
        overall_status=report.analysis.overall_status,
        critical_count=report.analysis.critical_count,
        warning_count=report.analysis.warning_count,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        artifacts = run_analysis_from_args(args)
    except Exception as exc:
        print(f"[ERROR] dump analysis failed: {exc}", file=sys.stderr)
        return 2

    print(f"device_info: {artifacts.device_info_path}")
    print(f"analysis_report: {artifacts.analysis_report_path}")
    print(f"run_report: {artifacts.run_report_path}")
    print(f"overall_status: {artifacts.overall_status.value}")
    print(f"critical_issues: {artifacts.critical_count}")
    print(f"warnings: {artifacts.warning_count}")
    if args.fail_on_critical and artifacts.overall_status == OverallStatus.CRITICAL:
        print("[ERROR] Overall status is critical and --fail-on-critical is set.", file=sys.stderr)
        return 1
    return 0


def _resolve_path(base_dir: Path, path_value: Path) -> Path:
    if path_value.is_absolute():
        return path_value.resolve()
    return (base_dir / path_value).resolve()


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


if __name__ == "__main__":
    raise SystemExit(main())
