#!/usr/bin/env python3
"""
Command-line mastering: render a file through the chain, or print a QC report.

Usage:
    python tools/master.py <subcommand> [options]

Subcommands:
    master <input> <output>     Master a file and write a WAV
    analyze <input>             Print loudness / peak / balance report

Options (master):
    --settings-json <path>      JSON file with settings (snake_case or camelCase keys)
    --eq-preset <name>          flat | vocal | bass | bright | warm | suno
    --output-preset <name>      streaming (44.1 kHz/16-bit) | studio (48 kHz/24-bit)
    --<field> <value>           Any settings field, e.g. --target-lufs -16 --no-glue-compression
    --qc                        Run QC analysis and write <output>.master.json
    --debug                     Debug logging; save <output>.resolved.json
"""
import sys
import os
import json
import argparse
import hashlib
import logging
import math
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mastering.analysis.qc import analyze
from mastering.core.io import AudioIO
from mastering.core.types import RenderStatus
from mastering.params import (
    EQ_PRESETS,
    OUTPUT_PRESETS,
    PARAM_SCHEMA,
    MasteringSettings,
    apply_eq_preset,
    apply_output_preset,
)
from mastering.render.offline import RenderJob


def _flag(field: str) -> str:
    return "--" + field.replace("_", "-")


def _print_report(report: dict) -> None:
    m = report["metrics"]
    print(f"QC Status: {report['status']}")
    print(f"  Integrated: {m['integrated_lufs']:.2f} LUFS" if math.isfinite(m["integrated_lufs"])
          else "  Integrated: undefined")
    print(f"  Peak: {m['peak_dbfs']:.2f} dBFS, RMS: {m['rms_dbfs']:.2f} dBFS, Crest: {m['crest_factor']:.2f}")
    print(f"  Balance low/mid/high: {m['low_ratio']:.3f} / {m['mid_ratio']:.3f} / {m['high_ratio']:.3f}")
    if "correlation" in m:
        print(f"  Correlation: {m['correlation']:.3f}")
    if report["failures"]:
        print("  FAILURES:")
        for f in report["failures"]:
            print(f"    - {f}")
    if report["warnings"]:
        print("  WARNINGS:")
        for w in report["warnings"]:
            print(f"    - {w}")


def _settings_from_args(args) -> MasteringSettings:
    params = {}
    if args.settings_json:
        with open(args.settings_json, "r") as f:
            params.update(json.load(f))
    for field in PARAM_SCHEMA:
        value = getattr(args, field, None)
        if value is not None:
            params[field] = value

    settings = MasteringSettings.from_dict(params)
    if args.eq_preset:
        settings = apply_eq_preset(settings, args.eq_preset)
    if args.output_preset:
        settings = apply_output_preset(settings, args.output_preset)
    return settings


def cmd_master(args):
    """Master one file."""
    settings = _settings_from_args(args)
    source = AudioIO.load(args.input)
    output = Path(args.output)

    def progress(percent, label):
        print(f"\r[{percent:3d}%] {label or ''}".ljust(40), end="", flush=True)

    job = RenderJob(source, settings, progress=progress, output_path=str(output), write_sidecar=args.qc)
    future = job.start()
    while True:
        try:
            result = future.result(timeout=0.1)
            break
        except FutureTimeout:
            continue
        except KeyboardInterrupt:
            print("\nCancelling...")
            job.cancel()
    print()

    if result.status != RenderStatus.SUCCESS:
        print(f"Render {result.status.value}: {result.reason}")
        return 1 if result.status == RenderStatus.FAILED else 130

    if args.debug:
        json_path = output.with_name(f"{output.stem}.resolved.json")
        with open(json_path, "w") as f:
            json.dump(settings.to_dict(), f, indent=2)
        print(f"Debug JSON: {json_path}")

    print(f"\n=== Master Complete ===")
    print(f"Output: {output}")
    print(f"Format: {settings.output_sample_rate_hz} Hz / {settings.output_bit_depth}-bit, "
          f"{result.buffer.num_channels} ch, {result.buffer.duration:.2f}s")
    print(f"Fingerprint SHA256: {hashlib.sha256(result.data).hexdigest()[:16]}...")
    for w in result.warnings:
        print(f"Warning: {w}")

    if args.qc and job.report:
        _print_report(job.report)
    return 0


def cmd_analyze(args):
    """Print the QC report for a file."""
    buffer = AudioIO.load(args.input)
    print(f"Input: {args.input} ({buffer.sample_rate} Hz, {buffer.num_channels} ch, {buffer.duration:.2f}s)")
    _print_report(analyze(buffer, args.ceiling_db, args.target_lufs))
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Mastering chain renderer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # master subcommand
    p_master = subparsers.add_parser("master", help="Master a file and write a WAV")
    p_master.add_argument("input", help="Input audio file")
    p_master.add_argument("output", help="Output WAV path")
    p_master.add_argument("--settings-json", type=str, help="JSON file with settings")
    p_master.add_argument("--eq-preset", choices=sorted(EQ_PRESETS), help="EQ preset")
    p_master.add_argument("--output-preset", choices=sorted(OUTPUT_PRESETS), help="Output format preset")
    p_master.add_argument("--qc", action="store_true", help="Run QC analysis and write sidecar JSON")
    p_master.add_argument("--debug", action="store_true", help="Debug logging, save resolved.json")
    for field, meta in PARAM_SCHEMA.items():
        if meta["type"] == "bool":
            p_master.add_argument(_flag(field), dest=field, action=argparse.BooleanOptionalAction,
                                  default=None, help=meta["description"])
        else:
            p_master.add_argument(_flag(field), dest=field, type=int if meta["type"] == "int" else float,
                                  default=None, help=f"{meta['description']} [{meta['min']}..{meta['max']}]")

    # analyze subcommand
    p_analyze = subparsers.add_parser("analyze", help="Print QC report for a file")
    p_analyze.add_argument("input", help="Input audio file")
    p_analyze.add_argument("--ceiling-db", type=float, default=-1.0)
    p_analyze.add_argument("--target-lufs", type=float, default=-14.0)
    p_analyze.add_argument("--debug", action="store_true", help="Debug logging")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    if args.command == "master":
        return cmd_master(args)
    elif args.command == "analyze":
        return cmd_analyze(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
