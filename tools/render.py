#!/usr/bin/env python3
"""
Canonical renderer tool for wooden-fish knock streams.

Usage:
    python tools/render.py <subcommand> [options]

Subcommands:
    stream       Render a full stream (default 90 minutes to ding.mp3)
    schedule     Print the knock schedule only
    one-shot     Render a single double knock to WAV

Options (stream):
    --duration <int>      Duration in minutes (default: 90)
    --output <path>       Output file (default: ding.mp3)
    --seed <int>          Fixed seed (default: wall clock)
    --sample-rate <int>   Sample rate in Hz (default: 22050)
    --no-encode           Skip ffmpeg, write uncompressed WAV under --output
    --debug               Save <output>.resolved.json with param trace
    --qc                  Run QC analysis
"""
import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tools.render_core import render_to_file, wall_clock_seed
from mokugyo.core.errors import MokugyoError
from mokugyo.core.io import AudioIO
from mokugyo.core.params import get_param
from mokugyo.core.pipeline import render_knock
from mokugyo.params.resolve import resolve_params
from mokugyo.schedule.scheduler import EventScheduler

logger = logging.getLogger("mokugyo-engine")


def cmd_stream(args):
    """Render a full stream and export it."""
    print(f"Generating {args.duration}-minute {args.output} with random prompt tones...")

    render, result, debug_info = render_to_file(
        duration_min=args.duration,
        output_path=args.output,
        seed=args.seed,
        sample_rate=args.sample_rate,
        encode=not args.no_encode,
        debug=args.debug,
        qc=args.qc,
        script_name="render.py stream",
    )

    print(f"Successfully generated {result.path}")
    if not result.encoded and result.fallback_reason:
        print(f"  (uncompressed WAV: {result.fallback_reason})")
    print(f"Seed: {debug_info['seed']}")
    print(f"Generated {len(render.triggers)} prompt tones")
    for i, trig in enumerate(render.triggers):
        print(f"Tone {i + 1}: at {trig.instant:.1f} seconds (2 wooden fish sounds in sequence)")

    if args.debug:
        print(f"Debug JSON: {debug_info['debug_json']}")

    if args.qc and debug_info.get("qc_result"):
        qc = debug_info["qc_result"]
        print(f"QC Status: {qc['status']}")
        if qc["failures"]:
            print("  FAILURES:")
            for f in qc["failures"]:
                print(f"    - {f}")
        if qc["warnings"]:
            print("  WARNINGS:")
            for w in qc["warnings"]:
                print(f"    - {w}")
        if qc["status"] == "FAIL":
            return 1

    return 0


def cmd_schedule(args):
    """Print the schedule for a duration and seed."""
    seed = args.seed if args.seed is not None else wall_clock_seed()
    resolved = resolve_params({"stream": {"duration_min": args.duration}})
    scheduler = EventScheduler(
        seed=seed,
        interval_min_s=get_param(resolved, "schedule.interval_min_s"),
        interval_max_s=get_param(resolved, "schedule.interval_max_s"),
    )
    triggers = scheduler.schedule(args.duration * 60.0)
    print(f"Seed: {seed}")
    print(f"{len(triggers)} prompt tones in {args.duration} minutes")
    for i, trig in enumerate(triggers):
        print(f"Tone {i + 1}: at {trig.instant:.1f} seconds")
    return 0


def cmd_one_shot(args):
    """Render one double knock to WAV."""
    resolved = resolve_params({"stream": {"sample_rate": args.sample_rate}} if args.sample_rate else {})
    sr = get_param(resolved, "stream.sample_rate")
    knock = render_knock(sr)
    AudioIO.save_wav(knock.samples, sr, args.output)
    print(f"Wrote {args.output} ({knock.samples.shape[-1]} samples, peak {knock.peak_dbfs:.2f} dBFS)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render wooden-fish knock streams",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_stream = subparsers.add_parser("stream", help="Render a full stream")
    p_stream.add_argument("--duration", type=int, default=90, help="Duration in minutes")
    p_stream.add_argument("--output", default="ding.mp3", help="Output file name")
    p_stream.add_argument("--seed", type=int, default=None, help="Fixed seed")
    p_stream.add_argument("--sample-rate", type=int, default=None, help="Sample rate in Hz")
    p_stream.add_argument("--no-encode", action="store_true", help="Write WAV without ffmpeg")
    p_stream.add_argument("--debug", action="store_true", help="Save resolved.json")
    p_stream.add_argument("--qc", action="store_true", help="Run QC analysis")
    p_stream.set_defaults(func=cmd_stream)

    p_sched = subparsers.add_parser("schedule", help="Print the knock schedule")
    p_sched.add_argument("--duration", type=int, default=90, help="Duration in minutes")
    p_sched.add_argument("--seed", type=int, default=None, help="Fixed seed")
    p_sched.set_defaults(func=cmd_schedule)

    p_one = subparsers.add_parser("one-shot", help="Render one double knock")
    p_one.add_argument("--output", default="knock.wav", help="Output WAV file")
    p_one.add_argument("--sample-rate", type=int, default=None, help="Sample rate in Hz")
    p_one.set_defaults(func=cmd_one_shot)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (MokugyoError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
