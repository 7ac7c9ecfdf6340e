"""
Command-line interface for audio analysis and graph evaluation.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pulsegraph.config import AnalysisConfig, EvaluationOrder, EvaluatorConfig
from pulsegraph.errors import PulseGraphError
from pulsegraph.graph.evaluator import GraphEvaluator
from pulsegraph.io.serialization import (
    actions_to_list,
    graph_from_json,
    snapshot_from_json,
    snapshot_to_dict,
)
from pulsegraph.pipeline import ReactivePipeline


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pulsegraph",
        description="Extract audio features and evaluate reactive node graphs",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze an audio file")
    analyze.add_argument("input", type=Path, help="Input audio file (wav, mp3, flac)")
    analyze.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output snapshot path (default: <input>_snapshot.json)",
    )
    analyze.add_argument(
        "-s", "--sample-rate",
        type=int,
        default=44100,
        help="Audio sample rate for analysis (default: 44100)",
    )
    analyze.add_argument(
        "--energy-threshold",
        type=float,
        default=AnalysisConfig.energy_threshold,
        help="Beat window energy threshold (default: 0.1)",
    )
    analyze.add_argument(
        "--transient-threshold",
        type=float,
        default=AnalysisConfig.transient_threshold,
        help="Transient sample jump threshold (default: 0.3)",
    )
    analyze.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not write the snapshot cache",
    )
    analyze.add_argument(
        "--summary",
        action="store_true",
        help="Print snapshot summary to stdout",
    )

    evaluate = subparsers.add_parser("evaluate", help="Evaluate a graph at one instant")
    evaluate.add_argument("graph", type=Path, help="Graph JSON file")
    evaluate.add_argument("snapshot", type=Path, help="Snapshot JSON file")
    evaluate.add_argument(
        "-t", "--time",
        type=float,
        required=True,
        help="Playback time in seconds",
    )
    evaluate.add_argument(
        "--order",
        choices=[o.value for o in EvaluationOrder],
        default=EvaluationOrder.TOPOLOGICAL.value,
        help="Node evaluation order (default: topological)",
    )

    timeline = subparsers.add_parser("timeline", help="Render an action timeline")
    timeline.add_argument("input", type=Path, help="Input audio file")
    timeline.add_argument("graph", type=Path, help="Graph JSON file")
    timeline.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output timeline path (default: <input>_timeline.json)",
    )
    timeline.add_argument(
        "-f", "--fps",
        type=int,
        default=60,
        help="Timeline frames per second (default: 60)",
    )
    timeline.add_argument(
        "-s", "--sample-rate",
        type=int,
        default=44100,
        help="Audio sample rate for analysis (default: 44100)",
    )
    timeline.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not write the snapshot cache",
    )

    return parser


def _cmd_analyze(args) -> int:
    pipeline = ReactivePipeline(
        sample_rate=args.sample_rate,
        analysis_config=AnalysisConfig(
            energy_threshold=args.energy_threshold,
            transient_threshold=args.transient_threshold,
        ),
    )

    if not args.quiet:
        print(f"Analyzing: {args.input}")

    snapshot = pipeline.analyze_file(args.input, use_cache=not args.no_cache)
    data = snapshot_to_dict(snapshot)

    output_path = args.output or args.input.with_name(f"{args.input.stem}_snapshot.json")
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    if not args.quiet:
        print(f"Tempo: {snapshot.tempo_estimate:.1f} BPM")
        print(f"Beats: {len(snapshot.beat_timestamps)}")
        print(f"Transients: {len(snapshot.transient_timestamps)}")
        print(f"Output: {output_path}")

    if args.summary:
        summary = {
            "tempo_estimate": data["tempo_estimate"],
            "sample_rate": data["sample_rate"],
            "n_beats": len(data["beat_timestamps"]),
            "n_transients": len(data["transient_timestamps"]),
            "n_loudness": len(data["loudness_contour"]),
            "first_beats": data["beat_timestamps"][:8],
        }
        print("\n--- Snapshot Summary ---")
        print(json.dumps(summary, indent=2))

    return 0


def _cmd_evaluate(args) -> int:
    graph = graph_from_json(_read_text(args.graph))
    snapshot = snapshot_from_json(_read_text(args.snapshot))
    evaluator = GraphEvaluator(EvaluatorConfig(order=EvaluationOrder(args.order)))

    actions = evaluator.evaluate(graph, snapshot, args.time)
    print(json.dumps(actions_to_list(actions), indent=2))
    return 0


def _cmd_timeline(args) -> int:
    graph = graph_from_json(_read_text(args.graph))
    pipeline = ReactivePipeline(sample_rate=args.sample_rate, fps=args.fps)

    output_path = args.output or args.input.with_name(f"{args.input.stem}_timeline.json")

    if not args.quiet:
        print(f"Processing: {args.input}")
        print(f"Target FPS: {args.fps}")

    result = pipeline.process(
        args.input,
        graph,
        output_path=output_path,
        use_cache=not args.no_cache,
    )

    if not args.quiet:
        print(f"Tempo: {result['tempo']:.1f} BPM")
        print(f"Duration: {result['duration']:.2f}s")
        print(f"Frames: {result['n_frames']}")
        print(f"Actions: {result['n_actions']}")
        print(f"Output: {result['output_path']}")

    return 0


COMMANDS = {
    "analyze": _cmd_analyze,
    "evaluate": _cmd_evaluate,
    "timeline": _cmd_timeline,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = _build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    for path in (getattr(args, "input", None), getattr(args, "graph", None),
                 getattr(args, "snapshot", None)):
        if path is not None and not path.exists():
            print(f"Error: Input file not found: {path}", file=sys.stderr)
            return 1

    try:
        return COMMANDS[args.command](args)
    except PulseGraphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
