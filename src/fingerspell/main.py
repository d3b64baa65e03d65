"""
Fingerspell - Command Line Interface
=====================================

Entry point for replaying recorded landmark streams through the lesson
engine, inspecting the ASL pattern table and grading single frames.

Frame files are JSON Lines. Each line is one of:
    [[x, y, z], ... 21 points]                  a hand
    null                                        no hand in this frame
    {"t": 0.4, "landmarks": [...] | null,       explicit timestamp and
     "handedness": "Right"}                     optional provider hint
"""

import sys
import json
import logging
import argparse
from typing import Iterator, Optional, Tuple

import yaml

from .core.engine import EngineConfig, FingerspellEngine
from .core.errors import ConfigError, FingerspellError
from .core.events import Events
from .core.types import FrameStatus, GestureAnalysis
from .detection.synthetic import hand_for_letter
from .lesson.state import LessonPhase, LetterStatus, normalize_name
from .recognition.evaluator import GestureEvaluator, build_prompt
from .recognition.patterns import get_patterns
from .utils.config import DEFAULT_CONFIG_PATH, Config, setting
from .utils.logger import LessonLogger, log_timing, setup_logging

logger = logging.getLogger(__name__)


class ReplayClock:
    """Clock driven by frame timestamps instead of wall time."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def read_frames(path: str, fps: float = 30.0) -> Iterator[Tuple[float, Optional[list], str]]:
    """Yield (timestamp, landmarks or None, handedness) per JSONL line.

    Lines without a timestamp are placed at ``index / fps``.
    """
    with open(path, "r", encoding="utf-8") as f:
        index = 0
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise FingerspellError(f"{path}:{line_no}: invalid JSON ({e.msg})") from e

            timestamp = index / fps
            handedness = "unknown"
            if isinstance(record, dict):
                stamp = record.get("t")
                if stamp is not None:
                    if isinstance(stamp, bool) or not isinstance(stamp, (int, float)):
                        raise FingerspellError(f"{path}:{line_no}: bad timestamp {stamp!r}")
                    timestamp = float(stamp)
                handedness = str(record.get("handedness", handedness))
                record = record.get("landmarks")
            yield timestamp, record, handedness
            index += 1


def format_analysis(index: int, timestamp: float, analysis: GestureAnalysis) -> str:
    """One line per frame for the replay log."""
    parts = [f"{index:5d}  t={timestamp:7.2f}  {analysis.status.value:<9}"]
    parts.append(f"target={analysis.target_letter or '-'}")
    if analysis.has_hand:
        parts.append(f"guess={analysis.best_guess}")
        parts.append(f"conf={analysis.confidence:.2f}")
        parts.append(f"stable={analysis.stable_frames}")
        parts.append(f"{analysis.latency_ms:.2f}ms")
    if analysis.confirmed:
        parts.append("CONFIRMED")
    elif analysis.feedback and analysis.status == FrameStatus.OK and not analysis.matches_target:
        parts.append("| " + "; ".join(analysis.feedback))
    return "  ".join(parts)


# =============================================================================
# Commands
# =============================================================================

@log_timing
def run_replay(engine: FingerspellEngine, clock: ReplayClock, path: str, name: str,
               fps: float = 30.0, quiet: bool = False) -> int:
    """Feed a frame file through a fresh lesson. Returns the exit code."""
    lesson_log = LessonLogger(clock=clock)
    engine.bus.subscribe(Events.LESSON_STARTED, lesson_log.on_start)
    engine.on_advance(lesson_log.on_letter)
    engine.on_complete(lesson_log.on_complete)
    engine.bus.subscribe(Events.LETTER_SKIPPED, lesson_log.on_skip)

    engine.start_lesson(name)
    print(f"Spelling {engine.state.target_name} ({len(engine.state.target_name)} letters)")

    for index, (timestamp, points, handedness) in enumerate(read_frames(path, fps)):
        clock.now = timestamp
        analysis = engine.process_frame(points, handedness=handedness)
        if not quiet or analysis.confirmed:
            print(format_analysis(index, timestamp, analysis))
        if engine.state.phase == LessonPhase.COMPLETED:
            break

    state = engine.state
    print()
    print("Progress: " + " ".join(
        f"[{letter}]" if status == LetterStatus.DONE else f" {letter} "
        for letter, status in state.letter_statuses()))
    print(f"Confirmed {lesson_log.confirmed_count}/{len(state.target_name)} letters "
          f"in {engine.frame_count} analyzed frames")
    latency = engine.latency.summary()
    logger.info("Frame latency: mean %.2fms, p95 %.2fms, max %.2fms over %d frames",
                latency["mean_ms"], latency["p95_ms"], latency["max_ms"], latency["frames"])

    if state.phase == LessonPhase.COMPLETED:
        print(f"Great job, {state.target_name} spelled!")
        return 0
    print(f"Stopped at letter {state.current_letter} "
          f"({state.letters_done}/{len(state.target_name)})")
    return 1


def run_patterns(patterns) -> int:
    print(f"ASL pattern table v{patterns.version} ({patterns.source})")
    print()
    print("  Letter  T I M R P  Weight  Shares signature with")
    for letter, pattern in patterns.items():
        flags = " ".join("x" if s else "." for s in pattern.signature)
        mates = [c for c in patterns.same_signature(letter) if c != letter]
        motion = " (motion)" if pattern.motion else ""
        print(f"  {letter:<6}  {flags}  {pattern.weight:5.2f}   "
              f"{', '.join(mates) or '-'}{motion}")
    return 0


def run_evaluate(engine: FingerspellEngine, clock: ReplayClock, target: str, points: list,
                 show_prompt: bool = False) -> int:
    """Grade one frame held for two analysis passes against ``target``."""
    analysis = engine.process_frame(points)
    clock.now += engine.config.min_frame_interval
    # A second pass gives the stability check a previous frame
    if analysis.has_hand:
        analysis = engine.process_frame(points)

    result = GestureEvaluator(engine.patterns).evaluate(analysis, target)
    if show_prompt:
        print(build_prompt(analysis, target))
        print()
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.is_correct else 1


def write_synthetic(patterns, name: str, output, fps: float = 10.0,
                    hold: int = 15, gap: int = 2) -> int:
    """Write a JSONL stream that spells ``name`` with synthetic hands."""
    letters = normalize_name(name)
    if not letters:
        raise FingerspellError(f"Name {name!r} has no letters to spell")

    frame = 0
    for letter in letters:
        points = hand_for_letter(letter, patterns)
        for _ in range(hold):
            output.write(json.dumps({"t": round(frame / fps, 4), "landmarks": points}) + "\n")
            frame += 1
        for _ in range(gap):
            output.write(json.dumps({"t": round(frame / fps, 4), "landmarks": None}) + "\n")
            frame += 1
    return 0


# =============================================================================
# Entry point
# =============================================================================

def _positive_float(text: str) -> float:
    value = float(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="fingerspell",
        description="ASL fingerspelling trainer engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fingerspell synth Dave -o dave.jsonl
  fingerspell replay dave.jsonl --name Dave
  fingerspell patterns
  fingerspell evaluate D --letter D --prompt
        """,
    )
    parser.add_argument(
        "--config", "-c", default=None,
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--debug", "-d", action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay a landmark stream through a lesson")
    replay.add_argument("frames", help="JSON Lines frame file")
    replay.add_argument("--name", "-n", required=True, help="Name to spell")
    replay.add_argument("--fps", type=_positive_float, default=30.0,
                        help="Frame rate for lines without a timestamp")
    replay.add_argument("--quiet", "-q", action="store_true",
                        help="Only print confirmed frames and the summary")

    sub.add_parser("patterns", help="List the ASL pattern table")

    evaluate = sub.add_parser("evaluate", help="Grade one frame against a target letter")
    evaluate.add_argument("target", help="Target letter")
    source = evaluate.add_mutually_exclusive_group(required=True)
    source.add_argument("--frame", help="JSON file holding 21 [x, y, z] points")
    source.add_argument("--letter", help="Use a synthetic hand showing this letter")
    evaluate.add_argument("--prompt", action="store_true",
                          help="Also print the model prompt for this frame")

    synth = sub.add_parser("synth", help="Write a synthetic frame file spelling a name")
    synth.add_argument("name", help="Name to spell")
    synth.add_argument("--output", "-o", default=None, help="Output file (default: stdout)")
    synth.add_argument("--fps", type=_positive_float, default=10.0)
    synth.add_argument("--hold", type=int, default=15, help="Frames per letter")

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    config = Config()
    try:
        config.load(config_path=args.config)
        log_cfg = config.get_section("logging")
        log_settings = dict(
            level="DEBUG" if args.debug else setting(log_cfg, "level", "INFO", str),
            log_file=setting(log_cfg, "file", None, str),
            max_size_mb=setting(log_cfg, "max_size_mb", 10),
            backup_count=setting(log_cfg, "backup_count", 3, int),
        )
    except (yaml.YAMLError, OSError, ConfigError) as e:
        logger.error("Cannot load config %s: %s", args.config or DEFAULT_CONFIG_PATH, e)
        return 2
    setup_logging(**log_settings)

    try:
        engine_config = EngineConfig.from_dict(config.as_dict())
        patterns = get_patterns(engine_config.patterns_path)

        if args.command == "patterns":
            return run_patterns(patterns)

        if args.command == "synth":
            if args.output:
                with open(args.output, "w", encoding="utf-8") as f:
                    code = write_synthetic(patterns, args.name, f, fps=args.fps, hold=args.hold)
                logger.info("Wrote synthetic frames to %s", args.output)
                return code
            return write_synthetic(patterns, args.name, sys.stdout, fps=args.fps, hold=args.hold)

        clock = ReplayClock()
        engine = FingerspellEngine(engine_config, patterns=patterns, clock=clock)

        if args.command == "replay":
            return run_replay(engine, clock, args.frames, args.name, fps=args.fps, quiet=args.quiet)

        if args.frame:
            with open(args.frame, "r", encoding="utf-8") as f:
                try:
                    points = json.load(f)
                except json.JSONDecodeError as e:
                    raise FingerspellError(f"{args.frame}: invalid JSON ({e.msg})") from e
        else:
            points = hand_for_letter(args.letter, patterns)
        return run_evaluate(engine, clock, args.target, points, show_prompt=args.prompt)

    except FingerspellError as e:
        logger.error("%s", e)
        return 2
    except OSError as e:
        logger.error("Cannot read %s: %s", e.filename, e.strerror)
        return 2
    except ValueError as e:
        logger.error("Invalid input: %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
