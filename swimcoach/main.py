from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger

from swimcoach.logic.motions import MOTIONS
from swimcoach.server.app import CONFIG_PATH_ENV
from swimcoach.server.database import SQLStore
from swimcoach.server.logging_utils import configure_logging
from swimcoach.server.session import PracticeManager
from swimcoach.utils.config import DEFAULT_RUNTIME_CONFIG, RuntimeConfig, load_runtime_config
from swimcoach.utils.profiler import FrameTimer


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Survival swimming posture trainer")
    parser.add_argument("--runtime-config", type=Path, default=DEFAULT_RUNTIME_CONFIG, help="Runtime configuration")
    parser.add_argument("--database-url", type=str, default=None, help="Override the storage database URL")
    parser.add_argument("--log-level", type=str, default=None, help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("motions", help="List the supported drills")
    commands.add_parser("samples", help="Show stored training samples per drill")

    replay = commands.add_parser("replay", help="Run a recorded landmark stream through a practice session")
    replay.add_argument("--motion", type=int, required=True, choices=sorted(MOTIONS), help="Drill id")
    replay.add_argument("--frames", type=Path, required=True, help="JSON-lines file of {t, landmarks} frames")
    replay.add_argument("--hold-goal", type=float, default=None, help="Override the hold goal in seconds")
    replay.add_argument("--record", action="store_true", help="Save a completed attempt to the practice history")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def read_frames(path: Path) -> Iterator[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                frame = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning("Skipping malformed frame on line {}: {}", line_no, exc)
                continue
            if "landmarks" not in frame:
                logger.warning("Skipping frame without landmarks on line {}", line_no)
                continue
            yield frame


def list_motions() -> None:
    for motion in MOTIONS.values():
        goal = f"hold {motion.hold_goal:g}s" if motion.hold_mode else f"{motion.target_cycles} reps"
        print(f"{motion.id}. {motion.name} ({motion.posture}, {goal}) steps: {', '.join(motion.steps)}")


def show_samples(manager: PracticeManager) -> None:
    for motion_id, motion in MOTIONS.items():
        counts = manager.sample_counts(motion_id)
        per_step = ", ".join(f"{step}={count}" for step, count in counts["counts"].items())
        print(f"{motion_id}. {motion.name}: {counts['total_samples']} samples ({per_step})")


def replay(manager: PracticeManager, motion_id: int, frames_path: Path, hold_goal: Optional[float], record: bool) -> None:
    session = manager.start(motion_id, hold_goal)
    if manager.classifiers[motion_id].num_classes < 2:
        logger.warning("Motion {} has fewer than two trained steps; no frame will be classified", motion_id)
    timer = FrameTimer()
    for frame in read_frames(frames_path):
        timer.start()
        result = manager.process_frame(frame["landmarks"], frame.get("t"))
        timer.stop()
        for event in result["events"]:
            print(f"[{event['at']:.2f}s] {event['message']}")
        if session.done:
            break
    logger.info(
        "Replay processed {} frames | mean {:.2f} ms/frame ({:.0f} fps) | {} over budget",
        timer.frames,
        timer.mean_ms(),
        timer.get_fps(),
        timer.over_budget,
    )
    print(
        f"Result: score {session.score}/20 | cycles {session.cycles_done}/{session.motion.target_cycles}"
        f" | held {session.hold_sec:.1f}s | {'completed' if session.done else 'incomplete'}"
    )
    manager.stop(record=record)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    runtime_cfg: RuntimeConfig = load_runtime_config(args.runtime_config)
    configure_logging(args.log_level or runtime_cfg.log_level, enqueue=False)

    if args.command == "motions":
        list_motions()
        return
    if args.command == "serve":
        import uvicorn

        os.environ.setdefault(CONFIG_PATH_ENV, str(args.runtime_config))
        uvicorn.run("swimcoach.server.app:app", host=args.host, port=args.port)
        return

    store = SQLStore(args.database_url or runtime_cfg.database_url)
    manager = PracticeManager(store, runtime_config=runtime_cfg, recorder=store)
    if args.command == "samples":
        show_samples(manager)
    elif args.command == "replay":
        replay(manager, args.motion, args.frames, args.hold_goal, args.record)


if __name__ == "__main__":
    main()
