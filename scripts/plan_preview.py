#!/usr/bin/env python3
"""Slideshow Studio: editing plan preview

Analyzes a local audio file and prints the clip schedule the planner would
hand to the renderer.  Useful for tuning without the web client.

Usage:
    python scripts/plan_preview.py song.mp3 --images 3,5,8,2
    python scripts/plan_preview.py song.mp3 --images 5,5,5 --start 30 --end 45
    python scripts/plan_preview.py song.mp3 --images 9,9,2 --switch-points ai.txt --json
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from backend.services.audio.analyzer import AudioAnalyzer, AudioInputError, AudioLoadError  # noqa: E402
from backend.services.shared.logging import setup_logging  # noqa: E402
from backend.services.video.planner import EditingPlanner, PlanningError  # noqa: E402
from backend.services.video.switch_points import parse_switch_points  # noqa: E402
from backend.services.video.types import ImageAttributes  # noqa: E402

# ── ANSI colours ──────────────────────────────────────────────────────────────
GREEN  = "\033[92m"
YELLOW = "\033[93m"
RED    = "\033[91m"
BLUE   = "\033[94m"
RESET  = "\033[0m"
BOLD   = "\033[1m"


def section(title: str) -> None:
    print(f"\n{BOLD}{BLUE}━━ {title} ━━{RESET}")


def parse_images(spec: str) -> List[ImageAttributes]:
    """``"3,5,8"`` -> three images with those dynamism scores."""
    images = []
    for part in spec.split(","):
        part = part.strip()
        if part:
            images.append(ImageAttributes(dynamism=float(part)))
    return images


# ── Main ──────────────────────────────────────────────────────────────────────


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the editing plan for a local audio file"
    )
    parser.add_argument("audio", help="Audio file (any format librosa can decode)")
    parser.add_argument("--images", required=True,
                        help="Comma-separated dynamism scores, one per image")
    parser.add_argument("--start", type=float, default=0.0, help="Selection start (s)")
    parser.add_argument("--end", type=float, default=None, help="Selection end (s)")
    parser.add_argument("--switch-points", type=Path, default=None,
                        help="File holding raw oracle text or switch point JSON")
    parser.add_argument("--mood", default=None, help="Override the overall mood")
    parser.add_argument("--json", action="store_true", help="Print the plan as JSON")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging(level=args.log_level)

    try:
        images = parse_images(args.images)
    except ValueError:
        print(f"{RED}✗ --images must be comma-separated numbers{RESET}")
        return 2

    analyzer = AudioAnalyzer()
    planner = EditingPlanner(analyzer=analyzer)
    try:
        features = analyzer.analyze_file(args.audio, args.start, args.end)
        external = None
        if args.switch_points is not None:
            external = parse_switch_points(
                args.switch_points.read_text(encoding="utf-8"), features.duration
            )
        plan = planner.create_plan(features, images, external=external, overall_mood=args.mood)
    except (AudioLoadError, AudioInputError, PlanningError) as exc:
        print(f"{RED}✗ {exc}{RESET}")
        return 1

    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
        return 0

    section("Audio")
    print(f"  {features.bpm:.0f} BPM, energy {features.energy}/10, "
          f"{len(features.beats)} beats, {len(features.highlights)} highlights, "
          f"{len(features.rapid_sequences)} rapid runs")
    for s in features.sections:
        print(f"  {s.start:7.2f}-{s.end:7.2f}  {s.section_type:<7} energy {s.energy}")

    section(f"Plan: {plan.suggested_title} ({plan.overall_mood})")
    for clip in plan.clips:
        colour = YELLOW if clip.duration < 0.5 else GREEN
        print(f"  #{clip.image_index:<3} {clip.start_time:7.2f} -> {clip.end_time:7.2f} "
              f"{colour}{clip.duration:5.2f}s{RESET}  "
              f"{clip.transition.transition_type.value:<10} "
              f"{clip.motion.motion_type.value} @ {clip.motion.intensity:.3f}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
