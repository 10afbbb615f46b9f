"""EditingPlanner: audio features + image attributes -> EditingPlan.

Pipeline::

    AudioFeatures ─┬─> rapid sequences / energy zones
                   └─> SwitchPointAggregator (+ external points)
                              │
                              v
    images ──────────> BeatSynchronizer ──> TransitionEngine ──> EditingPlan

Each call works only on its arguments; planners can be shared freely.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Union

import numpy as np

from backend.services.audio.analyzer import AudioAnalyzer
from backend.services.audio.highlights import detect_rapid_sequences
from backend.services.audio.types import AudioFeatures
from backend.services.video.beat_sync import BeatSynchronizer, NoImagesError, PlanningError
from backend.services.video.candidates import SwitchPointAggregator, find_energy_zones
from backend.services.video.switch_points import ExternalSwitchPoint
from backend.services.video.transition_engine import TransitionEngine
from backend.services.video.types import EditingClip, EditingPlan, ImageAttributes

logger = logging.getLogger("slideshow_studio.video.planner")

__all__ = ["EditingPlanner", "NoImagesError", "PlanningError", "DEFAULT_TITLE"]

DEFAULT_TITLE = "AI Generated Video"
_UPBEAT_ENERGY = 6


class EditingPlanner:
    """Builds the full editing plan for one slideshow.

    Usage::

        planner = EditingPlanner()
        plan = planner.create_plan(features, images)
        plan = planner.plan_from_samples(samples, 44100, images, 10.0, 40.0)
    """

    def __init__(
        self,
        analyzer: Optional[AudioAnalyzer] = None,
        aggregator: Optional[SwitchPointAggregator] = None,
        synchronizer: Optional[BeatSynchronizer] = None,
        transition_engine: Optional[TransitionEngine] = None,
        default_title: str = DEFAULT_TITLE,
    ):
        self.analyzer = analyzer or AudioAnalyzer()
        self.aggregator = aggregator or SwitchPointAggregator()
        self.synchronizer = synchronizer or BeatSynchronizer()
        self.transition_engine = transition_engine or TransitionEngine()
        self.default_title = default_title

    @staticmethod
    def default_mood(features: AudioFeatures) -> str:
        return "upbeat" if features.energy > _UPBEAT_ENERGY else "calm"

    def create_plan(
        self,
        features: AudioFeatures,
        images: Sequence[ImageAttributes],
        external: Optional[Sequence[ExternalSwitchPoint]] = None,
        overall_mood: Optional[str] = None,
        suggested_title: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> EditingPlan:
        """Schedule and annotate one clip per image.

        Args:
            features: Analysis of the audio selection.
            images: Ordered image attributes.
            external: Oracle switch points in clip time, or ``None`` for
                pure heuristic mode.
            overall_mood: Overrides the energy-derived mood.
            suggested_title: Overrides the configured default title.
            duration: Slideshow length; defaults to the selection length.

        Raises:
            NoImagesError: If ``images`` is empty.
            PlanningError: If the duration is not positive.
        """
        images = list(images)
        if not images:
            raise NoImagesError("No image analyses provided")

        total = features.duration if duration is None else float(duration)
        if not math.isfinite(total) or total <= 0:
            raise PlanningError(f"Slideshow duration must be positive, got {total!r}")

        if external is not None:
            external = [p for p in external if 0.0 < p.time < total]

        rapid = features.rapid_sequences or detect_rapid_sequences(features.beats)
        zones = find_energy_zones(features.sections, rapid, features.start_time)

        if features.beats or features.highlights or external:
            candidates = self.aggregator.build_candidates(
                features,
                external=external,
                image_count=len(images),
                rapid_sequences=rapid,
                duration=total,
            )
        else:
            logger.warning("No beats, highlights or external points; using an even split")
            candidates = []

        timings = self.synchronizer.create_clip_schedule(images, total, candidates, zones)

        mood = overall_mood or self.default_mood(features)
        engine = self.transition_engine
        clips = []
        for i, timing in enumerate(timings):
            image = images[i]
            entering = timings[i - 1].candidate if i else None
            clips.append(EditingClip(
                image_index=timing.image_index,
                start_time=timing.start_time,
                end_time=timing.end_time,
                transition=engine.select_transition(
                    timing.duration,
                    timing.in_rapid_zone,
                    mood=image.mood or mood,
                    suggested=entering.suggested_transition if entering else None,
                ),
                motion=engine.select_motion(
                    i,
                    timing.duration,
                    image.clamped_dynamism,
                    suggestion=image.motion_suggestion,
                    in_rapid_zone=timing.in_rapid_zone,
                ),
            ))

        plan = EditingPlan(
            clips=clips,
            overall_mood=mood,
            suggested_title=suggested_title or self.default_title,
        )
        logger.info(
            "Editing plan: %d clips over %.2fs (%d candidates, mood=%s)",
            len(clips), total, len(candidates), mood,
        )
        return plan

    def plan_from_samples(
        self,
        samples: Union[np.ndarray, Sequence[float]],
        sample_rate: int,
        images: Sequence[ImageAttributes],
        start_time: float = 0.0,
        end_time: Optional[float] = None,
        external: Optional[Sequence[ExternalSwitchPoint]] = None,
        overall_mood: Optional[str] = None,
        suggested_title: Optional[str] = None,
    ) -> EditingPlan:
        """Analyze a PCM selection and plan it in one call."""
        if not images:
            raise NoImagesError("No image analyses provided")
        features = self.analyzer.analyze(samples, sample_rate, start_time, end_time)
        return self.create_plan(
            features,
            images,
            external=external,
            overall_mood=overall_mood,
            suggested_title=suggested_title,
        )
