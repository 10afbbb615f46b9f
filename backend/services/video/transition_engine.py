"""TransitionEngine: picks the transition into each clip and its motion."""
from __future__ import annotations

import logging
from typing import Optional

from backend.services.video.types import (
    Motion,
    MotionType,
    Transition,
    TransitionType,
    clamp_dynamism,
)

logger = logging.getLogger("slideshow_studio.video.transition_engine")

#: Clips shorter than this are treated as rapid cuts
RAPID_CLIP_SEC = 0.5

MIN_MOTION_INTENSITY = 0.05
MAX_MOTION_INTENSITY = 0.15

CALM_MOODS = frozenset({"calm", "melancholic", "romantic", "peaceful"})
ENERGETIC_MOODS = frozenset({"energetic", "upbeat", "intense"})

_DEFAULT_MOTIONS = (
    MotionType.ZOOM_IN,
    MotionType.ZOOM_OUT,
    MotionType.PAN_LEFT,
    MotionType.PAN_RIGHT,
)


class TransitionEngine:
    """Stateless mapping from clip context to transition and motion.

    Selection logic:
    - Rapid zone or clip under 0.5 s -> hard cut, static minimal motion
    - Upstream suggestion (anything but cut) -> use it
    - Otherwise by mood: calm -> fade, energetic -> cut, else dissolve

    Usage::

        engine = TransitionEngine()
        transition = engine.select_transition(1.8, False, "calm")
        motion = engine.select_motion(3, 1.8, 6.0)
    """

    _DEFAULT_DURATIONS = {
        TransitionType.CUT: 0.0,
        TransitionType.NONE: 0.0,
        TransitionType.FADE: 0.5,
        TransitionType.DISSOLVE: 0.3,
        TransitionType.SLIDE: 0.3,
        TransitionType.SLIDE_LEFT: 0.3,
        TransitionType.SLIDE_RIGHT: 0.3,
        TransitionType.SLIDE_UP: 0.3,
        TransitionType.SLIDE_DOWN: 0.3,
        TransitionType.WIPE: 0.3,
        TransitionType.ZOOM: 0.3,
    }

    @staticmethod
    def is_rapid(clip_duration: float, in_rapid_zone: bool) -> bool:
        return in_rapid_zone or clip_duration < RAPID_CLIP_SEC

    def _make(self, transition_type: TransitionType, clip_duration: float) -> Transition:
        duration = self._DEFAULT_DURATIONS.get(transition_type, 0.3)
        # Never longer than half the clip it enters
        return Transition(transition_type, min(duration, clip_duration / 2.0))

    def select_transition(
        self,
        clip_duration: float,
        in_rapid_zone: bool,
        mood: Optional[str] = None,
        suggested: Optional[str] = None,
    ) -> Transition:
        """Transition entering a clip.

        Args:
            clip_duration: Length of the incoming clip in seconds.
            in_rapid_zone: Clip starts inside a rapid beat run or was cut on
                a rapid-flagged candidate.
            mood: Image or plan mood, e.g. ``"calm"`` or ``"energetic"``.
            suggested: Upstream transition name; unknown names are ignored.
        """
        if self.is_rapid(clip_duration, in_rapid_zone):
            return Transition(TransitionType.CUT, 0.0)

        suggestion = TransitionType.parse(suggested)
        if suggestion is not None and suggestion is not TransitionType.CUT:
            return self._make(suggestion, clip_duration)

        mood_key = (mood or "").strip().lower()
        if mood_key in CALM_MOODS:
            return self._make(TransitionType.FADE, clip_duration)
        if mood_key in ENERGETIC_MOODS:
            return Transition(TransitionType.CUT, 0.0)
        return self._make(TransitionType.DISSOLVE, clip_duration)

    @staticmethod
    def motion_intensity(dynamism: float) -> float:
        """Linear in dynamism: 1 -> 0.05, 10 -> 0.15."""
        d = clamp_dynamism(dynamism)
        value = MIN_MOTION_INTENSITY + (d - 1.0) / 9.0 * (MAX_MOTION_INTENSITY - MIN_MOTION_INTENSITY)
        return round(min(MAX_MOTION_INTENSITY, max(MIN_MOTION_INTENSITY, value)), 4)

    def select_motion(
        self,
        clip_index: int,
        clip_duration: float,
        dynamism: float,
        suggestion: Optional[str] = None,
        in_rapid_zone: bool = False,
    ) -> Motion:
        """Motion for one clip; deterministic for a given index and dynamism."""
        if self.is_rapid(clip_duration, in_rapid_zone):
            return Motion(MotionType.STATIC, MIN_MOTION_INTENSITY)

        intensity = self.motion_intensity(dynamism)
        suggested = MotionType.parse(suggestion)
        if suggested is not None and suggested is not MotionType.STATIC:
            return Motion(suggested, intensity)

        choice = _DEFAULT_MOTIONS[(clip_index * 7 + int(round(clamp_dynamism(dynamism)))) % 4]
        return Motion(choice, intensity)
