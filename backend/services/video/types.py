"""Data types for the Slideshow Studio editing-plan pipeline.

``EditingPlan.to_dict`` is the contract handed to the renderer; its field
names and value ranges are consumed as-is.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

MIN_DYNAMISM = 1.0
MAX_DYNAMISM = 10.0


def clamp_dynamism(value: Optional[float]) -> float:
    """Clamp to [1, 10]; missing or non-finite values read as the midpoint 5."""
    try:
        v = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 5.0
    if not math.isfinite(v):
        return 5.0
    return min(MAX_DYNAMISM, max(MIN_DYNAMISM, v))


class TransitionType(enum.Enum):
    """Transition vocabulary understood by the renderer."""
    CUT = "cut"
    NONE = "none"
    FADE = "fade"
    DISSOLVE = "dissolve"
    SLIDE = "slide"
    SLIDE_LEFT = "slide-left"
    SLIDE_RIGHT = "slide-right"
    SLIDE_UP = "slide-up"
    SLIDE_DOWN = "slide-down"
    WIPE = "wipe"
    ZOOM = "zoom"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TransitionType"]:
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class MotionType(enum.Enum):
    """Ken Burns style motion applied while an image is on screen."""
    STATIC = "static"
    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"
    PAN_LEFT = "pan-left"
    PAN_RIGHT = "pan-right"
    PAN_UP = "pan-up"
    PAN_DOWN = "pan-down"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["MotionType"]:
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class ImageAttributes:
    """Per-image input; list order defines ``image_index``."""
    dynamism: float = 5.0                   # 1-10, >=7 is a fast image
    motion_suggestion: Optional[str] = None
    mood: Optional[str] = None

    @property
    def clamped_dynamism(self) -> float:
        return clamp_dynamism(self.dynamism)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageAttributes":
        return cls(
            dynamism=clamp_dynamism(data.get("dynamism", 5.0)),
            motion_suggestion=data.get("motionSuggestion", data.get("motion_suggestion")),
            mood=data.get("mood"),
        )


@dataclass(frozen=True)
class SwitchCandidate:
    """Prioritised proposal for a clip boundary, in clip time."""
    time: float
    priority: float
    candidate_type: str            # external | supplement | section | highlight | beat
    reason: str = ""
    is_rapid_sequence: bool = False
    suggested_transition: Optional[str] = None


@dataclass(frozen=True)
class DurationRange:
    """On-screen duration bounds derived from dynamism."""
    min_sec: float
    max_sec: float
    ideal_sec: float


@dataclass
class ClipTiming:
    """Scheduler output for one image, before transition/motion assignment.

    Attributes:
        candidate: The switch candidate that ended this clip, if any.
        fallback: How the end time was chosen when no candidate was used:
            ``"ideal"``, ``"share"``, ``"equal_split"`` or ``"terminal"``.
    """
    image_index: int
    start_time: float
    end_time: float
    duration_range: DurationRange
    candidate: Optional[SwitchCandidate] = None
    in_high_energy_zone: bool = False
    in_rapid_zone: bool = False
    fallback: str = ""

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class Transition:
    """Transition entering a clip; duration in seconds."""
    transition_type: TransitionType
    duration_sec: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.transition_type.value, "duration": self.duration_sec}


@dataclass(frozen=True)
class Motion:
    """Motion applied across a clip; intensity in [0.05, 0.15]."""
    motion_type: MotionType
    intensity: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.motion_type.value, "intensity": self.intensity}


@dataclass
class EditingClip:
    image_index: int
    start_time: float
    end_time: float
    transition: Transition
    motion: Motion

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imageIndex": self.image_index,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "transition": self.transition.to_dict(),
            "motion": self.motion.to_dict(),
        }


@dataclass
class EditingPlan:
    """Ordered, gap-free clip schedule for one slideshow."""
    clips: List[EditingClip] = field(default_factory=list)
    overall_mood: str = "calm"
    suggested_title: str = "AI Generated Video"

    @property
    def total_duration(self) -> float:
        return self.clips[-1].end_time if self.clips else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clips": [c.to_dict() for c in self.clips],
            "overallMood": self.overall_mood,
            "suggestedTitle": self.suggested_title,
        }
