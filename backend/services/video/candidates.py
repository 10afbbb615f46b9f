"""Switch-point candidate aggregation.

Merges every source of possible clip boundaries into one time-ordered list.
Priorities (higher wins):

  external suggestion      100 + intensity
  supplement (synthesized)  90
  section start             50 (+20 chorus/drop, +10 bridge) + energy
  highlight                 40 (+45 drop/climax, +25 buildup) + intensity
  strong beat in rapid run  75
  strong beat               30
  weak beat                 10

Feature times are absolute; candidates are rebased to clip time, i.e.
seconds from the selection start, and kept only inside ``(0, duration]``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from backend.services.audio.types import AudioFeatures, AudioSection, RapidBeatSequence
from backend.services.video.switch_points import ExternalSwitchPoint, supplement_switch_points
from backend.services.video.types import SwitchCandidate

logger = logging.getLogger("slideshow_studio.video.candidates")

EXTERNAL_BASE_PRIORITY = 100.0

SECTION_BASE_PRIORITY = 50.0
_SECTION_PEAK_BONUS = 20.0       # chorus / drop
_SECTION_BRIDGE_BONUS = 10.0

HIGHLIGHT_BASE_PRIORITY = 40.0
_HIGHLIGHT_PEAK_BONUS = 45.0     # drop / climax
_HIGHLIGHT_BUILDUP_BONUS = 25.0

RAPID_BEAT_PRIORITY = 75.0
STRONG_BEAT_PRIORITY = 30.0
WEAK_BEAT_PRIORITY = 10.0

HIGH_ENERGY_SECTION_TYPES = frozenset({"chorus", "drop"})
HIGH_ENERGY_LEVEL = 7

_EPS = 1e-9


@dataclass(frozen=True)
class EnergyZone:
    """Clip-time span where fast cutting is allowed."""
    start: float
    end: float
    is_rapid: bool = False

    def contains(self, t: float) -> bool:
        return self.start - _EPS <= t < self.end + _EPS


def find_energy_zones(
    sections: Sequence[AudioSection],
    rapid_sequences: Sequence[RapidBeatSequence],
    offset: float = 0.0,
) -> List[EnergyZone]:
    """High-energy sections (chorus/drop or energy >= 7) plus rapid beat runs."""
    zones = [
        EnergyZone(start=s.start - offset, end=s.end - offset)
        for s in sections
        if s.section_type in HIGH_ENERGY_SECTION_TYPES or s.energy >= HIGH_ENERGY_LEVEL
    ]
    zones += [
        EnergyZone(start=r.start - offset, end=r.end - offset, is_rapid=True)
        for r in rapid_sequences
    ]
    zones.sort(key=lambda z: (z.start, z.end))
    return zones


def select_best_candidate(
    candidates: Sequence[SwitchCandidate],
    min_time: float,
    max_time: float,
) -> Optional[SwitchCandidate]:
    """Highest-priority candidate with ``min_time <= time <= max_time``.

    ``candidates`` must be sorted by time; ties keep the earliest.
    """
    best: Optional[SwitchCandidate] = None
    for cand in candidates:
        if cand.time < min_time - _EPS:
            continue
        if cand.time > max_time + _EPS:
            break
        if best is None or cand.priority > best.priority:
            best = cand
    return best


class SwitchPointAggregator:
    """Builds the prioritised candidate list for one planning run.

    Usage::

        agg = SwitchPointAggregator()
        candidates = agg.build_candidates(features, external=points, image_count=8)
    """

    def section_priority(self, section: AudioSection) -> float:
        priority = SECTION_BASE_PRIORITY + section.energy
        if section.section_type in HIGH_ENERGY_SECTION_TYPES:
            priority += _SECTION_PEAK_BONUS
        elif section.section_type == "bridge":
            priority += _SECTION_BRIDGE_BONUS
        return priority

    def highlight_priority(self, highlight_type: str, intensity: float) -> float:
        priority = HIGHLIGHT_BASE_PRIORITY + intensity
        if highlight_type in ("drop", "climax"):
            priority += _HIGHLIGHT_PEAK_BONUS
        elif highlight_type == "buildup":
            priority += _HIGHLIGHT_BUILDUP_BONUS
        return priority

    def build_candidates(
        self,
        features: AudioFeatures,
        external: Optional[Sequence[ExternalSwitchPoint]] = None,
        image_count: int = 0,
        rapid_sequences: Optional[Sequence[RapidBeatSequence]] = None,
        duration: Optional[float] = None,
    ) -> List[SwitchCandidate]:
        """Merge external points, sections, highlights and beats.

        Args:
            features: Analysis of the selection (absolute times).
            external: Oracle switch points in clip time.  ``None`` means pure
                heuristic mode; any list (even empty) is topped up with
                synthesized points until ``image_count - 1`` exist.
            image_count: Number of images being scheduled.
            rapid_sequences: Overrides ``features.rapid_sequences``.
            duration: Slideshow length in seconds; defaults to the length of
                the analysed selection.

        Returns:
            Candidates in ``(0, duration]`` sorted by time, then priority desc.
        """
        offset = features.start_time
        if duration is None:
            duration = features.duration
        rapid = list(features.rapid_sequences if rapid_sequences is None else rapid_sequences)
        candidates: List[SwitchCandidate] = []

        if external is not None:
            for point in external:
                candidates.append(SwitchCandidate(
                    time=point.time,
                    priority=EXTERNAL_BASE_PRIORITY + point.intensity,
                    candidate_type="external",
                    reason=point.reason,
                    is_rapid_sequence=point.is_rapid,
                    suggested_transition=point.suggested_transition,
                ))
            candidates += supplement_switch_points(
                external,
                [b.time - offset for b in features.strong_beats],
                duration,
                image_count,
            )

        for section in features.sections:
            candidates.append(SwitchCandidate(
                time=section.start - offset,
                priority=self.section_priority(section),
                candidate_type="section",
                reason=f"{section.section_type} start",
            ))

        for highlight in features.highlights:
            candidates.append(SwitchCandidate(
                time=highlight.time - offset,
                priority=self.highlight_priority(highlight.highlight_type, highlight.intensity),
                candidate_type="highlight",
                reason=highlight.highlight_type,
            ))

        for beat in features.beats:
            if beat.is_strong:
                in_rapid = any(r.contains(beat.time) for r in rapid)
                priority = RAPID_BEAT_PRIORITY if in_rapid else STRONG_BEAT_PRIORITY
            else:
                in_rapid = False
                priority = WEAK_BEAT_PRIORITY
            candidates.append(SwitchCandidate(
                time=beat.time - offset,
                priority=priority,
                candidate_type="beat",
                reason=f"{beat.strength} beat",
                is_rapid_sequence=in_rapid,
            ))

        usable = [c for c in candidates if 0.0 < c.time <= duration + _EPS]
        usable.sort(key=lambda c: (c.time, -c.priority))
        logger.debug(
            "Built %d switch candidates (%d outside the clip dropped)",
            len(usable), len(candidates) - len(usable),
        )
        return usable
