"""BeatSynchronizer: partitions the clip duration into one slot per image.

Images are scheduled left to right.  Each image's dynamism gives a
``[min, max]`` on-screen range and an ideal duration; the end of its clip is
the best switch candidate inside that range, intersected with what the
remaining images can still absorb.  The last clip always ends exactly at
``total_duration``.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from backend.services.video.candidates import EnergyZone, select_best_candidate
from backend.services.video.types import (
    ClipTiming,
    DurationRange,
    ImageAttributes,
    SwitchCandidate,
    clamp_dynamism,
)

logger = logging.getLogger("slideshow_studio.video.beat_sync")

#: Hard lower bound for any clip while time allows it
ABSOLUTE_MIN_DURATION = 0.1

#: Dynamism at and above which an image uses the fast duration range
FAST_DYNAMISM = 7.0

_EPS = 1e-9


class PlanningError(Exception):
    """Editing plan could not be produced."""


class NoImagesError(PlanningError):
    """Scheduling was requested for an empty image list."""


def duration_range_for(dynamism: float, high_energy: bool = False) -> DurationRange:
    """Duration bounds for a dynamism score (clamped to 1-10).

    Slow images (< 7) range 0.3 s up to 5.0 -> 3.5 s with ideal 4.0 -> 2.0 s;
    fast images (>= 7) range 0.3 -> 0.1 s up to 3.0 -> 2.0 s with ideal
    1.5 -> 0.5 s.  All three bounds are non-increasing in dynamism.  Inside a
    high-energy zone the minimum drops to ``ABSOLUTE_MIN_DURATION``.
    """
    d = clamp_dynamism(dynamism)
    if d >= FAST_DYNAMISM:
        t = (d - FAST_DYNAMISM) / 3.0
        min_sec = 0.3 - 0.2 * t
        max_sec = 3.0 - 1.0 * t
        ideal_sec = 1.5 - 1.0 * t
    else:
        t = (d - 1.0) / 5.0
        min_sec = 0.3
        max_sec = 5.0 - 1.5 * t
        ideal_sec = 4.0 - 2.0 * t
    if high_energy:
        min_sec = ABSOLUTE_MIN_DURATION
    return DurationRange(min_sec=min_sec, max_sec=max_sec, ideal_sec=ideal_sec)


def _zone_at(zones: Sequence[EnergyZone], t: float) -> List[EnergyZone]:
    return [z for z in zones if z.contains(t)]


class BeatSynchronizer:
    """Chooses every clip's end time from the switch candidates.

    Usage::

        sync = BeatSynchronizer()
        timings = sync.create_clip_schedule(images, 30.0, candidates, zones)
    """

    def create_clip_schedule(
        self,
        images: Sequence[ImageAttributes],
        total_duration: float,
        candidates: Sequence[SwitchCandidate] = (),
        zones: Sequence[EnergyZone] = (),
    ) -> List[ClipTiming]:
        """Schedule one clip per image covering ``[0, total_duration]``.

        Args:
            images: Ordered images; order is never changed.
            total_duration: Length of the slideshow in seconds.
            candidates: Switch candidates in clip time, sorted by time.  With
                none at all the duration is split evenly.
            zones: High-energy and rapid zones in clip time.

        Returns:
            Contiguous :class:`ClipTiming` list, one per image.

        Raises:
            NoImagesError: If ``images`` is empty.
            ValueError: If ``total_duration`` is not a positive finite number.
        """
        if not images:
            raise NoImagesError("Cannot schedule clips without images")
        if not math.isfinite(total_duration) or total_duration <= 0:
            raise ValueError(f"total_duration must be positive, got {total_duration!r}")

        if not candidates:
            logger.warning("No switch candidates; splitting %.2fs evenly", total_duration)
            return self.equal_split(images, total_duration, zones)

        n = len(images)
        base = [duration_range_for(img.clamped_dynamism) for img in images]

        # Budget the images after position i can still absorb
        rest_min = [0.0] * (n + 1)
        rest_max = [0.0] * (n + 1)
        rest_ideal = [0.0] * (n + 1)
        for i in range(n - 1, -1, -1):
            rest_min[i] = rest_min[i + 1] + base[i].min_sec
            rest_max[i] = rest_max[i + 1] + base[i].max_sec
            rest_ideal[i] = rest_ideal[i + 1] + base[i].ideal_sec

        timings: List[ClipTiming] = []
        current = 0.0
        starving = False
        for i, image in enumerate(images):
            remaining_images = n - i
            remaining = total_duration - current
            zones_here = _zone_at(zones, current)
            rng = duration_range_for(image.clamped_dynamism, high_energy=bool(zones_here))
            in_rapid = any(z.is_rapid for z in zones_here)

            candidate: Optional[SwitchCandidate] = None
            if i == n - 1:
                end = total_duration
                fallback = "terminal"
            elif starving or remaining < remaining_images * ABSOLUTE_MIN_DURATION:
                if not starving:
                    logger.warning(
                        "%.3fs left for %d images; splitting the rest evenly",
                        remaining, remaining_images,
                    )
                starving = True
                end = current + remaining / remaining_images
                fallback = "equal_split"
            else:
                lo = max(current + rng.min_sec, total_duration - rest_max[i + 1])
                hi = min(current + rng.max_sec, total_duration - rest_min[i + 1])
                if lo <= hi + _EPS:
                    candidate = select_best_candidate(candidates, lo, hi)
                    if candidate is not None:
                        end = candidate.time
                        fallback = ""
                    else:
                        end = min(max(current + rng.ideal_sec, lo), hi)
                        fallback = "ideal"
                else:
                    logger.debug(
                        "Image %d: no duration fits the remaining budget; using ideal share", i
                    )
                    end = current + remaining * base[i].ideal_sec / rest_ideal[i]
                    fallback = "share"

                end = max(end, current + ABSOLUTE_MIN_DURATION)
                end = min(end, total_duration - (remaining_images - 1) * ABSOLUTE_MIN_DURATION)

            timings.append(ClipTiming(
                image_index=i,
                start_time=current,
                end_time=end,
                duration_range=rng,
                candidate=candidate,
                in_high_energy_zone=bool(zones_here),
                in_rapid_zone=in_rapid or bool(candidate and candidate.is_rapid_sequence),
                fallback=fallback,
            ))
            current = end

        self._check_partition(timings, n, total_duration)
        logger.debug(
            "Scheduled %d clips, %d on candidates",
            len(timings), sum(1 for t in timings if t.candidate is not None),
        )
        return timings

    def equal_split(
        self,
        images: Sequence[ImageAttributes],
        total_duration: float,
        zones: Sequence[EnergyZone] = (),
    ) -> List[ClipTiming]:
        """Equal-interval partition; the last clip takes the exact residual."""
        if not images:
            raise NoImagesError("Cannot schedule clips without images")
        n = len(images)
        step = total_duration / n
        timings: List[ClipTiming] = []
        for i, image in enumerate(images):
            start = i * step
            end = total_duration if i == n - 1 else (i + 1) * step
            zones_here = _zone_at(zones, start)
            timings.append(ClipTiming(
                image_index=i,
                start_time=start,
                end_time=end,
                duration_range=duration_range_for(
                    image.clamped_dynamism, high_energy=bool(zones_here)
                ),
                in_high_energy_zone=bool(zones_here),
                in_rapid_zone=any(z.is_rapid for z in zones_here),
                fallback="equal_split",
            ))
        return timings

    @staticmethod
    def _check_partition(timings: Sequence[ClipTiming], n: int, total_duration: float) -> None:
        """Raise RuntimeError if the schedule is not a gap-free partition."""
        if len(timings) != n:
            raise RuntimeError(f"Scheduled {len(timings)} clips for {n} images")
        if timings[0].start_time != 0.0 or timings[-1].end_time != total_duration:
            raise RuntimeError("Schedule does not span [0, total_duration]")
        for prev, cur in zip(timings, timings[1:]):
            if cur.start_time != prev.end_time or cur.end_time <= cur.start_time:
                raise RuntimeError(f"Clip {cur.image_index} breaks the partition")
