"""Highlight and rapid-zone detection.

Highlights come from four passes over the selection, merged in this order
(each later pass skips times already covered by an earlier highlight):

1. Energy spikes on the smoothed 500 ms RMS envelope (drop / transition).
2. Frequency band events (drum / bass / high accents).
3. Variation-rate outliers on 50 ms |amplitude| frames (buildup / fillin).
4. The global energy peak (climax).

Rapid beat sequences are runs of regularly spaced strong beats and mark the
zones where the scheduler may cut fastest.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from backend.services.audio.analysis import frame_signal, moving_average
from backend.services.audio.types import (
    AudioHighlight,
    Beat,
    FrequencyBandEvent,
    RapidBeatSequence,
)

logger = logging.getLogger("slideshow_studio.audio.highlights")

# Energy envelope
ENVELOPE_FRAME_SEC = 0.5
_ENVELOPE_SMOOTH_BEFORE = 8
_ENVELOPE_SMOOTH_AFTER = 7
_TRANSITION_INCREASE = 0.1
_DROP_INCREASE = 0.2
_MIN_SPIKE_LEVEL = 0.3

# Variation rate
VARIATION_FRAME_SEC = 0.05
_VARIATION_Z = 1.5
_BUILDUP_RATIO = 1.2

# Dedup windows (seconds)
SPIKE_DEDUP_SEC = 0.3
BAND_MERGE_SEC = 0.3
VARIATION_DEDUP_SEC = 1.0
CLIMAX_DEDUP_SEC = 2.0

_BAND_HIGHLIGHT_TYPES = {
    "low": "drum_accent",
    "mid": "bass_accent",
    "high": "high_accent",
}

# Rapid beat sequences
RAPID_MIN_INTERVAL = 0.1
RAPID_MAX_INTERVAL = 0.8
RAPID_INTERVAL_TOLERANCE = 0.15
RAPID_MIN_BEATS = 3


def _has_nearby(highlights: Iterable[AudioHighlight], t: float, window: float) -> bool:
    return any(abs(h.time - t) < window for h in highlights)


class HighlightDetector:
    """Finds drops, buildups, fill-ins, band accents and the climax.

    Stateless; one instance can serve any number of selections.
    """

    # ── Energy envelope ───────────────────────────────────────────────────────

    @staticmethod
    def smoothed_energy(y: np.ndarray, sr: int) -> Tuple[np.ndarray, int]:
        """Smoothed 500 ms RMS envelope (25% hop) and its hop in samples."""
        frame_length = int(sr * ENVELOPE_FRAME_SEC)
        hop_length = max(frame_length // 4, 1)
        frames = frame_signal(y, frame_length, hop_length)
        if frames.shape[1] == 0:
            return np.zeros(0, dtype=np.float64), hop_length
        rms = np.sqrt(np.sum(np.square(frames, dtype=np.float64), axis=0) / frame_length)
        return moving_average(rms, _ENVELOPE_SMOOTH_BEFORE, _ENVELOPE_SMOOTH_AFTER), hop_length

    def detect_energy_spikes(
        self,
        smoothed: np.ndarray,
        hop_length: int,
        sr: int,
        start_time: float = 0.0,
    ) -> List[AudioHighlight]:
        """Sharp rises of the smoothed envelope: >0.1 is a transition, >0.2 a drop."""
        highlights: List[AudioHighlight] = []
        for i in range(1, smoothed.shape[0] - 1):
            increase = float(smoothed[i] - smoothed[i - 1])
            if increase <= _TRANSITION_INCREASE or smoothed[i] <= _MIN_SPIKE_LEVEL:
                continue
            t = start_time + i * hop_length / sr
            if _has_nearby(highlights, t, SPIKE_DEDUP_SEC):
                continue
            highlights.append(AudioHighlight(
                time=t,
                highlight_type="drop" if increase > _DROP_INCREASE else "transition",
                intensity=min(10, int(round(increase * 50))),
                source="all",
            ))
        return highlights

    # ── Band accents ──────────────────────────────────────────────────────────

    def merge_band_events(
        self,
        highlights: List[AudioHighlight],
        events: Sequence[FrequencyBandEvent],
    ) -> List[AudioHighlight]:
        """Append band events not within 0.3 s of an existing highlight."""
        merged = list(highlights)
        for event in events:
            if _has_nearby(merged, event.time, BAND_MERGE_SEC):
                continue
            merged.append(AudioHighlight(
                time=event.time,
                highlight_type=_BAND_HIGHLIGHT_TYPES.get(event.band, "fillin"),
                intensity=event.intensity,
                source=event.band,
            ))
        return merged

    # ── Variation rate ────────────────────────────────────────────────────────

    @staticmethod
    def variation_rates(y: np.ndarray, sr: int) -> List[Tuple[int, float]]:
        """``(second, rate)`` per whole second: summed |delta| of 50 ms energies / frames.

        The final (possibly partial) second is not scored.
        """
        frame_length = int(sr * VARIATION_FRAME_SEC)
        hop_length = max(frame_length // 2, 1)
        frames = frame_signal(y, frame_length, hop_length)
        n_frames = frames.shape[1]
        if n_frames == 0:
            return []

        short_energy = np.mean(np.abs(frames), axis=0, dtype=np.float64)
        deltas = np.abs(np.diff(short_energy))
        frames_per_second = max(sr // hop_length, 1)

        rates: List[Tuple[int, float]] = []
        for sec in range(int(y.shape[0] // sr) - 1):
            first = sec * frames_per_second
            last = min((sec + 1) * frames_per_second, n_frames)
            if last <= first:
                break
            variation = float(np.sum(deltas[first:last - 1]))
            rates.append((sec, variation / (last - first)))
        return rates

    def detect_variation_highlights(
        self,
        y: np.ndarray,
        sr: int,
        smoothed: np.ndarray,
        hop_length: int,
        existing: Sequence[AudioHighlight],
        start_time: float = 0.0,
    ) -> List[AudioHighlight]:
        """Outlier seconds (rate > mean + 1.5 std) become buildups or fill-ins.

        A buildup is followed by a second whose smoothed energy is more than
        1.2x the current one; anything else is a fill-in.
        """
        rates = self.variation_rates(y, sr)
        if not rates:
            return []

        values = np.array([r for _, r in rates], dtype=np.float64)
        avg = float(values.mean())
        std = float(values.std())
        if std <= 0.0:
            return []

        envelope_fps = sr / hop_length
        last_idx = smoothed.shape[0] - 1

        def envelope_at(offset_sec: float) -> float:
            if last_idx < 0:
                return 0.0
            return float(smoothed[min(int(offset_sec * envelope_fps), last_idx)])

        found: List[AudioHighlight] = []
        for sec, rate in rates:
            if rate <= avg + std * _VARIATION_Z:
                continue
            t = start_time + sec
            if _has_nearby(existing, t, VARIATION_DEDUP_SEC) or _has_nearby(
                found, t, VARIATION_DEDUP_SEC
            ):
                continue
            current = envelope_at(sec)
            following = envelope_at(sec + 1)
            found.append(AudioHighlight(
                time=t,
                highlight_type="buildup" if following > current * _BUILDUP_RATIO else "fillin",
                intensity=min(10, int(round((rate - avg) / std * 3))),
                source="all",
            ))
        return found

    # ── Climax ────────────────────────────────────────────────────────────────

    def find_climax(
        self,
        smoothed: np.ndarray,
        hop_length: int,
        sr: int,
        existing: Sequence[AudioHighlight],
        start_time: float = 0.0,
    ) -> List[AudioHighlight]:
        """The loudest smoothed frame, unless a highlight already sits within 2 s."""
        if smoothed.shape[0] == 0 or float(smoothed.max()) <= 0.0:
            return []
        t = start_time + int(np.argmax(smoothed)) * hop_length / sr
        if _has_nearby(existing, t, CLIMAX_DEDUP_SEC):
            return []
        return [AudioHighlight(time=t, highlight_type="climax", intensity=10, source="all")]

    # ── Orchestration ─────────────────────────────────────────────────────────

    def detect(
        self,
        y: np.ndarray,
        sr: int,
        band_events: Sequence[FrequencyBandEvent] = (),
        start_time: float = 0.0,
    ) -> List[AudioHighlight]:
        """Run every pass over the selection samples ``y``; returns time-sorted highlights."""
        smoothed, hop_length = self.smoothed_energy(y, sr)

        highlights = self.detect_energy_spikes(smoothed, hop_length, sr, start_time)
        highlights = self.merge_band_events(highlights, band_events)
        highlights += self.detect_variation_highlights(
            y, sr, smoothed, hop_length, highlights, start_time
        )
        highlights += self.find_climax(smoothed, hop_length, sr, highlights, start_time)

        highlights.sort(key=lambda h: h.time)
        logger.debug("Detected %d highlights", len(highlights))
        return highlights


def detect_rapid_sequences(beats: Sequence[Beat]) -> List[RapidBeatSequence]:
    """Runs of >=3 strong beats with regular 0.1-0.8 s spacing.

    A run grows while each interval stays in range and within 0.15 s of the
    previous interval in the run.
    """
    times = sorted(b.time for b in beats if b.is_strong)
    sequences: List[RapidBeatSequence] = []
    if not times:
        return sequences

    def commit(run: List[float]) -> None:
        if len(run) >= RAPID_MIN_BEATS:
            sequences.append(RapidBeatSequence(
                start=run[0],
                end=run[-1],
                interval=(run[-1] - run[0]) / (len(run) - 1),
                count=len(run),
            ))

    run = [times[0]]
    for prev, cur in zip(times, times[1:]):
        interval = cur - prev
        in_range = RAPID_MIN_INTERVAL <= interval <= RAPID_MAX_INTERVAL
        if in_range and (
            len(run) < 2 or abs(interval - (run[-1] - run[-2])) < RAPID_INTERVAL_TOLERANCE
        ):
            run.append(cur)
            continue
        commit(run)
        run = [prev, cur] if in_range else [cur]
    commit(run)

    logger.debug("Found %d rapid beat sequences", len(sequences))
    return sequences
