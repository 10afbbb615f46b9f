"""Audio signal analysis primitives.

Tempo estimation from the short-frame energy envelope, the fixed-tempo beat
grid, RMS energy scoring, equal-length section segmentation and the display
waveform.  Every function takes an in-memory mono float array and never
raises on silent or very short input.
"""
from __future__ import annotations

import logging
from typing import List

import librosa
import numpy as np

from backend.services.audio.types import AudioSection, Beat

logger = logging.getLogger("slideshow_studio.audio.analysis")

DEFAULT_BPM = 120.0
MIN_BPM = 60
MAX_BPM = 200

_TEMPO_FRAME_SEC = 0.02        # 20 ms energy frames, 50% hop
_PEAK_THRESHOLD_RATIO = 0.3    # peaks must exceed 30% of the loudest frame
_BEATS_PER_BAR = 4

_MIN_SECTIONS = 3
_MAX_SECTIONS = 6
_SECTION_TARGET_SEC = 15.0

DEFAULT_WAVEFORM_POINTS = 200


# ── Framing helpers ───────────────────────────────────────────────────────────


def frame_signal(y: np.ndarray, frame_length: int, hop_length: int) -> np.ndarray:
    """Slice ``y`` into overlapping frames, shape ``(frame_length, n_frames)``.

    Returns an empty ``(frame_length, 0)`` array when the signal is shorter
    than one frame instead of raising like ``librosa.util.frame`` does.
    """
    frame_length = max(int(frame_length), 1)
    hop_length = max(int(hop_length), 1)
    if y.shape[0] < frame_length:
        return np.empty((frame_length, 0), dtype=y.dtype)
    return librosa.util.frame(
        np.ascontiguousarray(y), frame_length=frame_length, hop_length=hop_length
    )


def moving_average(values: np.ndarray, before: int, after: int) -> np.ndarray:
    """Mean over the window ``[i - before, i + after]``, truncated at the edges."""
    n = values.shape[0]
    if n == 0:
        return np.zeros(0, dtype=np.float64)
    csum = np.concatenate(([0.0], np.cumsum(values, dtype=np.float64)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - before)
    hi = np.minimum(n, idx + after + 1)
    return (csum[hi] - csum[lo]) / (hi - lo)


def is_silent(y: np.ndarray) -> bool:
    return y.shape[0] == 0 or not np.any(y)


# ── Tempo & beats ─────────────────────────────────────────────────────────────


def detect_bpm(y: np.ndarray, sr: int) -> float:
    """Estimate tempo from the spacing of energy peaks.

    Peaks are local maxima of the 20 ms frame energy above 30% of the maximum.
    The median peak spacing is converted to BPM and folded by octaves into
    ``[MIN_BPM, MAX_BPM]``.  Falls back to ``DEFAULT_BPM`` when fewer than two
    peaks exist.
    """
    frame_length = int(sr * _TEMPO_FRAME_SEC)
    hop_length = frame_length // 2
    if frame_length < 2 or hop_length < 1:
        return DEFAULT_BPM

    frames = frame_signal(y, frame_length, hop_length)
    if frames.shape[1] < 3:
        return DEFAULT_BPM

    energies = np.sum(np.square(frames, dtype=np.float64), axis=0)
    peak_energy = float(energies.max())
    if not np.isfinite(peak_energy) or peak_energy <= 0.0:
        return DEFAULT_BPM

    mid = energies[1:-1]
    is_peak = (
        (mid > peak_energy * _PEAK_THRESHOLD_RATIO)
        & (mid >= energies[:-2])
        & (mid > energies[2:])
    )
    peaks = np.flatnonzero(is_peak) + 1
    if peaks.shape[0] < 2:
        logger.debug("Only %d energy peaks; using default tempo", peaks.shape[0])
        return DEFAULT_BPM

    intervals = np.sort(np.diff(peaks))
    median_interval = int(intervals[intervals.shape[0] // 2])
    seconds_per_beat = median_interval * hop_length / sr
    bpm = round(60.0 / seconds_per_beat)

    while bpm < MIN_BPM:
        bpm *= 2
    while bpm > MAX_BPM:
        bpm = round(bpm / 2)

    logger.debug("Tempo %d BPM from %d peaks", bpm, peaks.shape[0])
    return float(bpm)


def generate_beats(bpm: float, start_time: float, end_time: float) -> List[Beat]:
    """Beat grid from ``start_time`` at ``60 / bpm`` spacing; every 4th is strong."""
    if not np.isfinite(bpm) or bpm <= 0:
        bpm = DEFAULT_BPM
    bpm = min(max(bpm, MIN_BPM), MAX_BPM)
    interval = 60.0 / bpm
    duration = end_time - start_time
    if duration <= 0:
        return []

    # Bounded by the window at the slowest tempo
    max_beats = int(duration * MAX_BPM / 60.0) + 1
    beats: List[Beat] = []
    for i in range(max_beats):
        t = start_time + i * interval
        if t >= end_time:
            break
        strength = "strong" if i % _BEATS_PER_BAR == 0 else "weak"
        beats.append(Beat(time=t, strength=strength))
    return beats


# ── Energy & sections ─────────────────────────────────────────────────────────


def calculate_energy(y: np.ndarray) -> int:
    """RMS energy scaled to 0-10 (``rms * 100``, clamped at 10)."""
    if y.shape[0] == 0:
        return 0
    rms = float(np.sqrt(np.mean(np.square(y, dtype=np.float64))))
    if not np.isfinite(rms):
        return 0
    return min(10, int(round(rms * 100)))


def classify_section_type(section_idx: int, total_sections: int, energy: int) -> str:
    """Classify section type from position and energy."""
    if section_idx == 0:
        return "intro"
    if section_idx == total_sections - 1:
        return "outro"
    if energy >= 7:
        return "chorus"
    if energy >= 4:
        return "verse"
    return "bridge"


def detect_sections(
    y: np.ndarray,
    sr: int,
    start_time: float,
    end_time: float,
) -> List[AudioSection]:
    """Split the selection into 3-6 equal, contiguous sections.

    ``y`` holds the samples of the selection only, so sample offsets are
    relative to ``start_time``.  The last section ends exactly at ``end_time``.
    """
    duration = end_time - start_time
    if duration <= 0:
        return []

    n_sections = max(_MIN_SECTIONS, min(_MAX_SECTIONS, int(duration // _SECTION_TARGET_SEC)))
    seg = duration / n_sections
    bounds = [i * seg for i in range(n_sections)] + [duration]

    sections: List[AudioSection] = []
    for i in range(n_sections):
        a = int(bounds[i] * sr)
        b = int(bounds[i + 1] * sr)
        energy = calculate_energy(y[a:b])
        sections.append(AudioSection(
            start=start_time + bounds[i],
            end=start_time + bounds[i + 1] if i < n_sections - 1 else end_time,
            section_type=classify_section_type(i, n_sections, energy),
            energy=energy,
        ))
    logger.debug("Split %.2fs into %d sections", duration, n_sections)
    return sections


# ── Display waveform ──────────────────────────────────────────────────────────


def compute_waveform(y: np.ndarray, n_points: int = DEFAULT_WAVEFORM_POINTS) -> List[float]:
    """Mean ``|y|`` per bucket, normalised to ``[0, 1]``."""
    if n_points <= 0:
        return []
    if y.shape[0] == 0:
        return [0.0] * n_points

    block = max(1, y.shape[0] // n_points)
    usable = min(y.shape[0], block * n_points)
    buckets = np.zeros(block * n_points, dtype=np.float64)
    buckets[:usable] = np.abs(y[:usable])
    means = buckets.reshape(n_points, block).mean(axis=1)

    peak = float(means.max())
    if peak <= 0.0:
        return [0.0] * n_points
    return [float(v) for v in means / peak]
