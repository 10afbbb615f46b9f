"""Low / mid / high band energy and per-band spike events.

Bands are approximated with one-pole IIR filters run independently inside
each 2048-sample frame (512 hop): a low-pass with alpha 0.1 and a high-pass
with alpha 0.9.  Mid is whatever RMS remains after removing half of each.
"""
from __future__ import annotations

import logging
from typing import Dict, List

import numpy as np
from scipy import signal as scipy_signal

from backend.services.audio.analysis import frame_signal, moving_average
from backend.services.audio.types import FrequencyBandEvent

logger = logging.getLogger("slideshow_studio.audio.bands")

BAND_FRAME_LENGTH = 2048
BAND_HOP_LENGTH = 512
LOW_ALPHA = 0.1
HIGH_ALPHA = 0.9

BANDS = ("low", "mid", "high")
SPIKE_THRESHOLDS: Dict[str, float] = {"low": 1.2, "mid": 1.5, "high": 1.3}
BAND_EVENT_DEDUP_SEC = 0.15
_SMOOTH_RADIUS = 8
_MIN_FRAMES = 10
_MEAN_MULTIPLIER = 1.5
_INTENSITY_SPIKE_STD = 2.0
_FRAME_BLOCK = 256


def _band_rms_block(frames: np.ndarray, frame_length: int):
    """Low, mid and high RMS for a ``(frame_length, n)`` block of frames."""
    first = frames[0]
    rest = frames[1:]
    n = frames.shape[1]

    total = np.sqrt(np.sum(np.square(frames[:-1]), axis=0) / frame_length)

    # y[n] = a*x[n] + (1-a)*y[n-1], seeded with the frame's first sample
    low_zi = ((1.0 - LOW_ALPHA) * first)[np.newaxis, :]
    low, _ = scipy_signal.lfilter(
        [LOW_ALPHA], [1.0, -(1.0 - LOW_ALPHA)], rest, axis=0, zi=low_zi
    )
    low_rms = np.sqrt(np.sum(np.square(low), axis=0) / frame_length)

    # y[n] = a*(y[n-1] + x[n] - x[n-1]), seeded with y = x = first sample
    high_zi = np.zeros((1, n), dtype=np.float64)
    high, _ = scipy_signal.lfilter(
        [HIGH_ALPHA, -HIGH_ALPHA], [1.0, -HIGH_ALPHA], rest, axis=0, zi=high_zi
    )
    high_rms = np.sqrt(np.sum(np.square(high), axis=0) / frame_length)

    mid_rms = np.maximum(0.0, total - 0.5 * low_rms - 0.5 * high_rms)
    return low_rms, mid_rms, high_rms


def compute_band_energies(
    y: np.ndarray,
    frame_length: int = BAND_FRAME_LENGTH,
    hop_length: int = BAND_HOP_LENGTH,
) -> Dict[str, np.ndarray]:
    """Per-frame RMS of the low, mid and high band approximations.

    Every filter restarts at the first sample of its frame.  Frames are
    filtered in fixed-size blocks so peak memory does not grow with track
    length.  A signal shorter than one frame yields empty arrays.
    """
    frames = frame_signal(y.astype(np.float64, copy=False), frame_length, hop_length)
    n_frames = frames.shape[1]
    if n_frames == 0:
        return {band: np.zeros(0, dtype=np.float64) for band in BANDS}

    low_parts, mid_parts, high_parts = [], [], []
    for lo in range(0, n_frames, _FRAME_BLOCK):
        low_rms, mid_rms, high_rms = _band_rms_block(
            frames[:, lo:lo + _FRAME_BLOCK], frame_length
        )
        low_parts.append(low_rms)
        mid_parts.append(mid_rms)
        high_parts.append(high_rms)

    logger.debug("Band energies over %d frames", n_frames)
    return {
        "low": np.concatenate(low_parts),
        "mid": np.concatenate(mid_parts),
        "high": np.concatenate(high_parts),
    }


def _band_spike_frames(energies: np.ndarray, threshold: float):
    """Yield ``(frame_index, increase, std)`` for every spike frame of one band."""
    n = energies.shape[0]
    if n < _MIN_FRAMES:
        return

    smoothed = moving_average(energies, _SMOOTH_RADIUS, _SMOOTH_RADIUS)
    avg = float(np.mean(smoothed))
    std = float(np.std(smoothed))
    if std <= 0.0:
        return

    idx = np.arange(2, n - 2)
    current = energies[idx]
    increase = current - np.maximum(energies[idx - 1], energies[idx - 2])
    hits = (increase > std * threshold) & (current > avg * _MEAN_MULTIPLIER)
    for i, inc in zip(idx[hits], increase[hits]):
        yield int(i), float(inc), std


def detect_band_events(
    band_energies: Dict[str, np.ndarray],
    sr: int,
    start_time: float = 0.0,
    hop_length: int = BAND_HOP_LENGTH,
) -> List[FrequencyBandEvent]:
    """Spike events for low, mid and high bands, time-sorted.

    Bands are scanned low -> mid -> high and an event is dropped when any
    earlier event (from any band) lies within 0.15 s.
    """
    events: List[FrequencyBandEvent] = []
    for band in BANDS:
        energies = band_energies.get(band)
        if energies is None:
            continue
        for i, increase, std in _band_spike_frames(energies, SPIKE_THRESHOLDS[band]):
            time = round(start_time + i * hop_length / sr, 2)
            if any(abs(e.time - time) < BAND_EVENT_DEDUP_SEC for e in events):
                continue
            events.append(FrequencyBandEvent(
                time=time,
                band=band,
                event_type=(
                    "intensity_spike" if increase > std * _INTENSITY_SPIKE_STD else "accent"
                ),
                intensity=min(10, int(round(increase / std * 3))),
            ))

    events.sort(key=lambda e: e.time)
    logger.debug("Detected %d frequency band events", len(events))
    return events
