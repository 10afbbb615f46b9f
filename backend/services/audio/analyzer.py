"""AudioAnalyzer: raw PCM selection -> AudioFeatures.

Runs the whole extraction chain for one ``[start_time, end_time)`` selection:

  tempo -> beat grid -> energy -> sections -> band events -> highlights
        -> rapid beat sequences -> display waveform

Silent or empty selections are not errors: they produce the documented
defaults (120 BPM, zero energy, no beats or highlights) with sections that
still cover the selection, so the planner can fall back to an even split.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import librosa
import numpy as np

from backend.services.audio.analysis import (
    DEFAULT_BPM,
    DEFAULT_WAVEFORM_POINTS,
    calculate_energy,
    compute_waveform,
    detect_bpm,
    detect_sections,
    generate_beats,
    is_silent,
)
from backend.services.audio.bands import compute_band_energies, detect_band_events
from backend.services.audio.highlights import HighlightDetector, detect_rapid_sequences
from backend.services.audio.types import AudioFeatures

logger = logging.getLogger("slideshow_studio.audio.analyzer")


class AudioInputError(ValueError):
    """Malformed samples, sample rate or selection window."""


class AudioLoadError(Exception):
    """Audio file could not be decoded."""


def validate_samples(samples: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """Return ``samples`` as a 1-D float32 array or raise AudioInputError."""
    try:
        y = np.asarray(samples)
    except (TypeError, ValueError) as exc:
        raise AudioInputError(f"Samples are not array-like: {exc}") from exc

    if y.dtype == np.bool_ or not (
        np.issubdtype(y.dtype, np.floating) or np.issubdtype(y.dtype, np.integer)
    ):
        raise AudioInputError(f"Samples must be real numbers, got dtype {y.dtype}")
    if y.ndim != 1:
        raise AudioInputError(f"Samples must be mono (1-D), got shape {y.shape}")

    y = y.astype(np.float32, copy=False)
    if not np.all(np.isfinite(y)):
        raise AudioInputError("Samples contain NaN or infinite values")
    return y


class AudioAnalyzer:
    """Extracts tempo, beats, energy, sections and highlights from mono PCM.

    Usage::

        az = AudioAnalyzer()
        features = az.analyze(samples, 44100, start_time=12.0, end_time=42.0)
        features = az.analyze_file("song.mp3", start_time=0.0, end_time=30.0)
    """

    def __init__(
        self,
        load_sample_rate: int = 22050,
        waveform_points: int = DEFAULT_WAVEFORM_POINTS,
        highlight_detector: Optional[HighlightDetector] = None,
    ):
        self.load_sample_rate = load_sample_rate
        self.waveform_points = waveform_points
        self.highlight_detector = highlight_detector or HighlightDetector()

    # ── public ────────────────────────────────────────────────────────────────

    def analyze(
        self,
        samples: Union[np.ndarray, Sequence[float]],
        sample_rate: int,
        start_time: float = 0.0,
        end_time: Optional[float] = None,
    ) -> AudioFeatures:
        """Analyze the ``[start_time, end_time)`` selection of ``samples``.

        ``end_time`` defaults to the end of the samples.  Beyond the end of
        the data the selection is simply truncated, but section and beat
        timing still spans the requested window.

        Raises:
            AudioInputError: malformed samples, non-positive sample rate,
                negative start or ``end_time <= start_time``.
        """
        y = validate_samples(samples)
        if not isinstance(sample_rate, (int, np.integer)) or sample_rate <= 0:
            raise AudioInputError(f"Sample rate must be a positive integer, got {sample_rate!r}")
        sr = int(sample_rate)

        if end_time is None:
            end_time = y.shape[0] / sr
        start_time = float(start_time)
        end_time = float(end_time)
        if not (np.isfinite(start_time) and np.isfinite(end_time)):
            raise AudioInputError("Selection bounds must be finite")
        if start_time < 0:
            raise AudioInputError(f"start_time must be >= 0, got {start_time}")
        if end_time <= start_time:
            raise AudioInputError(
                f"end_time ({end_time}) must be greater than start_time ({start_time})"
            )

        selection = y[int(start_time * sr):int(end_time * sr)]
        logger.info(
            "Analyzing %.2fs selection [%.2f, %.2f) at %d Hz",
            end_time - start_time, start_time, end_time, sr,
        )

        sections = detect_sections(selection, sr, start_time, end_time)
        waveform = compute_waveform(selection, self.waveform_points)

        if is_silent(selection):
            logger.warning("Selection [%.2f, %.2f) is silent; using defaults", start_time, end_time)
            return AudioFeatures(
                bpm=DEFAULT_BPM,
                energy=0,
                start_time=start_time,
                end_time=end_time,
                sections=sections,
                waveform=waveform,
            )

        bpm = detect_bpm(selection, sr)
        beats = generate_beats(bpm, start_time, end_time)
        band_events = detect_band_events(compute_band_energies(selection), sr, start_time)
        highlights = self.highlight_detector.detect(selection, sr, band_events, start_time)
        rapid = detect_rapid_sequences(beats)

        features = AudioFeatures(
            bpm=bpm,
            energy=calculate_energy(selection),
            start_time=start_time,
            end_time=end_time,
            beats=beats,
            sections=sections,
            highlights=highlights,
            frequency_events=band_events,
            rapid_sequences=rapid,
            waveform=waveform,
        )
        logger.info(
            "Analysis complete: %.0f BPM, %d beats, %d sections, %d highlights",
            bpm, len(beats), len(sections), len(highlights),
        )
        return features

    def analyze_file(
        self,
        audio_path: Union[str, Path],
        start_time: float = 0.0,
        end_time: Optional[float] = None,
    ) -> AudioFeatures:
        """Decode a file to mono at ``load_sample_rate`` and analyze a selection.

        Raises:
            AudioLoadError: the file is missing or cannot be decoded.
            AudioInputError: invalid selection window.
        """
        path = Path(audio_path)
        if not path.exists():
            raise AudioLoadError(f"Audio file not found: {path}")
        try:
            y, sr = librosa.load(str(path), sr=self.load_sample_rate, mono=True)
        except Exception as exc:  # noqa: BLE001
            raise AudioLoadError(f"Could not decode '{path.name}': {exc}") from exc

        if end_time is None:
            end_time = float(librosa.get_duration(y=y, sr=sr))
        logger.debug("Loaded '%s' (%d samples at %d Hz)", path.name, y.shape[0], sr)
        return self.analyze(y, int(sr), start_time=start_time, end_time=end_time)
