"""Shared test fixtures for Slideshow Studio."""
import shutil
import struct
import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pytest
import yaml


SAMPLE_RATE = 22050


def make_click_track(
    duration: float = 8.0,
    interval: float = 0.5,
    sr: int = SAMPLE_RATE,
    amplitude: float = 0.8,
) -> np.ndarray:
    """Decaying 1 kHz clicks every ``interval`` seconds (120 BPM by default)."""
    y = np.zeros(int(duration * sr), dtype=np.float32)
    click_len = int(0.05 * sr)
    t = np.arange(click_len) / sr
    click = (amplitude * np.sin(2 * np.pi * 1000.0 * t) * np.exp(-t / 0.01)).astype(np.float32)
    pos = 0.0
    while pos < duration:
        start = int(pos * sr)
        end = min(start + click_len, y.shape[0])
        y[start:end] += click[:end - start]
        pos += interval
    return y


def write_wav(path: Path, y: np.ndarray, sr: int = SAMPLE_RATE) -> Path:
    """Write ``y`` (floats in [-1, 1]) as a 16-bit mono PCM WAV."""
    pcm = (np.clip(y, -1.0, 1.0) * 32767).astype("<i2").tobytes()
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 36 + len(pcm), b"WAVE",
        b"fmt ", 16, 1, 1, sr, sr * 2, 2, 16,
        b"data", len(pcm),
    )
    path.write_bytes(header + pcm)
    return path


@pytest.fixture(scope="session")
def project_root() -> Path:
    return Path(__file__).parent.parent.parent


@pytest.fixture
def tmp_dir() -> Generator[Path, None, None]:
    d = Path(tempfile.mkdtemp())
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def sample_settings(tmp_dir: Path) -> Path:
    """Write a minimal settings.yaml to a temp dir and return its path."""
    settings = {
        "logging": {"level": "DEBUG", "file": str(tmp_dir / "logs" / "test.log")},
        "paths": {"uploads": str(tmp_dir / "uploads")},
        "audio": {
            "load_sample_rate": SAMPLE_RATE,
            "waveform_points": 100,
            "max_upload_mb": 5,
            "allowed_suffixes": [".wav", ".mp3"],
        },
        "planner": {"default_title": "Test Slideshow"},
        "cors": {"origins": ["http://localhost:5173"]},
    }
    cfg_path = tmp_dir / "settings.yaml"
    cfg_path.write_text(yaml.dump(settings))
    return cfg_path


# ─────────────────────────────────────────────────────────────────────────────
# Audio fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_rate() -> int:
    return SAMPLE_RATE


@pytest.fixture
def make_clicks():
    """Factory for click tracks with a custom duration, interval or level."""
    return make_click_track


@pytest.fixture
def click_track() -> np.ndarray:
    """8 s of clicks at 120 BPM, 22050 Hz mono."""
    return make_click_track()


@pytest.fixture
def silence() -> np.ndarray:
    """8 s of digital silence, 22050 Hz mono."""
    return np.zeros(8 * SAMPLE_RATE, dtype=np.float32)


@pytest.fixture
def sample_audio_file(tmp_dir: Path, click_track: np.ndarray) -> Path:
    """The 120 BPM click track written as a 16-bit mono WAV file."""
    return write_wav(tmp_dir / "clicks.wav", click_track)


@pytest.fixture
def silent_audio_file(tmp_dir: Path, silence: np.ndarray) -> Path:
    """8 s of silence written as a 16-bit mono WAV file."""
    return write_wav(tmp_dir / "quiet.wav", silence)


# ─────────────────────────────────────────────────────────────────────────────
# FastAPI TestClient
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def client(sample_settings: Path):
    """TestClient over an app built from the temp settings file."""
    from fastapi.testclient import TestClient
    from backend.main import create_app
    from backend.services.shared.config import Config

    app = create_app(Config(str(sample_settings)))
    with TestClient(app) as c:
        yield c
