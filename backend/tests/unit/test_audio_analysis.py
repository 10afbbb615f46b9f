"""Tests for tempo, beat grid, energy, sections and waveform primitives."""
import numpy as np
import pytest

from backend.services.audio.analysis import (
    DEFAULT_BPM,
    calculate_energy,
    classify_section_type,
    compute_waveform,
    detect_bpm,
    detect_sections,
    frame_signal,
    generate_beats,
    is_silent,
    moving_average,
)


# ── helpers ───────────────────────────────────────────────────────────────────


class TestFrameSignal:
    def test_shape(self):
        y = np.arange(100, dtype=np.float32)
        frames = frame_signal(y, 20, 10)
        assert frames.shape == (20, 9)
        assert frames[0, 1] == 10.0

    def test_shorter_than_one_frame_is_empty(self):
        frames = frame_signal(np.zeros(5, dtype=np.float32), 20, 10)
        assert frames.shape == (20, 0)


class TestMovingAverage:
    def test_centered_window_truncates_at_edges(self):
        out = moving_average(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), 1, 1)
        assert out == pytest.approx([1.5, 2.0, 3.0, 4.0, 4.5])

    def test_asymmetric_window(self):
        out = moving_average(np.array([0.0, 0.0, 6.0]), 2, 0)
        assert out == pytest.approx([0.0, 0.0, 2.0])

    def test_empty(self):
        assert moving_average(np.zeros(0), 3, 3).shape == (0,)


class TestIsSilent:
    def test_zeros_are_silent(self, silence):
        assert is_silent(silence)

    def test_empty_is_silent(self):
        assert is_silent(np.zeros(0, dtype=np.float32))

    def test_clicks_are_not_silent(self, click_track):
        assert not is_silent(click_track)


# ── tempo & beats ─────────────────────────────────────────────────────────────


class TestDetectBpm:
    def test_click_track_at_120(self, click_track, sample_rate):
        assert detect_bpm(click_track, sample_rate) == 120.0

    def test_silence_defaults(self, silence, sample_rate):
        assert detect_bpm(silence, sample_rate) == DEFAULT_BPM

    def test_too_short_defaults(self, sample_rate):
        assert detect_bpm(np.ones(100, dtype=np.float32), sample_rate) == DEFAULT_BPM

    def test_result_within_tempo_range(self, make_clicks, sample_rate):
        # 0.25 s spacing is 240 BPM and folds down an octave
        bpm = detect_bpm(make_clicks(duration=8.0, interval=0.25), sample_rate)
        assert 60.0 <= bpm <= 200.0


class TestGenerateBeats:
    def test_grid_spacing_and_strength(self):
        beats = generate_beats(120.0, 0.0, 2.0)
        assert [b.time for b in beats] == pytest.approx([0.0, 0.5, 1.0, 1.5])
        assert [b.strength for b in beats] == ["strong", "weak", "weak", "weak"]

    def test_every_fourth_beat_is_strong(self):
        beats = generate_beats(120.0, 0.0, 10.0)
        strong = [i for i, b in enumerate(beats) if b.is_strong]
        assert strong == list(range(0, len(beats), 4))

    def test_grid_starts_at_selection_start(self):
        beats = generate_beats(60.0, 10.0, 13.0)
        assert [b.time for b in beats] == pytest.approx([10.0, 11.0, 12.0])

    def test_all_beats_inside_window(self):
        beats = generate_beats(133.0, 3.0, 17.5)
        assert all(3.0 <= b.time < 17.5 for b in beats)

    def test_non_finite_bpm_uses_default(self):
        beats = generate_beats(float("inf"), 0.0, 2.0)
        assert len(beats) == 4

    def test_empty_window(self):
        assert generate_beats(120.0, 5.0, 5.0) == []


# ── energy & sections ─────────────────────────────────────────────────────────


class TestCalculateEnergy:
    def test_silence_is_zero(self, silence):
        assert calculate_energy(silence) == 0

    def test_scaled_rms(self):
        assert calculate_energy(np.full(1000, 0.05)) == 5

    def test_clamped_at_ten(self):
        assert calculate_energy(np.ones(1000)) == 10

    def test_empty_is_zero(self):
        assert calculate_energy(np.zeros(0)) == 0


class TestClassifySectionType:
    @pytest.mark.parametrize("idx,total,energy,expected", [
        (0, 4, 9, "intro"),
        (3, 4, 9, "outro"),
        (1, 4, 7, "chorus"),
        (1, 4, 5, "verse"),
        (2, 4, 4, "verse"),
        (2, 4, 3, "bridge"),
    ])
    def test_classification(self, idx, total, energy, expected):
        assert classify_section_type(idx, total, energy) == expected


class TestDetectSections:
    def test_short_selection_has_three_sections(self, sample_rate):
        y = np.zeros(30 * sample_rate, dtype=np.float32)
        sections = detect_sections(y, sample_rate, 0.0, 30.0)
        assert len(sections) == 3

    def test_long_selection_capped_at_six(self, sample_rate):
        y = np.zeros(100 * sample_rate, dtype=np.float32)
        assert len(detect_sections(y, sample_rate, 0.0, 100.0)) == 6

    def test_sections_are_contiguous_and_cover_selection(self, sample_rate):
        y = np.zeros(30 * sample_rate, dtype=np.float32)
        sections = detect_sections(y, sample_rate, 10.0, 40.0)
        assert sections[0].start == 10.0
        assert sections[-1].end == 40.0
        for prev, cur in zip(sections, sections[1:]):
            assert cur.start == pytest.approx(prev.end)

    def test_first_intro_last_outro(self, sample_rate):
        y = np.full(60 * sample_rate, 0.08, dtype=np.float32)
        sections = detect_sections(y, sample_rate, 0.0, 60.0)
        assert sections[0].section_type == "intro"
        assert sections[-1].section_type == "outro"
        assert all(s.section_type == "chorus" for s in sections[1:-1])

    def test_energy_per_section(self, sample_rate):
        y = np.zeros(30 * sample_rate, dtype=np.float32)
        y[10 * sample_rate:20 * sample_rate] = 0.05
        sections = detect_sections(y, sample_rate, 0.0, 30.0)
        assert [s.energy for s in sections] == [0, 5, 0]

    def test_empty_window(self, sample_rate):
        assert detect_sections(np.zeros(0, dtype=np.float32), sample_rate, 5.0, 5.0) == []


# ── waveform ──────────────────────────────────────────────────────────────────


class TestComputeWaveform:
    def test_point_count_and_normalisation(self, click_track):
        wf = compute_waveform(click_track, 200)
        assert len(wf) == 200
        assert max(wf) == pytest.approx(1.0)
        assert min(wf) >= 0.0

    def test_silence_is_flat_zero(self, silence):
        assert compute_waveform(silence, 50) == [0.0] * 50

    def test_fewer_samples_than_points(self):
        wf = compute_waveform(np.array([0.5, -1.0, 0.25], dtype=np.float32), 10)
        assert len(wf) == 10
        assert wf[1] == pytest.approx(1.0)

    def test_zero_points(self, click_track):
        assert compute_waveform(click_track, 0) == []
