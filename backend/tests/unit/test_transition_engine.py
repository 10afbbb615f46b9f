"""Tests for transition and motion selection."""
import pytest

from backend.services.video.transition_engine import (
    MAX_MOTION_INTENSITY,
    MIN_MOTION_INTENSITY,
    TransitionEngine,
)
from backend.services.video.types import MotionType, TransitionType


class TestSelectTransition:
    def test_rapid_zone_is_hard_cut(self):
        t = TransitionEngine().select_transition(2.0, True, mood="calm", suggested="fade")
        assert t.transition_type is TransitionType.CUT
        assert t.duration_sec == 0.0

    def test_short_clip_is_hard_cut(self):
        t = TransitionEngine().select_transition(0.3, False, mood="calm")
        assert t.transition_type is TransitionType.CUT

    def test_suggestion_wins_over_mood(self):
        t = TransitionEngine().select_transition(2.0, False, mood="calm", suggested="slide-left")
        assert t.transition_type is TransitionType.SLIDE_LEFT
        assert t.duration_sec == pytest.approx(0.3)

    def test_cut_suggestion_falls_back_to_mood(self):
        t = TransitionEngine().select_transition(2.0, False, mood="calm", suggested="cut")
        assert t.transition_type is TransitionType.FADE

    def test_unknown_suggestion_ignored(self):
        t = TransitionEngine().select_transition(2.0, False, mood="upbeat", suggested="sparkle")
        assert t.transition_type is TransitionType.CUT

    @pytest.mark.parametrize("mood,expected", [
        ("calm", TransitionType.FADE),
        ("Melancholic", TransitionType.FADE),
        ("energetic", TransitionType.CUT),
        ("intense", TransitionType.CUT),
        ("mysterious", TransitionType.DISSOLVE),
        (None, TransitionType.DISSOLVE),
    ])
    def test_mood_mapping(self, mood, expected):
        assert TransitionEngine().select_transition(3.0, False, mood=mood).transition_type is expected

    def test_fade_duration(self):
        assert TransitionEngine().select_transition(3.0, False, mood="calm").duration_sec == 0.5

    def test_duration_capped_at_half_clip(self):
        t = TransitionEngine().select_transition(0.8, False, mood="calm")
        assert t.duration_sec == pytest.approx(0.4)

    def test_to_dict(self):
        t = TransitionEngine().select_transition(3.0, False, mood="peaceful")
        assert t.to_dict() == {"type": "fade", "duration": 0.5}


class TestMotion:
    @pytest.mark.parametrize("dynamism,expected", [(1, 0.05), (10, 0.15), (5.5, 0.1), (0, 0.05), (20, 0.15)])
    def test_intensity_linear_in_dynamism(self, dynamism, expected):
        assert TransitionEngine.motion_intensity(dynamism) == pytest.approx(expected)

    def test_intensity_always_in_range(self):
        engine = TransitionEngine()
        for i in range(20):
            m = engine.select_motion(i, 2.0, i * 0.6)
            assert MIN_MOTION_INTENSITY <= m.intensity <= MAX_MOTION_INTENSITY

    def test_rapid_clip_is_static(self):
        m = TransitionEngine().select_motion(3, 0.2, 9.0)
        assert m.motion_type is MotionType.STATIC
        assert m.intensity == MIN_MOTION_INTENSITY

    def test_rapid_zone_is_static(self):
        m = TransitionEngine().select_motion(3, 2.0, 9.0, in_rapid_zone=True)
        assert m.motion_type is MotionType.STATIC

    def test_suggestion_used(self):
        m = TransitionEngine().select_motion(0, 2.0, 5.0, suggestion="pan-up")
        assert m.motion_type is MotionType.PAN_UP

    @pytest.mark.parametrize("suggestion", ["static", "wobble", None])
    def test_default_cycle_when_no_usable_suggestion(self, suggestion):
        m = TransitionEngine().select_motion(0, 2.0, 5.0, suggestion=suggestion)
        assert m.motion_type is MotionType.ZOOM_OUT

    def test_cycle_is_deterministic(self):
        engine = TransitionEngine()
        first = [engine.select_motion(i, 2.0, 5.0).motion_type for i in range(8)]
        second = [engine.select_motion(i, 2.0, 5.0).motion_type for i in range(8)]
        assert first == second
        assert first[:4] == [
            MotionType.ZOOM_OUT, MotionType.ZOOM_IN, MotionType.PAN_RIGHT, MotionType.PAN_LEFT,
        ]
