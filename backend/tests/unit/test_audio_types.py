"""Tests for the audio feature wire format."""
import json

import pytest

from backend.services.audio.types import (
    AudioFeatures,
    AudioHighlight,
    AudioSection,
    Beat,
    FrequencyBandEvent,
    RapidBeatSequence,
)


def _features() -> AudioFeatures:
    return AudioFeatures(
        bpm=128.0,
        energy=6,
        start_time=10.0,
        end_time=40.0,
        beats=[Beat(10.0, "strong"), Beat(10.47, "weak")],
        sections=[AudioSection(10.0, 20.0, "intro", 3), AudioSection(20.0, 40.0, "chorus", 8)],
        highlights=[AudioHighlight(21.0, "drop", 9, "all"), AudioHighlight(25.0, "buildup", 4)],
        frequency_events=[FrequencyBandEvent(12.34, "low", "accent", 5)],
        rapid_sequences=[RapidBeatSequence(30.0, 31.0, 0.25, 5)],
        waveform=[0.0, 0.5, 1.0],
    )


class TestToDict:
    def test_camel_case_keys(self):
        data = _features().to_dict()
        assert set(data) == {
            "bpm", "energy", "startTime", "endTime", "duration", "beats", "sections",
            "highlights", "frequencyEvents", "rapidSequences", "waveformData",
        }
        assert data["duration"] == 30.0
        assert data["sections"][1] == {"start": 20.0, "end": 40.0, "type": "chorus", "energy": 8}

    def test_highlight_source_omitted_when_unknown(self):
        data = _features().to_dict()
        assert data["highlights"][0]["source"] == "all"
        assert "source" not in data["highlights"][1]

    def test_json_serialisable(self):
        json.dumps(_features().to_dict())

    def test_from_dict_restores_features(self):
        original = _features()
        restored = AudioFeatures.from_dict(json.loads(json.dumps(original.to_dict())))
        assert restored == original


class TestFromDict:
    def test_minimal_payload(self):
        features = AudioFeatures.from_dict({"bpm": 100, "duration": 12.5})
        assert features.bpm == 100.0
        assert features.start_time == 0.0
        assert features.end_time == 12.5
        assert features.beats == []

    def test_end_time_from_sections(self):
        features = AudioFeatures.from_dict({
            "startTime": 5.0,
            "sections": [{"start": 5.0, "end": 9.0, "type": "intro", "energy": 2}],
        })
        assert features.end_time == 9.0
        assert features.duration == 4.0

    def test_missing_required_field_raises(self):
        with pytest.raises(KeyError):
            AudioFeatures.from_dict({"duration": 5.0, "beats": [{"strength": "strong"}]})

    def test_bad_number_raises(self):
        with pytest.raises(ValueError):
            AudioFeatures.from_dict({"duration": "long"})


class TestHelpers:
    def test_strong_beats(self):
        assert [b.time for b in _features().strong_beats] == [10.0]

    def test_section_duration(self):
        assert AudioSection(2.0, 5.5, "verse", 4).duration == 3.5
