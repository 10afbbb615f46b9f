"""Integration tests for the Slideshow Studio FastAPI backend.

Uses FastAPI TestClient to run the full pipeline through the ASGI stack:
a real WAV upload is decoded and analysed, and the returned analysis JSON
is fed straight back into the planner together with oracle suggestions.

Coverage targets:
  - audio -> plan chain with the client's own JSON round trip
  - oracle text wrapped in prose
  - silent uploads degrading to an even split
"""
from __future__ import annotations

import io
import json
import math

import numpy as np
import pytest

pytestmark = pytest.mark.integration


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _upload(client, path, **form):
    resp = client.post(
        "/api/audio/analyze",
        files={"file": (path.name, io.BytesIO(path.read_bytes()), "audio/wav")},
        data={k: str(v) for k, v in form.items()},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["analysis"]


def _assert_valid_plan(plan, n_images, duration):
    clips = plan["clips"]
    assert [c["imageIndex"] for c in clips] == list(range(n_images))
    assert clips[0]["startTime"] == 0.0
    assert math.isclose(clips[-1]["endTime"], duration, abs_tol=1e-9)
    for prev, cur in zip(clips, clips[1:]):
        assert cur["startTime"] == prev["endTime"]
        assert cur["endTime"] > cur["startTime"]
    for c in clips:
        length = c["endTime"] - c["startTime"]
        assert 0.05 <= c["motion"]["intensity"] <= 0.15
        assert c["transition"]["duration"] <= length / 2 + 1e-9


# ═════════════════════════════════════════════════════════════════════════════
# Full pipeline
# ═════════════════════════════════════════════════════════════════════════════


class TestAnalyzeThenPlan:
    def test_heuristic_plan_from_upload(self, client, sample_audio_file):
        analysis = _upload(client, sample_audio_file)
        assert analysis["bpm"] == 120.0

        resp = client.post("/api/plan", json={
            "images": [{"dynamism": d} for d in (2, 6, 9, 4)],
            "audioAnalysis": analysis,
        })
        assert resp.status_code == 200
        _assert_valid_plan(resp.json()["editingPlan"], 4, analysis["duration"])

    def test_selection_plan_is_in_clip_time(self, client, sample_audio_file):
        analysis = _upload(client, sample_audio_file, start_time=2.0, end_time=6.0)
        assert analysis["startTime"] == 2.0

        resp = client.post("/api/plan", json={
            "images": [{"dynamism": 5}, {"dynamism": 5}, {"dynamism": 5}],
            "audioAnalysis": analysis,
        })
        _assert_valid_plan(resp.json()["editingPlan"], 3, 4.0)

    def test_oracle_guided_plan(self, client, sample_audio_file):
        analysis = _upload(client, sample_audio_file)
        oracle = (
            "Based on the waveform I would cut like this:\n```json\n"
            + json.dumps({
                "switchPoints": [
                    {"time": 2.0, "reason": "phrase", "intensity": 8},
                    {"time": 4.0, "reason": "phrase"},
                    {"time": 6.0, "reason": "phrase", "suggestedTransition": "zoom"},
                ],
                "overallMood": "playful",
                "suggestedTitle": "Clockwork",
            })
            + "\n```"
        )
        resp = client.post("/api/plan", json={
            "images": [{"dynamism": 5}] * 4,
            "audioAnalysis": analysis,
            "oracleResponse": oracle,
        })
        plan = resp.json()["editingPlan"]
        _assert_valid_plan(plan, 4, analysis["duration"])
        assert [c["endTime"] for c in plan["clips"][:3]] == [2.0, 4.0, 6.0]
        assert plan["clips"][3]["transition"]["type"] == "zoom"
        assert plan["suggestedTitle"] == "Clockwork"
        assert plan["overallMood"] == "playful"

    def test_plans_are_reproducible(self, client, sample_audio_file):
        analysis = _upload(client, sample_audio_file)
        body = {"images": [{"dynamism": d} for d in (8, 3, 7, 5, 1)], "audioAnalysis": analysis}
        first = client.post("/api/plan", json=body).json()
        second = client.post("/api/plan", json=body).json()
        assert first == second


class TestSilentUpload:
    def test_silence_gives_even_split(self, client, silent_audio_file):
        analysis = _upload(client, silent_audio_file)
        assert analysis["bpm"] == 120.0
        assert analysis["beats"] == []
        assert analysis["energy"] == 0
        assert len(analysis["sections"]) == 3

        resp = client.post("/api/plan", json={
            "images": [{"dynamism": 5}] * 4,
            "audioAnalysis": analysis,
        })
        clips = resp.json()["editingPlan"]["clips"]
        durations = [c["endTime"] - c["startTime"] for c in clips]
        assert np.allclose(durations, [2.0] * 4)
