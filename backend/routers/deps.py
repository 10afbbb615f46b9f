"""FastAPI dependencies resolving the services built by ``create_app``."""
from __future__ import annotations

from fastapi import Request

from backend.services.audio.analyzer import AudioAnalyzer
from backend.services.shared.config import Config
from backend.services.video.planner import EditingPlanner


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_analyzer(request: Request) -> AudioAnalyzer:
    return request.app.state.analyzer


def get_planner(request: Request) -> EditingPlanner:
    return request.app.state.planner
