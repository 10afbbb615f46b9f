"""Slideshow Studio FastAPI application.

``create_app`` wires config, logging and the planning services onto
``app.state`` and mounts the audio, plan and system routers. The
module-level ``app`` is what ``uvicorn backend.main:app`` serves.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routers import audio, plan, system
from backend.services.audio.analyzer import AudioAnalyzer
from backend.services.shared.config import Config
from backend.services.shared.logging import setup_logging
from backend.services.video.planner import DEFAULT_TITLE, EditingPlanner

logger = logging.getLogger("slideshow_studio.main")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the app and its services from ``config`` (default: settings.yaml)."""
    config = config or Config.from_environment()
    setup_logging(
        level=config.get("logging.level", "INFO"),
        log_file=config.get("logging.file"),
    )

    app = FastAPI(
        title="Slideshow Studio",
        version=system.VERSION,
        description="Beat-synchronised slideshow planning from music and still images.",
    )

    # ── Services ──────────────────────────────────────────────────────────────
    analyzer = AudioAnalyzer(
        load_sample_rate=int(config.get("audio.load_sample_rate", 22050)),
        waveform_points=int(config.get("audio.waveform_points", 200)),
    )
    app.state.config = config
    app.state.analyzer = analyzer
    app.state.planner = EditingPlanner(
        analyzer=analyzer,
        default_title=config.get("planner.default_title", DEFAULT_TITLE),
    )

    # ── CORS ──────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("cors.origins", ["http://localhost:3000"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    # Critical: every imported router must be mounted. No orphan routers.
    app.include_router(audio.router,  prefix="/api/audio",  tags=["Audio"])
    app.include_router(plan.router,   prefix="/api/plan",   tags=["Plan"])
    app.include_router(system.router, prefix="/api/system", tags=["System"])

    logger.info("Slideshow Studio app created (config=%s)", config.path)
    return app


app = create_app()
