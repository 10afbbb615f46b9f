"""System router: health and runtime settings."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from backend.routers.deps import get_config
from backend.services.shared.config import Config

logger = logging.getLogger("slideshow_studio.routers.system")
router = APIRouter()

VERSION = "1.0.0"


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": VERSION}


@router.get("/settings")
async def public_settings(config: Config = Depends(get_config)) -> Dict[str, Any]:
    """Client-relevant settings (upload limits, accepted formats)."""
    return {
        "max_upload_mb": config.get("audio.max_upload_mb", 50),
        "allowed_suffixes": config.get("audio.allowed_suffixes", []),
        "waveform_points": config.get("audio.waveform_points", 200),
    }
