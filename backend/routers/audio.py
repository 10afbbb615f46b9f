"""Audio router: upload a track and get its AudioFeatures."""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from backend.routers.deps import get_analyzer, get_config
from backend.services.audio.analyzer import AudioAnalyzer, AudioInputError, AudioLoadError
from backend.services.shared.config import Config

logger = logging.getLogger("slideshow_studio.routers.audio")
router = APIRouter()

_DEFAULT_SUFFIXES = (".wav", ".mp3", ".flac", ".ogg", ".m4a", ".aac")


@router.post("/analyze")
async def analyze_audio(
    file: UploadFile = File(...),
    start_time: float = Form(0.0),
    end_time: Optional[float] = Form(None),
    analyzer: AudioAnalyzer = Depends(get_analyzer),
    config: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Analyze the ``[start_time, end_time)`` selection of an uploaded track.

    The upload is decoded to mono PCM, analysed and discarded; nothing is
    persisted.  ``end_time`` defaults to the end of the track.
    """
    filename = file.filename or "upload"
    suffix = Path(filename).suffix.lower()
    allowed = {s.lower() for s in config.get("audio.allowed_suffixes", _DEFAULT_SUFFIXES)}
    if suffix not in allowed:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type '{suffix}'. Allowed: {sorted(allowed)}",
        )

    content = await file.read()
    max_bytes = int(config.get("audio.max_upload_mb", 50)) * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds {max_bytes // (1024 * 1024)} MB",
        )

    fd, tmp_name = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(content)
        logger.info("Analyzing upload '%s' (%d bytes)", filename, len(content))
        features = await run_in_threadpool(
            analyzer.analyze_file, tmp_name, start_time, end_time
        )
    except AudioInputError as exc:
        raise HTTPException(
            status_code=422, detail=str(exc)
        ) from exc
    except AudioLoadError as exc:
        logger.warning("Could not decode upload '%s': %s", filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Could not decode audio file '{filename}'",
        ) from exc
    finally:
        Path(tmp_name).unlink(missing_ok=True)

    return {"success": True, "analysis": features.to_dict()}
