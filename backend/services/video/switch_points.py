"""External switch-point suggestions (LLM oracle or client supplied).

The oracle returns loosely formatted JSON, often wrapped in prose.  Each
entry is validated on its own against :class:`ExternalSwitchPoint`; bad
entries are dropped and an unreadable payload simply means "no external
candidates".  Nothing in here raises on bad input.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from backend.services.video.types import SwitchCandidate

logger = logging.getLogger("slideshow_studio.video.switch_points")

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

SUPPLEMENT_PRIORITY = 90.0
SUPPLEMENT_REASON = "beat-aligned switch"


class ExternalSwitchPoint(BaseModel):
    """One suggested clip boundary, in clip time (seconds from clip start)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    time: float = Field(allow_inf_nan=False)
    reason: str = ""
    intensity: float = 5.0
    suggested_transition: Optional[str] = Field(default=None, alias="suggestedTransition")
    is_rapid: bool = Field(default=False, alias="isRapid")

    @field_validator("time", mode="before")
    @classmethod
    def _numeric_time(cls, value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("time must be a number") from None

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("intensity", mode="before")
    @classmethod
    def _clamp_intensity(cls, value: Any) -> float:
        if value is None:
            return 5.0
        try:
            v = float(value)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("intensity must be a number") from None
        if not math.isfinite(v):
            return 5.0
        return min(10.0, max(1.0, v))


class OracleMetadata(BaseModel):
    """Plan-level fields an oracle response may carry besides switch points."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    overall_mood: Optional[str] = Field(default=None, alias="overallMood")
    suggested_title: Optional[str] = Field(default=None, alias="suggestedTitle")


def _load_payload(payload: Any) -> Any:
    """Decode JSON text, falling back to the outermost ``{...}`` in the text."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str):
        return payload

    text = payload.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_OBJECT_RE.search(text)
    if match is None:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def parse_switch_points(
    payload: Any,
    duration: Optional[float] = None,
) -> List[ExternalSwitchPoint]:
    """Validated, time-sorted switch points from any oracle payload.

    Accepts raw text, a JSON string, a dict with ``switchPoints`` or a list of
    entries.  With ``duration`` given, points outside ``(0, duration)`` are
    dropped.  Duplicate times keep the first entry.
    """
    if payload is None:
        return []

    data = _load_payload(payload)
    if isinstance(data, dict):
        entries = data.get("switchPoints", data.get("switch_points"))
    else:
        entries = data
    if not isinstance(entries, list):
        logger.warning("No switch point list found in oracle payload; using heuristics only")
        return []

    points: List[ExternalSwitchPoint] = []
    for raw in entries:
        try:
            point = ExternalSwitchPoint.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Dropping invalid switch point %r (%d errors)", raw, exc.error_count())
            continue
        if duration is not None and not (0.0 < point.time < duration):
            logger.debug("Dropping switch point %.3f outside (0, %.3f)", point.time, duration)
            continue
        points.append(point)

    points.sort(key=lambda p: p.time)
    unique: List[ExternalSwitchPoint] = []
    for point in points:
        if unique and point.time == unique[-1].time:
            continue
        unique.append(point)

    logger.debug("Parsed %d usable external switch points", len(unique))
    return unique


def parse_plan_metadata(payload: Any) -> Tuple[Optional[str], Optional[str]]:
    """``(overall_mood, suggested_title)`` from an oracle payload, if present."""
    data = _load_payload(payload)
    if not isinstance(data, dict):
        return None, None
    try:
        meta = OracleMetadata.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring malformed plan metadata in oracle payload")
        return None, None
    return meta.overall_mood or None, meta.suggested_title or None


def supplement_switch_points(
    points: Sequence[ExternalSwitchPoint],
    strong_beat_times: Sequence[float],
    duration: float,
    image_count: int,
) -> List[SwitchCandidate]:
    """Synthesize candidates until ``image_count - 1`` boundaries are proposed.

    Targets are evenly spaced at ``k * duration / image_count``.  A target is
    skipped when an external point already lies within half a spacing of it.
    Otherwise it snaps to the nearest unused strong beat within half a
    spacing, or stays at the target time when none is close enough.
    """
    needed = image_count - 1 - len(points)
    if needed <= 0 or duration <= 0:
        return []

    spacing = duration / image_count
    half = spacing / 2.0
    available = sorted(t for t in strong_beat_times if 0.0 < t < duration)
    taken = {round(p.time, 1) for p in points}
    available = [t for t in available if round(t, 1) not in taken]

    supplements: List[SwitchCandidate] = []
    for k in range(1, image_count):
        if len(supplements) >= needed:
            break
        target = k * spacing
        if any(abs(p.time - target) < half for p in points):
            continue

        time = target
        nearest = min(available, key=lambda t: abs(t - target), default=None)
        if nearest is not None and abs(nearest - target) < half:
            time = nearest
            available.remove(nearest)

        supplements.append(SwitchCandidate(
            time=time,
            priority=SUPPLEMENT_PRIORITY,
            candidate_type="supplement",
            reason=SUPPLEMENT_REASON,
            suggested_transition="cut",
        ))

    logger.debug("Supplemented %d switch points (needed %d)", len(supplements), needed)
    return supplements
