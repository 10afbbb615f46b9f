"""Data types for the Slideshow Studio audio analysis core.

All times are absolute seconds in the analysed track, i.e. they include the
selection's ``start_time`` offset.  ``to_dict`` emits the camelCase wire names
used by the web client; ``from_dict`` accepts the same shape back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Beat:
    """One generated beat on the fixed-tempo grid."""
    time: float
    strength: str              # "strong" | "weak"

    @property
    def is_strong(self) -> bool:
        return self.strength == "strong"

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "strength": self.strength}


@dataclass(frozen=True)
class AudioSection:
    """Equal-length structural segment of the selection."""
    start: float
    end: float
    section_type: str          # "intro" | "verse" | "chorus" | "bridge" | "outro"
    energy: int                # 0-10

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "type": self.section_type,
            "energy": self.energy,
        }


@dataclass(frozen=True)
class AudioHighlight:
    """Musically significant moment (drop, climax, buildup, band accent...)."""
    time: float
    highlight_type: str        # drop | climax | transition | buildup | fillin | *_accent
    intensity: int             # 0-10
    source: Optional[str] = None   # "low" | "mid" | "high" | "all"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "time": self.time,
            "type": self.highlight_type,
            "intensity": self.intensity,
        }
        if self.source is not None:
            data["source"] = self.source
        return data


@dataclass(frozen=True)
class FrequencyBandEvent:
    """Energy spike in one frequency band."""
    time: float
    band: str                  # "low" | "mid" | "high"
    event_type: str            # "accent" | "pattern_change" | "intensity_spike"
    intensity: int             # 0-10

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "band": self.band,
            "type": self.event_type,
            "intensity": self.intensity,
        }


@dataclass(frozen=True)
class RapidBeatSequence:
    """Run of closely and regularly spaced strong beats (fast-cut zone)."""
    start: float
    end: float
    interval: float            # mean inter-beat interval in seconds
    count: int

    def contains(self, t: float) -> bool:
        return self.start <= t <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "interval": self.interval,
            "count": self.count,
        }


@dataclass
class AudioFeatures:
    """Complete feature set for one ``[start_time, end_time)`` selection."""
    bpm: float
    energy: int                                    # 0-10, whole selection
    start_time: float
    end_time: float
    beats: List[Beat] = field(default_factory=list)
    sections: List[AudioSection] = field(default_factory=list)
    highlights: List[AudioHighlight] = field(default_factory=list)
    frequency_events: List[FrequencyBandEvent] = field(default_factory=list)
    rapid_sequences: List[RapidBeatSequence] = field(default_factory=list)
    waveform: List[float] = field(default_factory=list)   # display only

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def strong_beats(self) -> List[Beat]:
        return [b for b in self.beats if b.is_strong]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bpm": self.bpm,
            "energy": self.energy,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "beats": [b.to_dict() for b in self.beats],
            "sections": [s.to_dict() for s in self.sections],
            "highlights": [h.to_dict() for h in self.highlights],
            "frequencyEvents": [e.to_dict() for e in self.frequency_events],
            "rapidSequences": [r.to_dict() for r in self.rapid_sequences],
            "waveformData": list(self.waveform),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AudioFeatures":
        """Rebuild features from the client's analysis JSON.

        Missing collections default to empty.  ``endTime`` falls back to
        ``startTime + duration`` and then to the last section end.
        """
        start = float(data.get("startTime", 0.0))
        sections = [
            AudioSection(
                start=float(s["start"]),
                end=float(s["end"]),
                section_type=str(s.get("type", "verse")),
                energy=int(s.get("energy", 0)),
            )
            for s in data.get("sections") or []
        ]
        if data.get("endTime") is not None:
            end = float(data["endTime"])
        elif data.get("duration") is not None:
            end = start + float(data["duration"])
        elif sections:
            end = max(s.end for s in sections)
        else:
            end = start

        return cls(
            bpm=float(data.get("bpm", 120.0)),
            energy=int(data.get("energy", 0)),
            start_time=start,
            end_time=end,
            beats=[
                Beat(time=float(b["time"]), strength=str(b.get("strength", "weak")))
                for b in data.get("beats") or []
            ],
            sections=sections,
            highlights=[
                AudioHighlight(
                    time=float(h["time"]),
                    highlight_type=str(h.get("type", "transition")),
                    intensity=int(h.get("intensity", 5)),
                    source=h.get("source"),
                )
                for h in data.get("highlights") or []
            ],
            frequency_events=[
                FrequencyBandEvent(
                    time=float(e["time"]),
                    band=str(e.get("band", "mid")),
                    event_type=str(e.get("type", "accent")),
                    intensity=int(e.get("intensity", 5)),
                )
                for e in data.get("frequencyEvents") or []
            ],
            rapid_sequences=[
                RapidBeatSequence(
                    start=float(r["start"]),
                    end=float(r["end"]),
                    interval=float(r.get("interval", 0.0)),
                    count=int(r.get("count", 0)),
                )
                for r in data.get("rapidSequences") or []
            ],
            waveform=[float(v) for v in data.get("waveformData") or []],
        )
