"""
Data models for the narration fitting pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum


class SegmentStatus(str, Enum):
    """Lifecycle state of a segment."""

    PENDING = "pending"
    SYNTHESIZING = "synthesizing"
    FITTED = "fitted"
    FORCED_FIT = "forced_fit"
    FAILED = "failed"
    REPROCESSING = "reprocessing"

    @property
    def is_terminal(self) -> bool:
        return self in (SegmentStatus.FITTED, SegmentStatus.FORCED_FIT, SegmentStatus.FAILED)

    @property
    def is_usable(self) -> bool:
        return self in (SegmentStatus.FITTED, SegmentStatus.FORCED_FIT)


@dataclass(frozen=True)
class Band:
    """Inclusive acceptance range for a speed factor."""

    low: float
    high: float

    def __contains__(self, factor: float) -> bool:
        return self.low <= factor <= self.high

    def __str__(self) -> str:
        return f"[{self.low:g}, {self.high:g}]"


@dataclass(frozen=True)
class AudioClip:
    """Synthesized WAV payload and its measured duration."""

    data: bytes
    duration: float  # seconds


@dataclass(frozen=True)
class SpeedClass:
    """Result of classifying a clip against a band."""

    speed_factor: float
    in_band: bool


@dataclass(frozen=True)
class SynthesisResult:
    """A successful synthesis of one segment."""

    segment_id: str
    text: str
    clip: AudioClip


@dataclass
class Segment:
    """A unit of narration work with a fixed slot on the output timeline."""

    id: str
    source_text: str
    slot_start: float  # seconds
    slot_end: float  # seconds
    current_text: str = ""
    status: SegmentStatus = SegmentStatus.PENDING
    attempts: int = 0
    audio: AudioClip | None = None
    speed_factor: float | None = None
    # Stretch chain applied to `audio` (empty until the clip is fitted).
    applied_stages: list[float] = field(default_factory=list)
    error: str | None = None

    def __post_init__(self) -> None:
        if not self.current_text:
            self.current_text = self.source_text

    @property
    def slot_duration(self) -> float:
        return self.slot_end - self.slot_start

    @property
    def clip_duration(self) -> float | None:
        return self.audio.duration if self.audio else None
