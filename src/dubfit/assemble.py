"""
Final track assembly and export of a pipeline result.
"""

import io
import json
import logging
import os

from pydub import AudioSegment

from .io_ffmpeg import ensure_dir
from .models import Segment
from .pipeline import PipelineResult

logger = logging.getLogger("dubfit")


def assemble_track(
    segments: list[Segment],
    total_duration: float | None = None,
    sample_rate: int = 24000,
) -> AudioSegment:
    """
    Overlay every usable clip onto a silent track at its slot start.

    FAILED segments are skipped and leave silence in their slot.
    """
    usable = [s for s in segments if s.status.is_usable and s.audio is not None]
    end_s = max((s.slot_end for s in segments), default=0.0)
    if total_duration is not None:
        end_s = max(end_s, total_duration)
    track = AudioSegment.silent(duration=int(end_s * 1000), frame_rate=sample_rate)

    for seg in usable:
        try:
            clip = AudioSegment.from_wav(io.BytesIO(seg.audio.data)).set_frame_rate(sample_rate)
        except Exception as e:
            logger.warning(f"Failed to load audio for segment {seg.id}: {e}")
            continue
        track = track.overlay(clip, position=int(seg.slot_start * 1000))

    if total_duration is not None and len(track) > int(total_duration * 1000):
        track = track[: int(total_duration * 1000)]
    return track


def segment_report(seg: Segment) -> dict:
    return {
        "id": seg.id,
        "status": seg.status.value,
        "slot_start": seg.slot_start,
        "slot_end": seg.slot_end,
        "attempts": seg.attempts,
        "speed_factor": seg.speed_factor,
        "applied_stages": seg.applied_stages,
        "source_text": seg.source_text,
        "current_text": seg.current_text,
        "error": seg.error,
    }


def write_report(result: PipelineResult, path: str) -> None:
    """Write a JSON report of every segment, failed ones included."""
    data = {
        "summary": result.summary(),
        "segments": [segment_report(s) for s in result.segments],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def export_segments(result: PipelineResult, out_dir: str) -> list[str]:
    """Write each usable clip as <out_dir>/seg_<id>.wav; returns the written paths."""
    ensure_dir(out_dir)
    paths: list[str] = []
    for seg in result.usable:
        if seg.audio is None:
            continue
        path = os.path.join(out_dir, f"seg_{seg.id}.wav")
        with open(path, "wb") as f:
            f.write(seg.audio.data)
        paths.append(path)
    return paths
