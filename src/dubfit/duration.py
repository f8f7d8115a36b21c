"""
Playback duration measurement for synthesized clips.
"""

import asyncio
import io
import logging

from pydub import AudioSegment

from .errors import MeasurementError

logger = logging.getLogger("dubfit")


def measure_duration(data: bytes, fmt: str = "wav") -> float:
    """Decode an audio payload and return its duration in seconds."""
    if not data:
        raise MeasurementError("empty audio payload")
    try:
        audio = AudioSegment.from_file(io.BytesIO(data), format=fmt)
    except Exception as e:
        raise MeasurementError(f"could not decode {fmt} payload ({len(data)} bytes): {e}") from e
    if len(audio) <= 0:
        raise MeasurementError("audio payload has zero duration")
    return len(audio) / 1000.0


async def measure_duration_async(data: bytes, fmt: str = "wav") -> float:
    """Measure off the event loop; decoding may shell out to ffmpeg."""
    return await asyncio.to_thread(measure_duration, data, fmt)
