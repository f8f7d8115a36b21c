"""
Speed factor classification and decomposition into bounded stretch stages.
"""

import logging
import math
from collections.abc import Awaitable, Callable

from .errors import ConfigError, StretchError
from .models import AudioClip, Band, SpeedClass

logger = logging.getLogger("dubfit")

MIN_ATEMPO = 0.5
MAX_ATEMPO = 2.0

StretchFunc = Callable[[bytes, float], Awaitable[bytes]]


def classify(clip_duration: float, slot_duration: float, band: Band) -> SpeedClass:
    """Compute clip/slot speed factor and check it against an inclusive band."""
    if slot_duration <= 0:
        raise ConfigError(f"slot duration must be positive (got {slot_duration})")
    factor = clip_duration / slot_duration
    return SpeedClass(speed_factor=factor, in_band=factor in band)


def decompose(factor: float, epsilon: float = 1e-4) -> list[float]:
    """
    Split a speed factor into a chain of stages each within MIN_ATEMPO..MAX_ATEMPO.

    The product of the returned stages equals `factor`. A factor of (about) 1.0
    yields a single identity stage so the chain is never empty.
    """
    if not factor > 0 or math.isinf(factor):
        raise StretchError(f"speed factor must be a positive finite number (got {factor})")
    stages: list[float] = []
    r = factor
    while r > MAX_ATEMPO:
        stages.append(MAX_ATEMPO)
        r /= MAX_ATEMPO
    while r < MIN_ATEMPO:
        stages.append(MIN_ATEMPO)
        r /= MIN_ATEMPO
    if abs(r - 1.0) > epsilon:
        stages.append(r)
    return stages or [1.0]


def check_stages(stages: list[float]) -> None:
    """Raise StretchError if any stage lies outside the primitive's domain."""
    for s in stages:
        if not MIN_ATEMPO <= s <= MAX_ATEMPO:
            raise StretchError(f"stretch stage {s} outside [{MIN_ATEMPO}, {MAX_ATEMPO}]")


async def apply_stages(
    data: bytes, stages: list[float], stretch: StretchFunc, epsilon: float = 1e-4
) -> bytes:
    """Run `stretch` once per stage, in order. Identity stages are skipped."""
    check_stages(stages)
    for s in stages:
        if abs(s - 1.0) <= epsilon:
            continue
        data = await stretch(data, s)
    return data


async def fit_clip(
    clip: AudioClip, factor: float, stretch: StretchFunc, epsilon: float = 1e-4
) -> tuple[AudioClip, list[float]]:
    """Stretch a clip by `factor` so it fills its slot; returns the clip and stage chain."""
    stages = decompose(factor, epsilon)
    data = await apply_stages(clip.data, stages, stretch, epsilon)
    logger.debug("Stretched clip by %.4f via %s", factor, stages)
    return AudioClip(data=data, duration=clip.duration / factor), stages
