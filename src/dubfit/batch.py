"""
Batched, concurrent speech synthesis with per-item failure tolerance.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .errors import MeasurementError, OracleError
from .models import AudioClip, Segment, SynthesisResult
from .progress import ProgressChannel, ProgressUpdate

logger = logging.getLogger("dubfit")

SynthFunc = Callable[[str, str], Awaitable[bytes]]
MeasureFunc = Callable[[bytes], Awaitable[float]]


def chunk(items: list, size: int) -> list[list]:
    """Split a list into consecutive chunks of at most `size` items."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1 (got {size})")
    return [items[i : i + size] for i in range(0, len(items), size)]


async def synthesize_one(
    segment: Segment,
    voice: str,
    synth: SynthFunc,
    measure: MeasureFunc,
    timeout: float,
) -> SynthesisResult:
    """Synthesize `segment.current_text` and measure the resulting clip."""
    text = segment.current_text
    try:
        data = await asyncio.wait_for(synth(text, voice), timeout=timeout)
    except asyncio.TimeoutError:
        raise OracleError(f"TTS timed out after {timeout:.0f}s") from None
    duration = await measure(data)
    return SynthesisResult(segment_id=segment.id, text=text, clip=AudioClip(data=data, duration=duration))


async def synthesize_all(
    segments: list[Segment],
    voice: str,
    synth: SynthFunc,
    measure: MeasureFunc,
    *,
    batch_size: int = 10,
    inter_batch_delay: float = 0.5,
    timeout: float = 60.0,
    progress: ProgressChannel | None = None,
) -> list[SynthesisResult | None]:
    """
    Synthesize segments in consecutive chunks of `batch_size`.

    Calls within a chunk run concurrently. A failed item yields None in its
    position and does not affect its siblings. One progress update is sent
    after each chunk, then the next chunk waits `inter_batch_delay` seconds.
    Result order matches input order.
    """
    total = len(segments)
    batches = chunk(segments, batch_size)
    results: list[SynthesisResult | None] = []

    for bi, batch in enumerate(batches, 1):
        logger.debug(f"Synthesizing batch {bi}/{len(batches)} ({len(batch)} segments in parallel)")
        outcomes = await asyncio.gather(
            *(synthesize_one(seg, voice, synth, measure, timeout) for seg in batch),
            return_exceptions=True,
        )
        ok = 0
        for seg, out in zip(batch, outcomes):
            if isinstance(out, SynthesisResult):
                results.append(out)
                ok += 1
                continue
            if isinstance(out, (OracleError, MeasurementError)):
                logger.warning(f"TTS failed for segment {seg.id}: {out}")
            elif isinstance(out, Exception):
                logger.error(f"Unexpected TTS error for segment {seg.id}: {out!r}")
            else:
                raise out
            results.append(None)

        if ok < len(batch):
            logger.warning(f"{len(batch) - ok} segment(s) failed in batch {bi}")
        if progress is not None:
            progress.send(
                ProgressUpdate(
                    completed=len(results),
                    total=total,
                    message=f"Batch {bi}/{len(batches)} done ({ok}/{len(batch)} succeeded)",
                )
            )
        if bi < len(batches) and inter_batch_delay > 0:
            await asyncio.sleep(inter_batch_delay)

    return results
