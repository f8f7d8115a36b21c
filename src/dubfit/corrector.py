"""
Iterative text-fit correction for segments whose speed factor is out of band.

Each correction attempt rewrites the segment text toward the target speed,
resynthesizes it, and reclassifies it against the correction band. Segments
that run out of attempts are stretched as-is (forced fit).
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace

from .batch import MeasureFunc, SynthFunc, synthesize_all
from .config import FitConfig
from .errors import StretchError
from .models import Segment, SegmentStatus
from .rewrite import RewriteFunc
from .speed import StretchFunc, classify, fit_clip

logger = logging.getLogger("dubfit")


class TextFitCorrector:
    """Drives out-of-band segments to FITTED, FORCED_FIT or FAILED."""

    def __init__(
        self,
        config: FitConfig,
        voice: str,
        synth: SynthFunc,
        measure: MeasureFunc,
        rewrite: RewriteFunc,
        stretch: StretchFunc,
    ) -> None:
        self.config = config
        self.voice = voice
        self.synth = synth
        self.measure = measure
        self.rewrite = rewrite
        self.stretch = stretch

    async def fit(self, segment: Segment, status: SegmentStatus) -> Segment:
        """Stretch the segment's clip by its speed factor and set `status`."""
        try:
            clip, stages = await fit_clip(
                segment.audio, segment.speed_factor, self.stretch, self.config.stretch_epsilon
            )
        except StretchError as e:
            logger.error(f"Stretch failed for segment {segment.id}: {e}")
            return replace(segment, status=SegmentStatus.FAILED, error=f"stretch failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected stretch error for segment {segment.id}: {e!r}")
            return replace(segment, status=SegmentStatus.FAILED, error=f"stretch failed: {e!r}")
        return replace(segment, audio=clip, applied_stages=stages, status=status, error=None)

    async def force_fit(self, segment: Segment) -> Segment:
        """Accept the last clip regardless of band membership."""
        if segment.audio is None or segment.speed_factor is None:
            return replace(segment, status=SegmentStatus.FAILED, error="no audio to force-fit")
        logger.info(
            f"Segment {segment.id}: attempts exhausted, forcing fit at {segment.speed_factor:.2f}x"
        )
        return await self.fit(segment, SegmentStatus.FORCED_FIT)

    async def correct(self, segment: Segment) -> Segment:
        """Run one correction attempt and return the updated copy of `segment`."""
        cfg = self.config
        if segment.attempts >= cfg.max_attempts:
            return await self.force_fit(segment)

        seg = replace(segment, attempts=segment.attempts + 1, status=SegmentStatus.SYNTHESIZING)
        logger.debug(f"Segment {seg.id}: correction attempt {seg.attempts}/{cfg.max_attempts}")

        try:
            new_text = await asyncio.wait_for(
                self.rewrite(
                    seg.current_text,
                    seg.clip_duration,
                    seg.slot_duration,
                    seg.speed_factor,
                    cfg.target_speed,
                ),
                timeout=cfg.oracle_timeout,
            )
        except Exception as e:
            # Keep the current text and clip; the next cycle tries again.
            logger.warning(f"Rewrite failed for segment {seg.id}, keeping text: {e!r}")
            return replace(seg, status=SegmentStatus.REPROCESSING, error=f"rewrite failed: {e}")

        seg = replace(seg, current_text=new_text)
        [result] = await synthesize_all(
            [seg],
            self.voice,
            self.synth,
            self.measure,
            batch_size=1,
            inter_batch_delay=0,
            timeout=cfg.oracle_timeout,
        )
        if result is None:
            return replace(seg, status=SegmentStatus.FAILED, audio=None, error="TTS failed")

        cls = classify(result.clip.duration, seg.slot_duration, cfg.correction_band)
        seg = replace(seg, audio=result.clip, speed_factor=cls.speed_factor, applied_stages=[])
        if cls.in_band:
            logger.info(f"Segment {seg.id}: fixed at {cls.speed_factor:.2f}x")
            return await self.fit(seg, SegmentStatus.FITTED)

        logger.info(
            f"Segment {seg.id}: still outside {cfg.correction_band} at {cls.speed_factor:.2f}x"
        )
        return replace(seg, status=SegmentStatus.REPROCESSING, error=None)

    async def run(
        self,
        segments: list[Segment],
        on_cycle: Callable[[int, list[Segment]], None] | None = None,
    ) -> list[Segment]:
        """
        Correct every REPROCESSING segment for up to `max_cycles` cycles.

        Segments are processed in parallel within a cycle; each task owns its
        segment and returns an updated copy that is merged back by id. Anything
        still REPROCESSING afterwards is force-fitted, so no returned segment
        is left in REPROCESSING.
        """
        by_id = {s.id: s for s in segments}

        def pending() -> list[Segment]:
            return [s for s in by_id.values() if s.status == SegmentStatus.REPROCESSING]

        for cycle in range(1, self.config.max_cycles + 1):
            todo = pending()
            if not todo:
                break
            logger.info(f"Correction cycle {cycle}: {len(todo)} segment(s)")
            updated = await asyncio.gather(*(self.correct(s) for s in todo))
            for s in updated:
                by_id[s.id] = s
            if on_cycle is not None:
                on_cycle(cycle, list(by_id.values()))

        leftover = pending()
        if leftover:
            forced = await asyncio.gather(*(self.force_fit(s) for s in leftover))
            for s in forced:
                by_id[s.id] = s

        return [by_id[s.id] for s in segments]
