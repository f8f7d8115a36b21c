"""
Pipeline orchestration: initial batch synthesis, classification, text-fit
correction and the final stretch pass.
"""

import asyncio
import logging
from dataclasses import dataclass, replace

from .batch import MeasureFunc, SynthFunc, synthesize_all
from .config import FitConfig
from .corrector import TextFitCorrector
from .errors import ConfigError
from .models import Segment, SegmentStatus
from .progress import ProgressChannel, ProgressUpdate
from .rewrite import RewriteFunc
from .speed import StretchFunc, classify

logger = logging.getLogger("dubfit")


@dataclass
class PipelineResult:
    """All segments of a run, ordered by slot start."""

    segments: list[Segment]

    def with_status(self, *statuses: SegmentStatus) -> list[Segment]:
        return [s for s in self.segments if s.status in statuses]

    @property
    def usable(self) -> list[Segment]:
        """Segments eligible for assembly (FITTED or FORCED_FIT)."""
        return [s for s in self.segments if s.status.is_usable]

    @property
    def failed(self) -> list[Segment]:
        return self.with_status(SegmentStatus.FAILED)

    @property
    def all_failed(self) -> bool:
        return bool(self.segments) and len(self.failed) == len(self.segments)

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in SegmentStatus}
        for s in self.segments:
            counts[s.status.value] += 1
        return counts


def validate_segments(segments: list[Segment]) -> None:
    """Reject segment sets the core cannot process."""
    seen: set[str] = set()
    for s in segments:
        if s.id in seen:
            raise ConfigError(f"duplicate segment id {s.id!r}")
        seen.add(s.id)
        if s.slot_duration <= 0:
            raise ConfigError(
                f"segment {s.id!r} has non-positive slot ({s.slot_start:.3f}s -> {s.slot_end:.3f}s)"
            )


class NarrationPipeline:
    """Fits synthesized narration into fixed timeline slots."""

    def __init__(
        self,
        config: FitConfig,
        voice: str,
        synth: SynthFunc,
        measure: MeasureFunc,
        rewrite: RewriteFunc,
        stretch: StretchFunc,
        progress: ProgressChannel | None = None,
    ) -> None:
        self.config = config.validate()
        self.voice = voice
        self.synth = synth
        self.measure = measure
        self.progress = progress
        self.corrector = TextFitCorrector(config, voice, synth, measure, rewrite, stretch)
        self._reported = 0

    def _report(self, segments: list[Segment], message: str) -> None:
        if self.progress is None:
            return
        done = sum(1 for s in segments if s.status.is_terminal)
        # Keep the reported count monotonic.
        done = max(done, self._reported)
        self._reported = done
        self.progress.send(ProgressUpdate(done, len(segments), message, stage="pipeline"))

    async def run(self, segments: list[Segment]) -> PipelineResult:
        """Process a fresh set of segments and return them ordered by slot start."""
        validate_segments(segments)
        self._reported = 0
        cfg = self.config
        total = len(segments)
        if not total:
            return PipelineResult(segments=[])

        working = [
            replace(
                s,
                current_text=s.source_text,
                status=SegmentStatus.SYNTHESIZING,
                attempts=0,
                audio=None,
                speed_factor=None,
                applied_stages=[],
                error=None,
            )
            for s in segments
        ]
        logger.info(f"Initial synthesis of {total} segments (batch size {cfg.batch_size})")
        results = await synthesize_all(
            working,
            self.voice,
            self.synth,
            self.measure,
            batch_size=cfg.batch_size,
            inter_batch_delay=cfg.inter_batch_delay,
            timeout=cfg.oracle_timeout,
            progress=self.progress,
        )

        classified: list[Segment] = []
        for seg, res in zip(working, results):
            if res is None:
                classified.append(replace(seg, status=SegmentStatus.FAILED, error="TTS failed"))
                continue
            cls = classify(res.clip.duration, seg.slot_duration, cfg.initial_band)
            status = SegmentStatus.FITTED if cls.in_band else SegmentStatus.REPROCESSING
            classified.append(
                replace(seg, audio=res.clip, speed_factor=cls.speed_factor, status=status)
            )

        needs_fix = sum(1 for s in classified if s.status == SegmentStatus.REPROCESSING)
        logger.info(f"Initial pass: {needs_fix}/{total} segment(s) outside {cfg.initial_band}")
        self._report(classified, f"Initial pass done, {needs_fix} segment(s) need correction")

        corrected = await self.corrector.run(
            classified,
            on_cycle=lambda n, segs: self._report(segs, f"Correction cycle {n} done"),
        )

        by_id = {s.id: s for s in corrected}
        if cfg.fit_initial_segments:
            unstretched = [
                s for s in corrected if s.status == SegmentStatus.FITTED and not s.applied_stages
            ]
            for seg in await asyncio.gather(
                *(self.corrector.fit(s, SegmentStatus.FITTED) for s in unstretched)
            ):
                by_id[seg.id] = seg

        final = sorted(by_id.values(), key=lambda s: s.slot_start)
        result = PipelineResult(segments=final)
        self._report(final, "Done")
        logger.info(f"Pipeline finished: {result.summary()}")
        if result.all_failed:
            logger.error("Every segment failed; check the TTS service and credentials")
        return result
