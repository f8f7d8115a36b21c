"""
Shared fakes for the external services used by the pipeline.
"""

import asyncio

import pytest

from dubfit.config import FitConfig
from dubfit.errors import OracleError
from dubfit.pipeline import NarrationPipeline


class FakeOracles:
    """TTS/measure/rewrite/stretch stand-ins; a clip's payload is its text."""

    def __init__(
        self,
        durations=None,
        default=10.0,
        rewrites=None,
        fail_texts=(),
        rewrite_error=False,
        stretch_errors=None,
    ):
        self.durations = dict(durations or {})
        self.default = default
        self.rewrites = dict(rewrites or {})
        self.fail_texts = set(fail_texts)
        self.rewrite_error = rewrite_error
        self.stretch_errors = dict(stretch_errors or {})
        self.synth_calls: list[str] = []
        self.rewrite_calls: list[tuple] = []
        self.stretch_calls: list[float] = []

    async def synth(self, text: str, voice: str) -> bytes:
        self.synth_calls.append(text)
        await asyncio.sleep(0)
        if text in self.fail_texts:
            raise OracleError(f"TTS refused {text!r}")
        return text.encode("utf-8")

    async def measure(self, data: bytes) -> float:
        return self.durations.get(data.decode("utf-8"), self.default)

    async def rewrite(self, text, current_duration, target_duration, current_speed, target_speed) -> str:
        self.rewrite_calls.append((text, current_duration, target_duration, current_speed, target_speed))
        if self.rewrite_error:
            raise OracleError("rewrite service down")
        return self.rewrites.get(text, text)

    async def stretch(self, data: bytes, factor: float) -> bytes:
        self.stretch_calls.append(factor)
        if data in self.stretch_errors:
            raise self.stretch_errors[data]
        return data


@pytest.fixture()
def fakes() -> FakeOracles:
    return FakeOracles()


@pytest.fixture()
def make_pipeline():
    def _make(oracles: FakeOracles, progress=None, **overrides) -> NarrationPipeline:
        overrides.setdefault("inter_batch_delay", 0.0)
        return NarrationPipeline(
            FitConfig(**overrides),
            "alloy",
            synth=oracles.synth,
            measure=oracles.measure,
            rewrite=oracles.rewrite,
            stretch=oracles.stretch,
            progress=progress,
        )

    return _make
