"""
Tests for speed classification and stretch decomposition.
"""

import math

import pytest

from dubfit.config import CORRECTION_BAND, INITIAL_BAND
from dubfit.errors import ConfigError, StretchError
from dubfit.models import AudioClip
from dubfit.speed import apply_stages, check_stages, classify, decompose, fit_clip


def test_classify_computes_factor():
    """Speed factor is clip duration over slot duration."""
    result = classify(18.0, 10.0, INITIAL_BAND)
    assert result.speed_factor == pytest.approx(1.8)
    assert not result.in_band


def test_classify_band_edges_inclusive():
    """Factors exactly on a band edge are in band."""
    assert classify(11.0, 10.0, CORRECTION_BAND).in_band
    assert classify(15.0, 10.0, CORRECTION_BAND).in_band
    assert classify(3.0, 2.0, INITIAL_BAND).in_band


def test_initial_band_accepts_one_rejects_slowdown():
    """1.0 is accepted on the initial pass; anything needing slowdown is not."""
    assert classify(10.0, 10.0, INITIAL_BAND).in_band
    assert not classify(9.0, 10.0, INITIAL_BAND).in_band
    # Same factor fails the stricter correction band
    assert not classify(10.0, 10.0, CORRECTION_BAND).in_band


def test_classify_is_pure():
    """Repeated calls give identical results."""
    assert classify(12.3, 9.1, CORRECTION_BAND) == classify(12.3, 9.1, CORRECTION_BAND)


@pytest.mark.parametrize("slot", [0.0, -1.5])
def test_classify_rejects_non_positive_slot(slot):
    with pytest.raises(ConfigError):
        classify(5.0, slot, INITIAL_BAND)


def test_decompose_properties():
    """Stages multiply back to the factor and each stays within 0.5..2.0."""
    factors = [0.01, 0.1, 0.26, 0.5, 0.75, 0.9999, 1.0, 1.3, 2.0, 2.5, 4.0, 7.9, 100.0, 1234.5]
    for factor in factors:
        stages = decompose(factor)
        assert stages, factor
        assert math.prod(stages) == pytest.approx(factor, abs=1e-3)
        assert all(0.5 <= s <= 2.0 for s in stages), (factor, stages)


def test_decompose_examples():
    assert decompose(1.3) == [pytest.approx(1.3)]
    assert decompose(2.0) == [2.0]
    assert decompose(4.0) == [2.0, 2.0]
    assert decompose(5.0) == [2.0, 2.0, pytest.approx(1.25)]
    assert decompose(0.2) == [0.5, 0.5, pytest.approx(0.8)]
    # Identity collapses to a single no-op stage
    assert decompose(1.0) == [1.0]
    assert decompose(1.00001) == [1.0]


def test_decompose_stage_count_is_logarithmic():
    assert len(decompose(1024.0)) == 10
    assert len(decompose(1025.0)) == 11


@pytest.mark.parametrize("factor", [0.0, -2.0, float("nan"), float("inf")])
def test_decompose_rejects_invalid(factor):
    with pytest.raises(StretchError):
        decompose(factor)


def test_check_stages_rejects_out_of_domain():
    check_stages([0.5, 1.0, 2.0])
    with pytest.raises(StretchError):
        check_stages([2.5])
    with pytest.raises(StretchError):
        check_stages([1.2, 0.4])


@pytest.mark.asyncio
async def test_apply_stages_chains_in_order_and_skips_identity():
    calls = []

    async def stretch(data: bytes, factor: float) -> bytes:
        calls.append(factor)
        return data + b"|" + str(factor).encode()

    out = await apply_stages(b"x", [2.0, 1.0, 1.5], stretch)
    assert calls == [2.0, 1.5]
    assert out == b"x|2.0|1.5"


@pytest.mark.asyncio
async def test_fit_clip_scales_duration_to_slot():
    async def stretch(data: bytes, factor: float) -> bytes:
        return data

    clip, stages = await fit_clip(AudioClip(data=b"a", duration=18.0), 1.8, stretch)
    assert stages == [pytest.approx(1.8)]
    assert clip.duration == pytest.approx(10.0)
