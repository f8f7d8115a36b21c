"""
Time and cost estimation for a narration fitting run.
"""

import math


def estimate_batch_processing_time(
    segment_count: int,
    batch_size: int = 10,
    avg_tts_time: float = 2.0,
    inter_batch_delay: float = 0.5,
) -> float:
    """Rough wall-clock estimate (seconds) for one synthesis pass over all segments."""
    if segment_count <= 0:
        return 0.0
    batches = math.ceil(segment_count / batch_size)
    return batches * avg_tts_time + (batches - 1) * inter_batch_delay


def estimate_costs(
    narration_minutes: float,
    *,
    tts_provider: str,
    rewrite_calls: int,
    rates: dict[str, float],
) -> dict[str, float | None]:
    """Estimate costs for synthesis plus GPT rewrites of out-of-band segments."""
    tts_cost: float | None = None
    if tts_provider == "openai":
        rate = rates.get("tts_openai_per_min")
        if rate is not None:
            tts_cost = narration_minutes * float(rate)
    elif tts_provider == "elevenlabs":
        rate = rates.get("tts_elevenlabs_per_min")
        if rate is not None:
            tts_cost = narration_minutes * float(rate)
    tin = rewrite_calls * float(rates.get("tokens_in_per_call", 250.0))
    tout = rewrite_calls * float(rates.get("tokens_out_per_call", 80.0))
    rewrite_cost = (tin / 1_000_000.0) * float(rates.get("gpt_in_per_mtok", 0.60)) + (
        tout / 1_000_000.0
    ) * float(rates.get("gpt_out_per_mtok", 2.40))
    total = (tts_cost or 0.0) + rewrite_cost
    return {
        "tts_cost": tts_cost,
        "rewrite_cost": rewrite_cost,
        "total": total,
        "tts_minutes": narration_minutes,
    }
