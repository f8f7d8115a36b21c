"""
Command-line interface for the narration fitting pipeline.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import httpx
from dotenv import load_dotenv

from .assemble import assemble_track, export_segments, write_report
from .config import FitConfig
from .cost import estimate_batch_processing_time, estimate_costs
from .duration import measure_duration_async
from .errors import ConfigError
from .io_ffmpeg import ensure_dir, make_stretch_ffmpeg_async
from .pipeline import NarrationPipeline, PipelineResult
from .progress import ProgressChannel, TqdmProgress, consume_progress
from .rewrite import make_rewrite_openai_async
from .srt_utils import load_segments_json, parse_srt, write_srt
from .tts_async import make_synth_elevenlabs_async, make_synth_openai_async

logger = logging.getLogger("dubfit")

# Optional OpenAI SDK
try:
    from openai import AsyncOpenAI
except ImportError:
    AsyncOpenAI = None


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Fit synthesized narration into subtitle slots")

    # IO
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--segments-srt", default=None, help="Timed segments from an SRT file")
    src.add_argument(
        "--segments-json", default=None, help="Timed segments from JSON. Fields: id?,start,end,text"
    )
    ap.add_argument("--workdir", default=".work")
    ap.add_argument(
        "--total-duration",
        type=float,
        default=None,
        help="Pad/trim the assembled track to this many seconds (e.g. the video length)",
    )
    ap.add_argument("--no-assemble", action="store_true", help="Skip writing the assembled track")

    # TTS provider & voices
    ap.add_argument("--tts-provider", choices=["openai", "elevenlabs"], default="openai")
    ap.add_argument(
        "--tts-model", default="gpt-4o-mini-tts", help="Used when --tts-provider=openai"
    )
    ap.add_argument(
        "--voice",
        default=None,
        help="OpenAI voice name or ElevenLabs voice_id (defaults: alloy / $ELEVENLABS_VOICE_ID)",
    )
    ap.add_argument(
        "--voice-instructions",
        default=os.getenv("OPENAI_TTS_INSTRUCTIONS"),
        help="Optional TTS style instructions for OpenAI (not read aloud)",
    )
    ap.add_argument("--elevenlabs-model-id", default="eleven_multilingual_v2")
    ap.add_argument("--gpt-model", default="gpt-4o-mini", help="Model used to rewrite text")

    # Convergence / batching (default: DUBFIT_* env vars, then built-in defaults)
    ap.add_argument("--batch-size", type=int, default=None, help="Segments synthesized in parallel")
    ap.add_argument(
        "--batch-delay", type=float, default=None, help="Pause (sec) between synthesis batches"
    )
    ap.add_argument("--timeout", type=float, default=None, help="Per-call oracle timeout (sec)")
    ap.add_argument("--max-attempts", type=int, default=None, help="Rewrite attempts per segment")
    ap.add_argument("--max-cycles", type=int, default=None, help="Correction cycles")
    ap.add_argument("--target-speed", type=float, default=None, help="Speed-up the rewrite aims for")

    # Cost estimation
    ap.add_argument("--estimate-only", action="store_true", help="Print estimates and exit")
    ap.add_argument("--rate-tts-openai-per-min", type=float, default=0.015)
    ap.add_argument("--rate-tts-elevenlabs-per-min", type=float, default=0.15)
    ap.add_argument("--rate-gpt-in-per-mtok", type=float, default=0.60)
    ap.add_argument("--rate-gpt-out-per-mtok", type=float, default=2.40)

    # Logging
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return ap.parse_args(argv)


def log_estimates(args: argparse.Namespace, segments: list, cfg: FitConfig) -> None:
    narration_min = sum(s.slot_duration for s in segments) / 60.0
    secs = estimate_batch_processing_time(
        len(segments), cfg.batch_size, inter_batch_delay=cfg.inter_batch_delay
    )
    # Worst case: every segment needs every rewrite.
    worst_rewrites = len(segments) * cfg.max_attempts
    est = estimate_costs(
        narration_min * (1 + cfg.max_attempts),
        tts_provider=args.tts_provider,
        rewrite_calls=worst_rewrites,
        rates=dict(
            tts_openai_per_min=args.rate_tts_openai_per_min,
            tts_elevenlabs_per_min=args.rate_tts_elevenlabs_per_min,
            gpt_in_per_mtok=args.rate_gpt_in_per_mtok,
            gpt_out_per_mtok=args.rate_gpt_out_per_mtok,
        ),
    )
    logger.info(f"=== Estimates ({len(segments)} segments, {narration_min:.2f} min narration) ===")
    logger.info(f"Initial synthesis pass: ~{secs:.0f}s")
    tts_str = "n/a" if est["tts_cost"] is None else f"${est['tts_cost']:.4f}"
    logger.info(f"TTS worst case ({args.tts_provider} ~ {est['tts_minutes']:.2f} min): {tts_str}")
    logger.info(f"Rewrites worst case ({worst_rewrites} calls): ${est['rewrite_cost']:.4f}")
    logger.info(f"TOTAL worst case: ${est['total']:.4f}")


def write_outputs(args: argparse.Namespace, result: PipelineResult) -> None:
    report_path = os.path.join(args.workdir, "report.json")
    write_report(result, report_path)
    logger.info(f"Saved report -> {report_path}")

    srt_path = os.path.join(args.workdir, "adapted.srt")
    write_srt(result.segments, srt_path)
    logger.info(f"Saved adapted SRT -> {srt_path}")

    paths = export_segments(result, os.path.join(args.workdir, "segments"))
    logger.info(f"Saved {len(paths)} segment clip(s)")

    if not args.no_assemble and result.usable:
        track = assemble_track(result.segments, args.total_duration)
        final_wav = os.path.join(args.workdir, "narration.wav")
        track.export(final_wav, format="wav")
        logger.info(f"[dur] narration = {len(track)/1000:.3f}s -> {final_wav}")

    for seg in result.failed:
        logger.warning(f"Segment {seg.id} FAILED ({seg.error}): {seg.current_text[:60]}")


async def main_async(argv: list[str] | None = None) -> int:
    """Main async CLI entry point."""
    # Load environment variables from .env file
    project_root = Path(__file__).parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()

    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.segments_srt:
        segments = parse_srt(args.segments_srt)
        logger.info(f"Loaded SRT -> {args.segments_srt} ({len(segments)} segments)")
    else:
        segments = load_segments_json(args.segments_json)
        logger.info(f"Loaded JSON -> {args.segments_json} ({len(segments)} segments)")

    cfg = FitConfig.from_env(
        batch_size=args.batch_size,
        inter_batch_delay=args.batch_delay,
        oracle_timeout=args.timeout,
        max_attempts=args.max_attempts,
        max_cycles=args.max_cycles,
        target_speed=args.target_speed,
    )
    log_estimates(args, segments, cfg)
    if args.estimate_only:
        return 0

    if not AsyncOpenAI:
        raise RuntimeError("openai package not installed. Install with: pip install openai")
    openai_key = os.getenv("OPENAI_API_KEY")
    if not openai_key:
        raise RuntimeError("OPENAI_API_KEY is not set. Put it in .env or environment.")

    ensure_dir(args.workdir)
    channel = ProgressChannel()

    async with (
        AsyncOpenAI(api_key=openai_key, timeout=cfg.oracle_timeout) as client,
        httpx.AsyncClient(follow_redirects=True, timeout=cfg.oracle_timeout) as http,
    ):
        rewrite = make_rewrite_openai_async(client, args.gpt_model)
        if args.tts_provider == "openai":
            voice = args.voice or "alloy"
            synth = make_synth_openai_async(client, args.tts_model, args.voice_instructions)
        else:
            voice = args.voice or os.getenv("ELEVENLABS_VOICE_ID", "")
            synth = make_synth_elevenlabs_async(
                http, os.getenv("ELEVENLABS_API_KEY", ""), args.elevenlabs_model_id
            )

        pipeline = NarrationPipeline(
            cfg,
            voice,
            synth=synth,
            measure=measure_duration_async,
            rewrite=rewrite,
            stretch=make_stretch_ffmpeg_async(),
            progress=channel,
        )
        bar = TqdmProgress()
        consumer = asyncio.create_task(consume_progress(channel, bar, on_close=bar.close))
        try:
            result = await pipeline.run(segments)
        finally:
            channel.close()
            await consumer

    write_outputs(args, result)
    logger.info(f"Done: {result.summary()}")
    return 1 if result.all_failed else 0


def main() -> None:
    """Main CLI entry point."""
    try:
        code = asyncio.run(main_async())
    except ConfigError as e:
        logger.error(f"Invalid input: {e}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
