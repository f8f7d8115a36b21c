"""
Audio processing utilities using ffmpeg.
"""

import asyncio
import logging
import subprocess
import tempfile
from pathlib import Path

from .errors import StretchError
from .speed import StretchFunc, check_stages

logger = logging.getLogger("dubfit")


def run(cmd: list[str], *, check: bool = True) -> str:
    """Run a shell command and return stdout."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    proc = subprocess.run(
        cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=False
    )
    if proc.returncode != 0 and check:
        logger.error("Command failed with code %d: %s", proc.returncode, proc.stdout)
        msg = f"Command failed with code {proc.returncode}"
        raise RuntimeError(msg)
    return proc.stdout


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def atempo_filter(stages: list[float]) -> str:
    """Build an ffmpeg atempo filter chain; atempo > 1.0 speeds up (shorter)."""
    check_stages(stages)
    return ",".join(f"atempo={s:.6f}" for s in stages)


def time_stretch_wav_ffmpeg(in_wav: str, out_wav: str, stages: list[float]) -> None:
    """Time-stretch a WAV file through a chain of atempo stages (pitch preserved)."""
    filt = atempo_filter(stages)
    try:
        run(["ffmpeg", "-y", "-i", in_wav, "-filter:a", filt, out_wav])
    except (RuntimeError, OSError) as e:
        raise StretchError(f"ffmpeg atempo failed ({filt}): {e}") from e


def stretch_wav_bytes(data: bytes, factor: float) -> bytes:
    """Single-stage stretch of an in-memory WAV payload."""
    with tempfile.TemporaryDirectory(prefix="dubfit_") as tmp:
        in_wav = str(Path(tmp) / "in.wav")
        out_wav = str(Path(tmp) / "out.wav")
        try:
            Path(in_wav).write_bytes(data)
        except OSError as e:
            raise StretchError(f"could not write stretch input: {e}") from e
        time_stretch_wav_ffmpeg(in_wav, out_wav, [factor])
        try:
            return Path(out_wav).read_bytes()
        except OSError as e:
            raise StretchError(f"could not read stretch output: {e}") from e


def make_stretch_ffmpeg_async() -> StretchFunc:
    """Create an async stretch primitive backed by ffmpeg."""

    async def _stretch(data: bytes, factor: float) -> bytes:
        return await asyncio.to_thread(stretch_wav_bytes, data, factor)

    return _stretch
