"""
Asynchronous text-to-speech synthesis with OpenAI and ElevenLabs.
"""

import asyncio
import io
import logging

import httpx
from pydub import AudioSegment

from .batch import SynthFunc
from .errors import OracleError

logger = logging.getLogger("dubfit")

# Optional OpenAI SDK
try:
    from openai import AsyncOpenAI
except ImportError:
    AsyncOpenAI = None


async def tts_speak_openai_async(
    client: AsyncOpenAI,
    text: str,
    model: str,
    voice: str,
    instructions: str | None = None,
) -> bytes:
    """Asynchronously synthesize speech using OpenAI TTS; returns WAV bytes."""
    if client is None:
        raise OracleError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    try:
        kwargs = {"instructions": instructions} if instructions else {}
        response = await client.audio.speech.create(
            model=model,
            voice=voice,
            input=text,
            response_format="wav",
            **kwargs,
        )
        return response.content
    except Exception as e:
        logger.error(f"OpenAI TTS failed for text '{text[:50]}...': {e}")
        raise OracleError(f"OpenAI TTS failed: {e}") from e


def _mp3_to_wav(data: bytes) -> bytes:
    clip = AudioSegment.from_file(io.BytesIO(data), format="mp3")
    buf = io.BytesIO()
    clip.export(buf, format="wav")
    return buf.getvalue()


async def elevenlabs_tts_speak_async(
    client: httpx.AsyncClient,
    api_key: str,
    voice_id: str,
    text: str,
    model_id: str = "eleven_multilingual_v2",
) -> bytes:
    """Synthesize speech using ElevenLabs TTS; returns WAV bytes."""
    if not api_key:
        raise OracleError("ELEVENLABS_API_KEY is not set.")
    if not voice_id:
        raise OracleError("ElevenLabs voice_id is required (use --voice or ELEVENLABS_VOICE_ID).")

    url = f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
    headers = {
        "xi-api-key": api_key,
        "accept": "audio/mpeg",
        "Content-Type": "application/json",
        "User-Agent": "dubfit/0.1",
    }
    payload = {
        "text": text,
        "model_id": model_id,
        "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
    }

    try:
        r = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise OracleError(f"ElevenLabs request failed: {e}") from e
    ctype = r.headers.get("content-type", "")
    if r.status_code != 200 or not ctype.startswith(("audio/", "application/octet-stream")):
        raise OracleError(f"ElevenLabs TTS failed: {r.status_code} {r.text[:300]}")
    try:
        return await asyncio.to_thread(_mp3_to_wav, r.content)
    except Exception as e:
        raise OracleError(f"ElevenLabs returned undecodable audio: {e}") from e


def make_synth_openai_async(
    client: AsyncOpenAI,
    model: str,
    instructions: str | None = None,
) -> SynthFunc:
    """Create an async (text, voice) -> WAV bytes synthesis function for OpenAI."""

    async def _synth(text: str, voice: str) -> bytes:
        return await tts_speak_openai_async(client, text, model, voice, instructions)

    return _synth


def make_synth_elevenlabs_async(
    client: httpx.AsyncClient, api_key: str, model_id: str
) -> SynthFunc:
    """Create an async (text, voice_id) -> WAV bytes synthesis function for ElevenLabs."""

    async def _synth(text: str, voice: str) -> bytes:
        return await elevenlabs_tts_speak_async(client, api_key, voice, text, model_id=model_id)

    return _synth
