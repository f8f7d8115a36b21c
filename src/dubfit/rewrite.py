"""
Duration-targeted text rewriting with GPT.
"""

import logging
from collections.abc import Awaitable, Callable

from .errors import OracleError

logger = logging.getLogger("dubfit")

# Optional OpenAI SDK
try:
    from openai import AsyncOpenAI
except ImportError:
    AsyncOpenAI = None

# Fallback speaking rate when the current clip has no usable duration.
DEFAULT_CHARS_PER_SECOND = 15.0

RewriteFunc = Callable[[str, float, float, float, float], Awaitable[str]]


def target_char_count(
    text: str, current_duration: float, target_duration: float, target_speed: float
) -> int:
    """
    Estimate how many characters the rewrite should have.

    The clip should last `target_duration * target_speed` at the voice's
    natural rate, measured from the current text and clip.
    """
    cps = len(text) / current_duration if current_duration > 0 else DEFAULT_CHARS_PER_SECOND
    return round(target_duration * target_speed * cps)


def build_rewrite_prompt(
    text: str,
    current_duration: float,
    target_duration: float,
    current_speed: float,
    target_speed: float,
) -> str:
    ideal = target_duration * target_speed
    chars = target_char_count(text, current_duration, target_duration, target_speed)
    if chars < len(text):
        action = "CONDENSE"
        rule = "Be more concise; drop the least important words."
    else:
        action = "EXPAND"
        rule = "Be more descriptive; use synonyms or connectives to fill the time."
    return (
        "Rewrite the following text for dubbing.\n\n"
        f'Original text: "{text}"\n\n'
        f"Current audio duration: {current_duration:.2f}s\n"
        f"Target slot duration: {target_duration:.2f}s\n"
        f"Current speed: {current_speed:.2f}x\n\n"
        f"GOAL: when spoken, the rewritten text should produce about {ideal:.2f}s of audio, "
        f"which gives a ~{target_speed:.2f}x speed-up when fitted to the "
        f"{target_duration:.2f}s slot.\n\n"
        f"ACTION: {action} the text.\n"
        f"Approximate character target: {chars} (original: {len(text)})\n\n"
        "RULES:\n"
        "1. Keep the SAME meaning and context.\n"
        "2. Sound natural when spoken.\n"
        f"3. {rule}\n"
        "4. Return ONLY the new text, without quotes or explanations."
    )


def clean_rewrite(content: str | None) -> str:
    """Strip whitespace and a single pair of wrapping quotes from a model reply."""
    text = (content or "").strip()
    if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
        text = text[1:-1].strip()
    return text


async def rewrite_for_duration(
    client: AsyncOpenAI,
    text: str,
    current_duration: float,
    target_duration: float,
    current_speed: float,
    target_speed: float,
    model: str = "gpt-4o-mini",
) -> str:
    """Ask GPT for a version of `text` whose spoken length fits `target_duration * target_speed`."""
    if client is None:
        raise OracleError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    prompt = build_rewrite_prompt(text, current_duration, target_duration, current_speed, target_speed)
    try:
        chat = await client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a professional dubbing script editor.",
                },
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
        )
    except Exception as e:
        logger.error(f"Rewrite failed for text '{text[:50]}...': {e}")
        raise OracleError(f"rewrite failed: {e}") from e

    new_text = clean_rewrite(chat.choices[0].message.content)
    if not new_text:
        raise OracleError("model returned an empty rewrite")
    logger.debug(f"Rewrite {len(text)} -> {len(new_text)} chars (speed {current_speed:.2f}x)")
    return new_text


def make_rewrite_openai_async(client: AsyncOpenAI, model: str) -> RewriteFunc:
    """Create an async rewrite function bound to an OpenAI client and model."""

    async def _rewrite(
        text: str,
        current_duration: float,
        target_duration: float,
        current_speed: float,
        target_speed: float,
    ) -> str:
        return await rewrite_for_duration(
            client, text, current_duration, target_duration, current_speed, target_speed, model
        )

    return _rewrite
