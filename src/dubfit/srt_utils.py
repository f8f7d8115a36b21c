"""
SRT and JSON segment loading and writing.
"""

import json
import logging
import re

from .errors import ConfigError
from .models import Segment

logger = logging.getLogger("dubfit")

_TS_RE = re.compile(r"(\d+):(\d\d):(\d\d)[,.](\d{1,3})")
_TIMING_RE = re.compile(rf"({_TS_RE.pattern})\s*-->\s*({_TS_RE.pattern})")


def parse_ts(ts: str) -> float:
    """Parse an SRT timestamp (HH:MM:SS,mmm; '.' also accepted) into seconds."""
    m = _TS_RE.fullmatch(ts.strip())
    if not m:
        raise ValueError(f"invalid SRT timestamp {ts!r}")
    h, mi, s, ms = m.groups()
    return int(h) * 3600 + int(mi) * 60 + int(s) + int(ms.ljust(3, "0")) / 1000.0


def format_ts(t: float) -> str:
    """Format seconds as an SRT timestamp."""
    total_ms = int(round(t * 1000))
    h, rem = divmod(total_ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms = divmod(rem, 1000)
    return f"{h:02}:{m:02}:{s:02},{ms:03}"


def parse_srt_text(raw: str) -> list[Segment]:
    """Parse SRT content into segments; the cue number becomes the segment id."""
    raw = raw.replace("\r\n", "\n").replace("\r", "\n")
    blocks = re.split(r"\n\s*\n", raw.strip(), flags=re.M)
    out: list[Segment] = []
    for b in blocks:
        lines = [ln for ln in b.splitlines() if ln.strip()]
        if not lines:
            continue
        cue_id = None
        if re.match(r"^\d+$", lines[0].strip()):
            cue_id = lines[0].strip()
            lines = lines[1:]
        if not lines:
            continue
        m = _TIMING_RE.match(lines[0].strip())
        if not m:
            logger.debug("Skipping SRT block without timing line: %r", lines[0])
            continue
        start = parse_ts(m.group(1))
        end = parse_ts(m.group(6))
        text = " ".join(ln.strip() for ln in lines[1:]).strip()
        if not text:
            continue
        out.append(
            Segment(
                id=cue_id or str(len(out) + 1),
                source_text=text,
                slot_start=start,
                slot_end=end,
            )
        )
    return out


def parse_srt(path: str) -> list[Segment]:
    """Parse an SRT file into segments."""
    with open(path, encoding="utf-8") as f:
        return parse_srt_text(f.read())


def load_segments_json(path: str) -> list[Segment]:
    """Load segments from JSON: a list of {id?, start, end, text} objects."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ConfigError(f"{path}: expected a JSON array of segments")
    out: list[Segment] = []
    for i, item in enumerate(data, 1):
        try:
            out.append(
                Segment(
                    id=str(item.get("id", i)),
                    source_text=str(item["text"]).strip(),
                    slot_start=float(item["start"]),
                    slot_end=float(item["end"]),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"{path}: segment #{i} is malformed ({e})") from e
    return out


def write_srt(segments: list[Segment], path: str) -> None:
    """Write segments' current (possibly rewritten) text to an SRT file."""
    with open(path, "w", encoding="utf-8") as f:
        for i, s in enumerate(segments, 1):
            f.write(f"{i}\n{format_ts(s.slot_start)} --> {format_ts(s.slot_end)}\n{s.current_text}\n\n")
