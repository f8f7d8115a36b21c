"""
Tests for SRT/JSON segment loading and writing.
"""

import json

import pytest

from dubfit.errors import ConfigError
from dubfit.models import Segment
from dubfit.srt_utils import format_ts, load_segments_json, parse_srt, parse_srt_text, parse_ts, write_srt

SAMPLE = """1
00:00:01,000 --> 00:00:04,500
Hello world.

2
00:00:05,000 --> 00:00:07,250
This is a
two line cue.

3
00:01:00.5 --> 00:01:02.75
Dotted millis.
"""


def test_parse_ts():
    assert parse_ts("00:00:01,000") == 1.0
    assert parse_ts("01:02:03,004") == pytest.approx(3723.004)
    assert parse_ts("00:00:00.5") == pytest.approx(0.5)
    with pytest.raises(ValueError):
        parse_ts("1:2")


def test_format_ts():
    assert format_ts(0) == "00:00:00,000"
    assert format_ts(3723.004) == "01:02:03,004"
    assert format_ts(2.9996) == "00:00:03,000"


def test_parse_srt_text():
    """Cue numbers become ids, multi-line text is joined."""
    segments = parse_srt_text(SAMPLE)

    assert [s.id for s in segments] == ["1", "2", "3"]
    assert segments[0].slot_start == 1.0
    assert segments[0].slot_end == 4.5
    assert segments[1].source_text == "This is a two line cue."
    assert segments[1].current_text == segments[1].source_text
    assert segments[2].slot_start == pytest.approx(60.5)
    assert segments[2].slot_end == pytest.approx(62.75)


def test_parse_srt_handles_crlf_and_missing_numbers():
    raw = "00:00:00,000 --> 00:00:01,000\r\nFirst\r\n\r\n00:00:02,000 --> 00:00:03,000\r\nSecond\r\n"
    segments = parse_srt_text(raw)
    assert [s.id for s in segments] == ["1", "2"]
    assert [s.source_text for s in segments] == ["First", "Second"]


def test_parse_srt_skips_garbage_blocks():
    raw = "1\nnot a timing line\ntext\n\n2\n00:00:02,000 --> 00:00:03,000\n\n"
    assert parse_srt_text(raw) == []


def test_write_and_parse_srt(tmp_path):
    """Writing uses the current (adapted) text."""
    seg = Segment(id="7", source_text="original", slot_start=0.0, slot_end=2.5)
    seg.current_text = "adapted"
    path = tmp_path / "out.srt"
    write_srt([seg], str(path))

    [parsed] = parse_srt(str(path))
    assert parsed.source_text == "adapted"
    assert parsed.slot_end == 2.5


def test_load_segments_json(tmp_path):
    path = tmp_path / "segs.json"
    path.write_text(
        json.dumps([{"id": "a", "start": 0, "end": 1.5, "text": " hi "}, {"start": 2, "end": 3, "text": "yo"}]),
        encoding="utf-8",
    )
    segments = load_segments_json(str(path))
    assert [s.id for s in segments] == ["a", "2"]
    assert segments[0].source_text == "hi"
    assert segments[1].slot_duration == 1.0


def test_load_segments_json_rejects_malformed(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"start": 0, "text": "no end"}]), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_segments_json(str(path))

    path.write_text(json.dumps({"start": 0}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_segments_json(str(path))
