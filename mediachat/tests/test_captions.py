from mediachat.pipeline.captions import parse_cues, segment_captions
from mediachat.utils.timecodes import extract_timestamps, format_time, parse_timestamp

from .fakes import INTRO_VTT


def test_parse_cues_skips_headers_and_indices():
    cues = parse_cues(INTRO_VTT)

    assert [cue.start for cue in cues] == [0.0, 15.0, 45.0]
    assert [cue.end for cue in cues] == [5.0, 20.0, 50.0]
    assert all(cue.text == "intro talk" for cue in cues)


def test_parse_cues_strips_markup_and_joins_lines():
    content = (
        "00:00:01.000 --> 00:00:04.000 align:start position:0%\n"
        "<c.yellow>first</c> line\n"
        "<v Speaker>second line</v>\n"
    )
    cues = parse_cues(content)

    assert len(cues) == 1
    assert cues[0].end == 4.0
    assert cues[0].text == "first line second line"


def test_parse_cues_reads_srt_commas():
    content = "1\n00:01:02,500 --> 00:01:04,000\nhello\n"
    cues = parse_cues(content)

    assert cues[0].start == 62.5
    assert cues[0].text == "hello"


def test_segment_example_transcript():
    chunks = segment_captions(INTRO_VTT, "v1", 30)

    assert [(c.index, c.start_time, c.end_time, c.text) for c in chunks] == [
        (0, 0.0, 30.0, "intro talk intro talk"),
        (1, 30.0, 45.0, "intro talk"),
    ]
    assert all(c.asset_id == "v1" for c in chunks)
    assert all(c.embedding is None for c in chunks)


def test_segment_header_only_input_is_empty():
    assert segment_captions("WEBVTT\nKind: captions\nLanguage: en\n", "v1") == []
    assert segment_captions("", "v1") == []
    assert segment_captions(None, "v1") == []


def test_segment_single_window_span():
    content = (
        "WEBVTT\n\n"
        "00:00:02.000 --> 00:00:04.000\none\n\n"
        "00:00:10.000 --> 00:00:12.000\ntwo\n\n"
        "00:00:25.000 --> 00:00:29.000\nthree\n"
    )
    chunks = segment_captions(content, "v1", 30)

    assert len(chunks) == 1
    assert chunks[0].start_time == 0.0
    assert chunks[0].end_time == 25.0
    assert chunks[0].text == "one two three"


def test_segment_three_window_span_is_contiguous():
    content = "WEBVTT\n\n" + "\n".join(
        f"00:00:{second:02d}.000 --> 00:00:{second + 1:02d}.000\ncue {second}\n"
        for second in (0, 10, 31, 40, 61, 75)
    )
    chunks = segment_captions(content, "v1", 30)

    assert [c.index for c in chunks] == [0, 1, 2]
    assert [(c.start_time, c.end_time) for c in chunks] == [(0.0, 30.0), (30.0, 60.0), (60.0, 75.0)]
    assert chunks[1].text == "cue 31 cue 40"


def test_segment_skips_empty_windows():
    content = (
        "WEBVTT\n\n"
        "00:00:05.000 --> 00:00:06.000\nearly\n\n"
        "00:01:35.000 --> 00:01:36.000\nlate\n"
    )
    chunks = segment_captions(content, "v1", 30)

    assert [(c.start_time, c.end_time, c.text) for c in chunks] == [
        (0.0, 30.0, "early"),
        (90.0, 95.0, "late"),
    ]


def test_segment_text_is_never_empty():
    content = "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\n<b></b>\n\n00:00:03.000 --> 00:00:04.000\nreal\n"
    chunks = segment_captions(content, "v1", 30)

    assert len(chunks) == 1
    assert chunks[0].text == "real"


def test_timecode_helpers():
    assert parse_timestamp("01:02:03.500") == 3723.5
    assert parse_timestamp("garbage") == 0.0
    assert format_time(65) == "1:05"
    assert format_time(45000) == "12:30:00"
    assert format_time(None) == "0:00"


def test_extract_timestamps_in_reply():
    refs = extract_timestamps("see [1:05] and [12:30:00], also [0:00 - 0:30]")

    assert [(ref.display, ref.seconds) for ref in refs] == [
        ("[1:05]", 65),
        ("[12:30:00]", 45000),
        ("[0:00 - 0:30]", 0),
    ]
    assert extract_timestamps("no times here") == []
