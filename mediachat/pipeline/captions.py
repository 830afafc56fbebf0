"""Timed-text parsing and fixed-window transcript segmentation."""

import math
import re
from dataclasses import dataclass, field
from typing import List

from ..models import Chunk
from ..utils.timecodes import parse_timestamp

_MARKUP = re.compile(r"<[^>]+>")
_HEADER_PREFIXES = ("WEBVTT", "NOTE", "STYLE", "REGION", "Kind:", "Language:")


@dataclass
class Cue:
    start: float
    end: float
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.lines).strip()


def parse_cues(content: str) -> List[Cue]:
    """
    Parse WebVTT or SRT content into cues.

    Text before the first ``-->`` line is header material and is ignored, as
    are numeric cue indices and format headers. A blank line ends a cue.
    """
    cues: List[Cue] = []
    current = None

    for raw_line in (content or "").splitlines():
        line = raw_line.strip()

        if "-->" in line:
            start_raw, _, end_raw = line.partition("-->")
            end_tokens = end_raw.split()
            current = Cue(
                start=parse_timestamp(start_raw),
                end=parse_timestamp(end_tokens[0]) if end_tokens else 0.0,
            )
            cues.append(current)
            continue

        if not line:
            current = None
            continue
        if current is None:
            continue
        if line.isdigit() or line.startswith(_HEADER_PREFIXES):
            continue

        text = _MARKUP.sub("", line).strip()
        if text:
            current.lines.append(text)

    return cues


def segment_captions(content: str, asset_id: str, segment_duration: float = 30) -> List[Chunk]:
    """
    Group caption cues into chunks of ``segment_duration`` seconds.

    Windows sit on a fixed grid (0, D, 2D, ...): a cue starting at or beyond
    the current window's end closes the window at ``start + D`` and opens the
    window containing that cue. Empty windows are never emitted. The last
    chunk ends at the last cue start seen, or ``start + D`` when no later cue
    time was observed. Returns an empty list for empty or header-only input.
    """
    duration = float(segment_duration)
    chunks: List[Chunk] = []
    texts: List[str] = []
    chunk_start = None
    last_time = None

    def flush(end_time: float) -> None:
        chunks.append(Chunk(
            asset_id=asset_id,
            index=len(chunks),
            start_time=chunk_start,
            end_time=end_time,
            text=" ".join(texts).strip(),
        ))

    for cue in parse_cues(content):
        if not cue.text:
            continue

        if chunk_start is None:
            chunk_start = duration * math.floor(cue.start / duration)
        elif cue.start - chunk_start >= duration:
            flush(chunk_start + duration)
            chunk_start += duration * math.floor((cue.start - chunk_start) / duration)
            texts = []

        texts.append(cue.text)
        last_time = cue.start

    if texts:
        flush(last_time if last_time > chunk_start else chunk_start + duration)

    return chunks
