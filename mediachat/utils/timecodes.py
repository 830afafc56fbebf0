"""Conversions between caption/chat timecodes and seconds."""

import re
from typing import List, Optional

from ..models import TimestampRef

# [M:SS], [MM:SS], [H:MM:SS], optionally a range such as [0:00 - 0:30]
_TIMESTAMP_PATTERN = re.compile(
    r"\[(\d{1,2}:\d{2}(?::\d{2})?)(?:\s*[-–—]\s*\d{1,2}:\d{2}(?::\d{2})?)?\]"
)


def parse_timestamp(value: str) -> float:
    """
    Parse a caption cue time ("00:01:02.500", "01:02.500" or SRT "00:01:02,500") to seconds.

    Unparseable input yields 0.0.
    """
    parts = value.strip().replace(",", ".").split(":")
    try:
        if len(parts) == 3:
            return float(parts[0]) * 3600 + float(parts[1]) * 60 + float(parts[2])
        if len(parts) == 2:
            return float(parts[0]) * 60 + float(parts[1])
    except ValueError:
        return 0.0
    return 0.0


def format_time(seconds: Optional[float]) -> str:
    """Render seconds as M:SS, or H:MM:SS past the hour."""
    if seconds is None:
        return "0:00"

    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def extract_timestamps(text: Optional[str]) -> List[TimestampRef]:
    """Find bracketed timecodes in a reply, in order of appearance."""
    if not text:
        return []

    timestamps = []
    for match in _TIMESTAMP_PATTERN.finditer(text):
        parts = [int(p) for p in match.group(1).split(":")]
        if len(parts) == 3:
            seconds = parts[0] * 3600 + parts[1] * 60 + parts[2]
        else:
            seconds = parts[0] * 60 + parts[1]
        timestamps.append(TimestampRef(display=match.group(0), seconds=seconds))
    return timestamps
