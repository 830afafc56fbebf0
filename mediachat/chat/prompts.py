"""Rendering of assembled context into the system prompt."""

from typing import List

from .context import AssembledContext
from ..utils.timecodes import format_time

RELATED_DESCRIPTION_CHARS = 200
FRAME_PLACEHOLDER = "Visual at this timestamp"
TRUNCATION_MARKER = "\n[context truncated]"


def _asset_section(context: AssembledContext) -> str:
    asset = context.asset
    lines = ["Current video:", f"Title: {asset.title}"]
    if asset.channel_name:
        lines.append(f"Channel: {asset.channel_name}")
    if asset.duration_seconds:
        lines.append(f"Duration: {format_time(asset.duration_seconds)}")
    if asset.description:
        lines.append(f"Description: {asset.description}")
    return "\n".join(lines)


def _transcript_section(context: AssembledContext) -> str:
    lines = ["Relevant transcript sections:"]
    for match in context.chunks:
        chunk = match.chunk
        lines.append(f"[{format_time(chunk.start_time)} - {format_time(chunk.end_time)}]: {chunk.text}")
    return "\n".join(lines)


def _frames_section(context: AssembledContext) -> str:
    lines = ["Video visual descriptions:"]
    for frame in context.frames:
        lines.append(f"[{format_time(frame.timestamp)}]: {frame.description or FRAME_PLACEHOLDER}")
    return "\n".join(lines)


def _related_section(context: AssembledContext) -> str:
    lines = ["Other videos on the platform:"]
    for item in context.related:
        line = f"- {item.title}"
        if item.channel_name:
            line += f" (by {item.channel_name})"
        if item.description:
            line += f": {item.description[:RELATED_DESCRIPTION_CHARS]}"
        lines.append(line)
    return "\n".join(lines)


def render_context(context: AssembledContext, max_chars: int) -> str:
    """Context block: asset metadata, transcript, visuals, related items.

    Sections without data are left out. The block is cut to ``max_chars``.
    """
    sections: List[str] = []
    if context.asset is not None:
        sections.append(_asset_section(context))
    if context.chunks:
        sections.append(_transcript_section(context))
    if context.frames:
        sections.append(_frames_section(context))
    if context.related:
        sections.append(_related_section(context))

    block = "\n\n".join(sections)
    if max_chars > 0 and len(block) > max_chars:
        block = block[:max(max_chars - len(TRUNCATION_MARKER), 0)].rstrip() + TRUNCATION_MARKER
    return block


def build_system_prompt(system_prompt: str, context: AssembledContext, max_chars: int) -> str:
    block = render_context(context, max_chars)
    return f"{system_prompt}\n\n{block}" if block else system_prompt
