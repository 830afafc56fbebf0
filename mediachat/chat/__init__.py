from .context import AssembledContext
from .context_assembler import ContextAssembler
from .prompts import render_context, build_system_prompt
from .responder import ChatResponder

__all__ = [
    "AssembledContext",
    "ContextAssembler",
    "ChatResponder",
    "render_context",
    "build_system_prompt",
]
