from . import chat, hooks, processing

__all__ = ["chat", "hooks", "processing"]
