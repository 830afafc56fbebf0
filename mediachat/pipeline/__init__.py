from .captions import Cue, parse_cues, segment_captions
from .scheduler import TaskScheduler, AsyncioTaskScheduler, VirtualClockScheduler
from .frames import FrameCaptureStage, frame_timestamps
from .transcript import TranscriptStage
from .orchestrator import IngestionOrchestrator

__all__ = [
    "Cue",
    "parse_cues",
    "segment_captions",
    "TaskScheduler",
    "AsyncioTaskScheduler",
    "VirtualClockScheduler",
    "FrameCaptureStage",
    "frame_timestamps",
    "TranscriptStage",
    "IngestionOrchestrator",
]
