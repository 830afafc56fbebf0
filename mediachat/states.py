"""Processing status state machine shared by every store backend."""

from typing import Dict, FrozenSet, Optional

from .exceptions import InvalidTransitionException
from .models import ProcessingStatus

PENDING = ProcessingStatus.PENDING
PROCESSING = ProcessingStatus.PROCESSING
COMPLETED = ProcessingStatus.COMPLETED
ERROR = ProcessingStatus.ERROR

# None is the state of an asset that has never been enqueued
ALLOWED_TRANSITIONS: Dict[Optional[ProcessingStatus], FrozenSet[ProcessingStatus]] = {
    None: frozenset({PENDING}),
    PENDING: frozenset({PENDING, PROCESSING, ERROR}),
    PROCESSING: frozenset({COMPLETED, ERROR}),
    COMPLETED: frozenset({PENDING}),
    ERROR: frozenset({PENDING}),
}


def is_allowed(current: Optional[ProcessingStatus], new: ProcessingStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def check_transition(asset_id: str, current: Optional[ProcessingStatus], new: ProcessingStatus) -> None:
    """Raise InvalidTransitionException unless ``current -> new`` is allowed."""
    if not is_allowed(current, new):
        raise InvalidTransitionException(
            f"Invalid processing transition for {asset_id}: "
            f"{current.value if current else 'none'} -> {new.value}",
            details={"asset_id": asset_id, "from": current.value if current else None, "to": new.value},
        )
