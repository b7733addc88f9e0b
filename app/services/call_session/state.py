"""Call session status and the allowed transitions between them."""
from enum import Enum
from typing import Dict, FrozenSet


class CallStatus(str, Enum):
    """Lifecycle status of a call session."""

    INITIATING = "initiating"
    IN_PROGRESS = "in_progress"
    AI_COMPLETED = "ai_completed"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES: FrozenSet[CallStatus] = frozenset(
    {CallStatus.COMPLETED, CallStatus.FAILED}
)

# Forward edges only. Anything not listed is a regression or a no-op.
_TRANSITIONS: Dict[CallStatus, FrozenSet[CallStatus]] = {
    CallStatus.INITIATING: frozenset(
        {
            CallStatus.IN_PROGRESS,
            CallStatus.AI_COMPLETED,
            CallStatus.COMPLETED,
            CallStatus.FAILED,
        }
    ),
    CallStatus.IN_PROGRESS: frozenset(
        {CallStatus.AI_COMPLETED, CallStatus.COMPLETED, CallStatus.FAILED}
    ),
    CallStatus.AI_COMPLETED: frozenset({CallStatus.COMPLETED}),
    CallStatus.COMPLETED: frozenset(),
    CallStatus.FAILED: frozenset(),
}


def is_terminal(status: CallStatus) -> bool:
    """Check whether no further status transitions are accepted."""
    return CallStatus(status) in TERMINAL_STATUSES


def can_transition(current: CallStatus, target: CallStatus) -> bool:
    """Check whether moving from current to target is a forward transition."""
    return CallStatus(target) in _TRANSITIONS[CallStatus(current)]


def sources_for(target: CallStatus) -> FrozenSet[CallStatus]:
    """
    Statuses from which target may be reached.

    Used as the compare-and-set guard of a status update: the update only
    takes effect while the stored status is one of these.
    """
    target = CallStatus(target)
    return frozenset(
        status for status, targets in _TRANSITIONS.items() if target in targets
    )
