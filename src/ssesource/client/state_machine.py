"""Connection ready-state machine and reconnection policy.

CLOSED ──[connect]──→ CONNECTING ──[response headers]──→ OPEN
   ↑                    │   ↑                               │
   │                    │   └────────[connect]──────────────┤
   └──[disconnect / completion]─────────────────────────────┘
"""

from __future__ import annotations

import enum

import structlog

log = structlog.get_logger()


class ReadyState(enum.Enum):
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


# Valid transitions: (from_state, to_state)
VALID_TRANSITIONS: set[tuple[ReadyState, ReadyState]] = {
    (ReadyState.CLOSED, ReadyState.CONNECTING),
    (ReadyState.CONNECTING, ReadyState.OPEN),
    # connect() while a request is active restarts it
    (ReadyState.CONNECTING, ReadyState.CONNECTING),
    (ReadyState.OPEN, ReadyState.CONNECTING),
    # disconnect() or request completion
    (ReadyState.CONNECTING, ReadyState.CLOSED),
    (ReadyState.OPEN, ReadyState.CLOSED),
}


class InvalidTransition(Exception):
    """Raised when an invalid ready-state transition is attempted."""

    def __init__(self, from_state: ReadyState, to_state: ReadyState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} → {to_state.value}")


def validate_transition(from_state: ReadyState, to_state: ReadyState) -> None:
    """Validate a state transition, raising InvalidTransition if not allowed."""
    if (from_state, to_state) not in VALID_TRANSITIONS:
        raise InvalidTransition(from_state, to_state)


def transition(
    current: ReadyState,
    target: ReadyState,
    url: str,
    trigger: str = "",
) -> ReadyState:
    """Execute a validated state transition, logging the change."""
    validate_transition(current, target)
    log.info(
        "ready_state_transition",
        url=url,
        from_state=current.value,
        to_state=target.value,
        trigger=trigger,
    )
    return target


def should_reconnect(status_code: int) -> bool:
    """Advise whether a stream that ended with ``status_code`` should be reopened.

    A 200 that ends is an intentional close. Any other 2xx means the stream was
    interrupted and is worth retrying. Redirect, client and server errors are
    not retried at this layer.
    """
    if status_code == 200:
        return False
    return 200 < status_code < 300
