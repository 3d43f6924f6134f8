"""Sandbox session record and state machine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from preview_core.preview.aggregator import DEFAULT_CAPACITY, OutputAggregator
from preview_core.protocols.engine import SandboxHandle


class SessionState(str, Enum):
    """Lifecycle states of a sandbox session."""

    LOADING = "loading"
    BOOTING = "booting"
    INSTALLING = "installing"
    RUNNING = "running"
    READY = "ready"
    ERROR = "error"

    @property
    def settled(self) -> bool:
        """Whether the start sequence is over for this session."""
        return self in (SessionState.READY, SessionState.ERROR)


# Strict order; any in-progress state may fail straight to ERROR
TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.LOADING: {SessionState.BOOTING, SessionState.ERROR},
    SessionState.BOOTING: {SessionState.INSTALLING, SessionState.ERROR},
    SessionState.INSTALLING: {SessionState.RUNNING, SessionState.ERROR},
    SessionState.RUNNING: {SessionState.READY, SessionState.ERROR},
    SessionState.READY: set(),
    SessionState.ERROR: set(),
}


class InvalidTransitionError(RuntimeError):
    """Attempted a transition the state machine does not allow."""

    pass


@dataclass
class SandboxSession:
    """One sandbox session owned by a single builder view."""

    id: str = field(default_factory=lambda: uuid4().hex[:12])
    state: SessionState = SessionState.LOADING
    handle: SandboxHandle | None = None
    preview_url: str | None = None
    log: OutputAggregator = field(
        default_factory=lambda: OutputAggregator(DEFAULT_CAPACITY)
    )
    error: Exception | None = None
    history: list[SessionState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append(self.state)

    def transition(self, new_state: SessionState, preview_url: str | None = None) -> None:
        """Move to a new state.

        The preview URL is set only on entering READY.

        Raises:
            InvalidTransitionError: If the transition is not allowed
            ValueError: If entering READY without a preview URL
        """
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state.value} -> {new_state.value}")
        if new_state == SessionState.READY:
            if not preview_url:
                raise ValueError("Ready state requires a preview URL")
            self.preview_url = preview_url
        else:
            self.preview_url = None
        self.state = new_state
        self.history.append(new_state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "state": self.state.value,
            "preview_url": self.preview_url,
            "logs": self.log.entries,
            "error": str(self.error) if self.error else None,
        }
