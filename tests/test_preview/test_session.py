"""Tests for the sandbox session state machine."""

import pytest

from preview_core.preview.session import (
    TRANSITIONS,
    InvalidTransitionError,
    SandboxSession,
    SessionState,
)


class TestSessionState:
    """Tests for SessionState."""

    def test_settled(self) -> None:
        assert SessionState.READY.settled
        assert SessionState.ERROR.settled
        assert not SessionState.RUNNING.settled
        assert not SessionState.LOADING.settled

    def test_every_in_progress_state_can_fail(self) -> None:
        for state, targets in TRANSITIONS.items():
            if not state.settled:
                assert SessionState.ERROR in targets

    def test_terminal_states(self) -> None:
        assert TRANSITIONS[SessionState.READY] == set()
        assert TRANSITIONS[SessionState.ERROR] == set()


class TestSandboxSession:
    """Tests for SandboxSession."""

    def _advance_to_running(self, session: SandboxSession) -> None:
        for state in (SessionState.BOOTING, SessionState.INSTALLING, SessionState.RUNNING):
            session.transition(state)

    def test_starts_loading(self) -> None:
        session = SandboxSession()
        assert session.state is SessionState.LOADING
        assert session.history == [SessionState.LOADING]
        assert session.preview_url is None

    def test_happy_path(self) -> None:
        session = SandboxSession()
        self._advance_to_running(session)
        session.transition(SessionState.READY, preview_url="http://localhost:3000")

        assert session.history == [
            SessionState.LOADING,
            SessionState.BOOTING,
            SessionState.INSTALLING,
            SessionState.RUNNING,
            SessionState.READY,
        ]
        assert session.preview_url == "http://localhost:3000"

    def test_cannot_skip_stages(self) -> None:
        session = SandboxSession()
        session.transition(SessionState.BOOTING)

        with pytest.raises(InvalidTransitionError):
            session.transition(SessionState.RUNNING)
        with pytest.raises(InvalidTransitionError):
            session.transition(SessionState.READY, preview_url="http://localhost:3000")

    def test_ready_requires_url(self) -> None:
        session = SandboxSession()
        self._advance_to_running(session)

        with pytest.raises(ValueError):
            session.transition(SessionState.READY)
        assert session.state is SessionState.RUNNING

    def test_failure_from_any_stage(self) -> None:
        session = SandboxSession()
        session.transition(SessionState.BOOTING)
        session.transition(SessionState.ERROR)

        assert session.state is SessionState.ERROR
        with pytest.raises(InvalidTransitionError):
            session.transition(SessionState.BOOTING)

    def test_to_dict(self) -> None:
        session = SandboxSession(id="sess-1")
        session.log.append("booting\n")
        session.error = RuntimeError("boom")

        assert session.to_dict() == {
            "session_id": "sess-1",
            "state": "loading",
            "preview_url": None,
            "logs": ["booting\n"],
            "error": "boom",
        }
