"""Tests for the projection reducer."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from echoline.models.session import (
    IDLE,
    BusyStatus,
    PermissionRequest,
    QuestionRequest,
    RetryStatus,
    RevertPointer,
    Todo,
)
from echoline.projection.actions import (
    ChildInit,
    ChildMessageRemoved,
    ChildMessageUpdated,
    ChildPartRemoved,
    ChildPartUpdated,
    ChildStatusSet,
    Clear,
    Connected,
    Disconnected,
    Init,
    MessageRemoved,
    MessageUpdated,
    PartRemoved,
    PartUpdated,
    PermissionAsked,
    PermissionReplied,
    QuestionAsked,
    QuestionReplied,
    SessionError,
    SessionUpdated,
    StatusSet,
    TodosReplaced,
)
from echoline.projection.reducer import reduce
from echoline.projection.state import INITIAL_STATE, ChildProjection, ProjectionState
from echoline.projection.view import ProjectionView
from tests.conftest import make_message, make_part


def apply(*actions, state: ProjectionState = INITIAL_STATE) -> ProjectionState:
    for action in actions:
        state = reduce(state, action)
    return state


class TestInitialState:
    def test_defaults_idle(self):
        """Fresh projections start idle and share the idle status value."""
        assert ProjectionState().status is IDLE
        assert ChildProjection().status is IDLE
        assert INITIAL_STATE.is_connected is False

    def test_status_values_are_frozen(self):
        with pytest.raises(ValidationError):
            IDLE.type = "busy"
        assert hash(BusyStatus()) == hash(BusyStatus())
        assert RetryStatus(attempt=1) == RetryStatus(attempt=1)


class TestMessages:
    def test_message_updated_inserts(self):
        """A new message is stored by id."""
        state = apply(MessageUpdated(make_message("msg_001")))
        assert list(state.messages) == ["msg_001"]

    def test_last_write_wins(self):
        """A later update replaces the whole record, not a field merge."""
        first = make_message("msg_001", role="user", created=1)
        second = make_message("msg_001", role="assistant", created=2)
        state = apply(MessageUpdated(first), MessageUpdated(second))
        assert state.messages["msg_001"] is second

    def test_repeated_upsert_returns_same_state(self):
        """Applying an equal message twice is a no-op on the second apply."""
        state = apply(MessageUpdated(make_message("msg_001")))
        again = reduce(state, MessageUpdated(make_message("msg_001")))
        assert again is state

    def test_message_removed_drops_parts(self):
        """Removing a message removes its parts too."""
        state = apply(
            MessageUpdated(make_message("msg_001")),
            PartUpdated(make_part("prt_001", "msg_001")),
            MessageRemoved("msg_001"),
        )
        assert "msg_001" not in state.messages
        assert "msg_001" not in state.parts_by_message

    def test_remove_absent_message_is_noop(self):
        """Removing an unknown id returns the very same state object."""
        state = apply(MessageUpdated(make_message("msg_001")))
        assert reduce(state, MessageRemoved("msg_missing")) is state

    def test_input_state_is_not_mutated(self):
        """The previous state keeps its maps after an update."""
        before = apply(MessageUpdated(make_message("msg_001")))
        after = reduce(before, MessageUpdated(make_message("msg_002")))
        assert list(before.messages) == ["msg_001"]
        assert set(after.messages) == {"msg_001", "msg_002"}


class TestParts:
    def test_part_before_message(self):
        """A part arriving before its message is kept and becomes visible later."""
        state = apply(PartUpdated(make_part("prt_001", "msg_001")))
        assert "prt_001" in state.parts_by_message["msg_001"]
        assert state.messages == {}

        state = reduce(state, MessageUpdated(make_message("msg_001")))
        view = ProjectionView(lambda: state)
        assert [p.id for p in view.parts_for_message("msg_001")] == ["prt_001"]

    def test_part_replaced_by_id(self):
        """A later version of a part replaces the earlier one."""
        state = apply(
            PartUpdated(make_part("prt_001", "msg_001", text="Hel")),
            PartUpdated(make_part("prt_001", "msg_001", text="Hello")),
        )
        assert state.parts_by_message["msg_001"]["prt_001"].text == "Hello"

    def test_part_removed(self):
        """A part can be removed while its siblings survive."""
        state = apply(
            PartUpdated(make_part("prt_001", "msg_001")),
            PartUpdated(make_part("prt_002", "msg_001")),
            PartRemoved("msg_001", "prt_001"),
        )
        assert list(state.parts_by_message["msg_001"]) == ["prt_002"]

    def test_remove_absent_part_is_noop(self):
        """Removing an unknown part returns the same state."""
        state = apply(PartUpdated(make_part("prt_001", "msg_001")))
        assert reduce(state, PartRemoved("msg_001", "prt_missing")) is state
        assert reduce(state, PartRemoved("msg_missing", "prt_001")) is state


class TestStatus:
    def test_status_set(self):
        """session.status replaces the status."""
        status = RetryStatus(attempt=2, message="rate limited", next=1700000000000)
        state = apply(StatusSet(status))
        assert state.status == status

    def test_busy_clears_session_error(self):
        """Going busy clears a previous business error."""
        state = apply(SessionError("boom"))
        assert state.session_error == "boom"
        state = reduce(state, StatusSet(BusyStatus()))
        assert state.session_error is None
        assert state.status.type == "busy"

    def test_busy_clears_connection_error(self):
        """A stale transport error is cleared once the agent reports busy."""
        state = apply(Disconnected(error="reset"))
        state = reduce(state, StatusSet(BusyStatus()))
        assert state.connection_error is None
        assert state.is_connected is False
        assert reduce(state, StatusSet(BusyStatus())) is state

    def test_non_busy_status_keeps_errors(self):
        state = apply(SessionError("boom"), Disconnected(error="reset"))
        state = reduce(state, StatusSet(RetryStatus(attempt=1)))
        assert state.session_error == "boom"
        assert state.connection_error == "reset"

    def test_session_error_forces_idle(self):
        """A session error records the message and sets status to idle."""
        state = apply(StatusSet(BusyStatus()), SessionError("quota exceeded"))
        assert state.status == IDLE
        assert state.session_error == "quota exceeded"

    def test_same_status_is_noop(self):
        state = apply(StatusSet(BusyStatus()))
        assert reduce(state, StatusSet(BusyStatus())) is state


class TestPrompts:
    def test_permission_lifecycle(self):
        """Asked inserts by id, replied removes."""
        request = PermissionRequest(id="per_001", permission="bash", patterns=["ls"])
        state = apply(PermissionAsked(request))
        assert state.pending_permissions == {"per_001": request}
        state = reduce(state, PermissionReplied("per_001"))
        assert state.pending_permissions == {}

    def test_duplicate_reply_is_noop(self):
        """A reply for an unknown request returns the same state."""
        state = apply(PermissionAsked(PermissionRequest(id="per_001")))
        state = reduce(state, PermissionReplied("per_001"))
        assert reduce(state, PermissionReplied("per_001")) is state

    def test_question_lifecycle(self):
        request = QuestionRequest(id="que_001")
        state = apply(QuestionAsked(request))
        assert "que_001" in state.pending_questions
        state = reduce(state, QuestionReplied("que_001"))
        assert state.pending_questions == {}

    def test_todos_replaced_wholesale(self):
        """todo.updated replaces the whole list."""
        first = (Todo(id="t1", content="write tests"), Todo(id="t2", content="ship"))
        second = (Todo(id="t3", content="celebrate"),)
        state = apply(TodosReplaced(first), TodosReplaced(second))
        assert [t.id for t in state.todos] == ["t3"]

    def test_revert_pointer(self):
        """session.updated tracks the revert pointer, including clearing it."""
        pointer = RevertPointer(message_id="msg_003")
        state = apply(SessionUpdated(revert=pointer))
        assert state.revert == pointer
        state = reduce(state, SessionUpdated(revert=None))
        assert state.revert is None


class TestConnection:
    def test_connected_clears_error(self):
        state = apply(Disconnected(error="Connection lost"), Connected())
        assert state.is_connected is True
        assert state.connection_error is None

    def test_disconnected_keeps_business_state(self):
        """Connection loss never touches the session status or error."""
        state = apply(StatusSet(BusyStatus()), Connected(), Disconnected(error="reset"))
        assert state.is_connected is False
        assert state.connection_error == "reset"
        assert state.status.type == "busy"
        assert state.session_error is None

    def test_terminal_disconnect_marks_exhausted(self):
        state = apply(Disconnected(error="Max reconnection attempts reached", terminal=True))
        assert state.reconnect_exhausted is True
        assert reduce(state, Connected()).reconnect_exhausted is False

    def test_clear_resets_everything(self):
        state = apply(
            MessageUpdated(make_message("msg_001")),
            PermissionAsked(PermissionRequest(id="per_001")),
            Connected(),
        )
        assert reduce(state, Clear()) is INITIAL_STATE


class TestInit:
    def test_hydrate_then_remove(self):
        """Five hydrated messages minus one removal leaves four, sorted by creation."""
        messages = tuple(make_message(f"msg_{i}", created=10 - i) for i in range(5))
        state = apply(Init(messages=messages), MessageRemoved("msg_2"))
        view = ProjectionView(lambda: state)
        assert [m.id for m in view.messages] == ["msg_4", "msg_3", "msg_1", "msg_0"]

    def test_init_merges_with_live_events(self):
        """A snapshot landing after a live event does not drop the live record."""
        live = make_message("msg_live", created=5)
        state = apply(
            MessageUpdated(live),
            Init(messages=(make_message("msg_old", created=1),)),
        )
        assert set(state.messages) == {"msg_live", "msg_old"}

    def test_stream_remove_after_hydrate(self):
        """A stream removal deletes whatever hydration added."""
        state = apply(
            Init(
                messages=(make_message("msg_001"),),
                parts=(make_part("prt_001", "msg_001"),),
            ),
            PartRemoved("msg_001", "prt_001"),
        )
        assert state.parts_by_message["msg_001"] == {}


class TestChildren:
    def test_child_events_stay_out_of_primary(self):
        """Child updates only affect that child's projection."""
        state = apply(
            MessageUpdated(make_message("msg_001")),
            ChildMessageUpdated("ses_child", make_message("msg_c1")),
            ChildPartUpdated("ses_child", make_part("prt_c1", "msg_c1")),
        )
        assert list(state.messages) == ["msg_001"]
        assert state.parts_by_message == {}
        child = state.child("ses_child")
        assert child is not None
        assert list(child.messages) == ["msg_c1"]
        assert "prt_c1" in child.parts_by_message["msg_c1"]

    def test_child_removals(self):
        state = apply(
            ChildMessageUpdated("ses_child", make_message("msg_c1")),
            ChildPartUpdated("ses_child", make_part("prt_c1", "msg_c1")),
            ChildPartRemoved("ses_child", "msg_c1", "prt_c1"),
        )
        assert state.child("ses_child").parts_by_message["msg_c1"] == {}
        state = reduce(state, ChildMessageRemoved("ses_child", "msg_c1"))
        assert state.child("ses_child").messages == {}

    def test_removal_for_unknown_child_is_noop(self):
        """Removals never create a child projection."""
        state = apply(MessageUpdated(make_message("msg_001")))
        assert reduce(state, ChildMessageRemoved("ses_ghost", "msg_x")) is state
        assert reduce(state, ChildPartRemoved("ses_ghost", "msg_x", "prt_x")) is state

    def test_child_status(self):
        state = apply(ChildStatusSet("ses_child", BusyStatus()))
        assert state.child("ses_child").status.type == "busy"
        assert state.status == IDLE

    def test_child_init_creates_and_merges(self):
        state = apply(
            ChildInit(
                "ses_child",
                messages=(make_message("msg_c1"),),
                parts=(make_part("prt_c1", "msg_c1"),),
            )
        )
        assert list(state.child("ses_child").messages) == ["msg_c1"]
        again = reduce(
            state, ChildInit("ses_child", messages=(make_message("msg_c1"),))
        )
        assert again is state


class TestUnknownAction:
    def test_unknown_action_returns_state(self):
        """The reducer is total: anything it does not recognise is ignored."""
        state = apply(MessageUpdated(make_message("msg_001")))
        assert reduce(state, object()) is state  # type: ignore[arg-type]
