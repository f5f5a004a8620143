from __future__ import annotations

from dialler.queue.state_machine import CALLBACK_STATE_MACHINE, ENTRY_STATE_MACHINE, StateMachine


def test_sources_for_lists_every_state_that_reaches_the_target():
    sm = StateMachine({"pending": {"assigned"}, "held": {"assigned"}, "assigned": {"completed"}})
    assert sm.sources_for("assigned") == ["held", "pending"]
    assert sm.sources_for("pending") == []


def test_entry_terminal_states_are_only_reachable_from_assigned():
    assert ENTRY_STATE_MACHINE.sources_for("completed") == ["assigned"]
    assert ENTRY_STATE_MACHINE.sources_for("skipped") == ["assigned"]
    assert ENTRY_STATE_MACHINE.sources_for("assigned") == ["pending"]
    assert ENTRY_STATE_MACHINE.sources_for("inactive") == ["pending"]


def test_completed_entry_cannot_be_reassigned():
    assert "completed" not in ENTRY_STATE_MACHINE.sources_for("assigned")


def test_callback_is_consumed_once():
    assert CALLBACK_STATE_MACHINE.sources_for("consumed") == ["pending"]
    assert "consumed" not in CALLBACK_STATE_MACHINE.sources_for("consumed")
