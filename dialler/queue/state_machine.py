"""Canonical state transition helpers for snapshot entries and callbacks."""

from __future__ import annotations

from dialler.core.enums import CallbackStatus, QueueEntryStatus


class StateMachine:
    """Allowed transitions; conditional UPDATEs guard on `sources_for(target)`."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def sources_for(self, target: str) -> list[str]:
        """States from which `target` is reachable, in a stable order."""
        return sorted(current for current, targets in self._transitions.items() if target in targets)


ENTRY_STATE_MACHINE = StateMachine(
    {
        QueueEntryStatus.PENDING.value: {QueueEntryStatus.ASSIGNED.value, QueueEntryStatus.INACTIVE.value},
        QueueEntryStatus.ASSIGNED.value: {QueueEntryStatus.COMPLETED.value, QueueEntryStatus.SKIPPED.value},
    }
)

CALLBACK_STATE_MACHINE = StateMachine(
    {CallbackStatus.PENDING.value: {CallbackStatus.CONSUMED.value}},
)
