# slotbook/scheduling/state_machine.py
"""Appointment lifecycle transition table"""
from typing import Dict, FrozenSet

from slotbook.core.exceptions import InvalidTransitionError
from slotbook.models.appointment import AppointmentStatus

TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def is_terminal(status) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def can_transition(current, target) -> bool:
    return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def ensure_transition(current, target) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed"""
    if not can_transition(current, target):
        raise InvalidTransitionError(AppointmentStatus(current), AppointmentStatus(target))


def ensure_reschedulable(current) -> None:
    status = AppointmentStatus(current)
    if status in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            status, status, f"A {status.value.lower()} appointment cannot be rescheduled"
        )
