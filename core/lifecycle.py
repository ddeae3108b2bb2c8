"""
Appointment status state machine.

    PENDING -> CONFIRMED -> COMPLETED
       |           |
       +-----------+----> CANCELLED

COMPLETED and CANCELLED are terminal. The full transition table also allows
cancellation; next_status() only follows the forward path used by the
one-click advance action.
"""

from types import MappingProxyType

from core.exceptions import InvalidTransition
from core.models import AppointmentStatus

ALLOWED_TRANSITIONS = MappingProxyType({
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
})

FORWARD_TRANSITIONS = MappingProxyType({
    AppointmentStatus.PENDING: AppointmentStatus.CONFIRMED,
    AppointmentStatus.CONFIRMED: AppointmentStatus.COMPLETED,
    AppointmentStatus.COMPLETED: None,
    AppointmentStatus.CANCELLED: None,
})

STATUS_DISPLAY_NAMES = MappingProxyType({
    AppointmentStatus.PENDING: "Pending",
    AppointmentStatus.CONFIRMED: "Confirmed",
    AppointmentStatus.COMPLETED: "Completed",
    AppointmentStatus.CANCELLED: "Cancelled",
})

STATUS_COLORS = MappingProxyType({
    AppointmentStatus.PENDING: "#f59e0b",
    AppointmentStatus.CONFIRMED: "#3b82f6",
    AppointmentStatus.COMPLETED: "#10b981",
    AppointmentStatus.CANCELLED: "#ef4444",
})

# Advance-action label keyed by the *current* status
ADVANCE_LABELS = MappingProxyType({
    AppointmentStatus.PENDING: "Confirm Appointment",
    AppointmentStatus.CONFIRMED: "Mark as Completed",
    AppointmentStatus.COMPLETED: "Update Status",
    AppointmentStatus.CANCELLED: "Update Status",
})

DISABLED_COLOR = "#6b7280"


def next_status(current: AppointmentStatus) -> AppointmentStatus | None:
    """Forward transition for the advance action, or None from a terminal state."""
    return FORWARD_TRANSITIONS[current]


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Check a requested status change against the transition table.

    Raises:
        InvalidTransition: If target is not reachable from current
    """
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def advance_label(current: AppointmentStatus) -> str:
    return ADVANCE_LABELS[current]


def advance_color(current: AppointmentStatus) -> str:
    """Colour of the status the advance action leads to, grey when there is none."""
    target = next_status(current)
    if target is None:
        return DISABLED_COLOR
    return STATUS_COLORS[target]
