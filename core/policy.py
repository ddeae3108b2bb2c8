"""
Role-gated row actions and identity-column visibility.

Both functions take the role explicitly and are pure: the same role and
appointment always yield the same answer. Ownership of the underlying record
is checked by the authorization layer, not here; this module only encodes
which role classes are eligible for an action at all.
"""

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel

from core.lifecycle import advance_color, advance_label, next_status
from core.models import Appointment, AppointmentStatus, Role


class ActionId(str, Enum):
    ADVANCE_STATUS = "advance_status"
    EDIT = "edit"
    DELETE = "delete"
    VIEW_HISTORY = "view_history"


class Column(str, Enum):
    CUSTOMER = "customer"
    COMPANY = "company"


class RowAction(BaseModel):
    """One entry of an appointment's action menu."""

    id: ActionId
    label: str
    enabled: bool
    color_hint: str

    model_config = {"frozen": True}


_ADVANCING_ROLES = frozenset({Role.ADMIN, Role.OWNER})
_HISTORY_ROLES = frozenset({Role.ADMIN, Role.OWNER})
_MANAGING_ROLES = frozenset({Role.ADMIN, Role.OWNER, Role.STAFF, Role.USER})

VISIBLE_COLUMNS = MappingProxyType({
    Role.ADMIN: frozenset({Column.CUSTOMER, Column.COMPANY}),
    Role.OWNER: frozenset({Column.CUSTOMER}),
    Role.STAFF: frozenset({Column.CUSTOMER, Column.COMPANY}),
    Role.USER: frozenset({Column.COMPANY}),
})

_COLUMN_HEADERS = MappingProxyType({
    Column.CUSTOMER: "Customer",
    Column.COMPANY: "Company",
})

BASE_HEADERS = (
    "Date", "Time", "Service", "Status", "Staff Assignment", "Notes", "Created", "Actions",
)


def get_actions(role: Role, appointment: Appointment) -> list[RowAction]:
    """
    Ordered action menu for an appointment as seen by a role.

    Advance comes first (admin/owner only, disabled from terminal states),
    then edit and delete, then view-history (admin/owner, enabled once the
    appointment is completed).
    """
    status = appointment.status
    actions = []

    if role in _ADVANCING_ROLES:
        actions.append(RowAction(
            id=ActionId.ADVANCE_STATUS,
            label=advance_label(status),
            enabled=next_status(status) is not None,
            color_hint=advance_color(status),
        ))

    if role in _MANAGING_ROLES:
        actions.append(RowAction(
            id=ActionId.EDIT, label="Edit Appointment", enabled=True, color_hint="primary",
        ))
        actions.append(RowAction(
            id=ActionId.DELETE, label="Delete Appointment", enabled=True, color_hint="error",
        ))

    if role in _HISTORY_ROLES:
        actions.append(RowAction(
            id=ActionId.VIEW_HISTORY,
            label="View History",
            enabled=status == AppointmentStatus.COMPLETED,
            color_hint="info",
        ))

    return actions


def is_action_enabled(role: Role, appointment: Appointment, action_id: ActionId) -> bool:
    """Whether the role currently has an enabled action with this id."""
    for action in get_actions(role, appointment):
        if action.id == action_id:
            return action.enabled
    return False


def get_visible_columns(role: Role) -> frozenset[Column]:
    return VISIBLE_COLUMNS[role]


def table_headers(role: Role) -> list[str]:
    """Identity columns (customer before company) followed by the fixed headers."""
    visible = get_visible_columns(role)
    identity = [_COLUMN_HEADERS[column] for column in Column if column in visible]
    return identity + list(BASE_HEADERS)
