"""
Routing of the advance-status action, and the staff-assignment step.

An owner's advance is intercepted twice: confirming a pending appointment
first goes through staff assignment, and completing a confirmed one goes
through the completion workflow. Everyone else's advance is a direct
status change.
"""

import logging
from enum import Enum

from core.exceptions import LedgerValidationError
from core.gateway import BackOfficeGateway
from core.lifecycle import next_status, validate_transition
from core.models import Appointment, AppointmentStatus, Role, StaffMember

logger = logging.getLogger(__name__)


class AdvanceRoute(str, Enum):
    DIRECT = "direct"
    ASSIGN_STAFF = "assign_staff"
    COMPLETE = "complete"
    BLOCKED = "blocked"


# (role, forward target) pairs that are redirected into a side flow
_INTERCEPTS = {
    (Role.OWNER, AppointmentStatus.CONFIRMED): AdvanceRoute.ASSIGN_STAFF,
    (Role.OWNER, AppointmentStatus.COMPLETED): AdvanceRoute.COMPLETE,
}


def intercepted_route(role: Role, target: AppointmentStatus) -> AdvanceRoute | None:
    """Side flow the role must use to reach target, or None if a direct change is fine."""
    return _INTERCEPTS.get((role, target))


def route_advance(role: Role, current: AppointmentStatus) -> AdvanceRoute:
    """Where the advance action for this role and status leads."""
    target = next_status(current)
    if target is None:
        return AdvanceRoute.BLOCKED
    return intercepted_route(role, target) or AdvanceRoute.DIRECT


class StaffAssignment:
    """
    Assign a staff member and confirm a pending appointment.

    The appointment only counts as CONFIRMED once confirm() has returned the
    persisted record; until then nothing about it has changed.
    """

    def __init__(
        self,
        appointment: Appointment,
        gateway: BackOfficeGateway,
        staff: list[StaffMember] | None = None,
    ):
        self.appointment = appointment
        self.gateway = gateway
        self._staff = list(staff) if staff is not None else None
        self.confirmed = False

    @property
    def staff(self) -> list[StaffMember]:
        return list(self._staff or [])

    def load_staff(self) -> list[StaffMember]:
        self._staff = self.gateway.list_active_staff(self.appointment.company_id)
        return self.staff

    def default_selection(self) -> int | None:
        """
        Pre-selected staff member.

        The currently assigned staff member if they are in the loaded list,
        else the customer's first preference that is, else nobody.
        """
        available = {member.id for member in self._staff or []}

        if self.appointment.staff_id is not None:
            return self.appointment.staff_id if self.appointment.staff_id in available else None

        for preferred in self.appointment.staff_preferences:
            if preferred in available:
                return preferred
        return None

    def confirm(self, staff_id: int | None) -> Appointment:
        """
        Assign staff_id and move the appointment to CONFIRMED.

        Raises:
            LedgerValidationError: No staff member selected, or one outside the loaded list
            InvalidTransition: Appointment is no longer pending
            PersistFailure: Gateway rejected the change
        """
        if not staff_id:
            raise LedgerValidationError("Please select a staff member")

        if self._staff is not None and staff_id not in {member.id for member in self._staff}:
            raise LedgerValidationError(
                f"Staff member {staff_id} is not available for company {self.appointment.company_id}"
            )

        validate_transition(self.appointment.status, AppointmentStatus.CONFIRMED)

        updated = self.gateway.request_status_change(
            self.appointment.id, AppointmentStatus.CONFIRMED, staff_id=staff_id
        )
        logger.info("Appointment %s confirmed with staff %s", updated.id, staff_id)

        self.appointment = updated
        self.confirmed = True
        return updated
