"""
Caller-side coordinator for one role's appointment list.

The desk holds a local snapshot of appointments and applies changes to it
only after the gateway has confirmed them. The single exception is the
completion flow: once the completion record is saved, the appointment is
shown as COMPLETED locally without another status request.
"""

import logging
from dataclasses import dataclass

from core.completion_workflow import CompletionWorkflow, WorkflowMode
from core.exceptions import CompletionRecordNotFound, PersistFailure, SideFlowRequired
from core.gateway import BackOfficeGateway
from core.interception import AdvanceRoute, StaffAssignment, intercepted_route, route_advance
from core.lifecycle import next_status, validate_transition
from core.models import Appointment, AppointmentStatus, CompletionRecord, Role
from core.policy import (
    ActionId,
    Column,
    RowAction,
    get_actions,
    get_visible_columns,
    is_action_enabled,
    table_headers,
)

logger = logging.getLogger(__name__)

_STATUS_ROLES = (Role.ADMIN, Role.OWNER)

_SIDE_FLOWS = {
    AdvanceRoute.ASSIGN_STAFF: "staff assignment",
    AdvanceRoute.COMPLETE: "a completion record",
}


@dataclass(frozen=True)
class AdvanceOutcome:
    """Result of selecting the advance action; exactly one follow-up is set per route."""

    route: AdvanceRoute
    appointment: Appointment
    assignment: StaffAssignment | None = None
    workflow: CompletionWorkflow | None = None


class AppointmentDesk:
    """Appointment list plus the actions one role can take on it."""

    def __init__(self, role: Role, user_id: int, gateway: BackOfficeGateway):
        self.role = role
        self.user_id = user_id
        self.gateway = gateway
        self._appointments: dict[int, Appointment] = {}

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def refresh(self) -> list[Appointment]:
        appointments = self.gateway.list_appointments(self.role, self.user_id)
        self._appointments = {appointment.id: appointment for appointment in appointments}
        return self.appointments

    @property
    def appointments(self) -> list[Appointment]:
        return list(self._appointments.values())

    def get(self, appointment_id: int) -> Appointment:
        """
        An appointment from the snapshot, fetched by id when the snapshot lacks it.

        Raises:
            ValueError: Appointment does not exist or the role cannot see it
        """
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            appointment = self.gateway.get_appointment(appointment_id, self.role, self.user_id)
            if appointment is None:
                raise ValueError(f"Appointment {appointment_id} not found")
            self._replace(appointment)
        return appointment

    def _replace(self, appointment: Appointment) -> None:
        self._appointments[appointment.id] = appointment

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    def actions_for(self, appointment_id: int) -> list[RowAction]:
        return get_actions(self.role, self.get(appointment_id))

    def columns(self) -> frozenset[Column]:
        return get_visible_columns(self.role)

    def headers(self) -> list[str]:
        return table_headers(self.role)

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def advance(self, appointment_id: int) -> AdvanceOutcome:
        """
        Select the advance action on an appointment.

        Returns an outcome carrying the updated appointment (DIRECT), a
        StaffAssignment to complete (ASSIGN_STAFF), a CompletionWorkflow in
        create mode (COMPLETE), or nothing to do (BLOCKED).

        Raises:
            PermissionError: Role has no advance action
        """
        appointment = self.get(appointment_id)
        if self.role not in _STATUS_ROLES:
            raise PermissionError(f"Role {self.role.value} cannot advance appointments")

        if not is_action_enabled(self.role, appointment, ActionId.ADVANCE_STATUS):
            return AdvanceOutcome(route=AdvanceRoute.BLOCKED, appointment=appointment)

        route = route_advance(self.role, appointment.status)
        logger.debug("Advance on appointment %s routed to %s", appointment_id, route.value)

        if route == AdvanceRoute.ASSIGN_STAFF:
            return AdvanceOutcome(
                route=route,
                appointment=appointment,
                assignment=StaffAssignment(appointment, self.gateway),
            )

        if route == AdvanceRoute.COMPLETE:
            return AdvanceOutcome(
                route=route,
                appointment=appointment,
                workflow=CompletionWorkflow(appointment, self.gateway, mode=WorkflowMode.CREATE),
            )

        updated = self.change_status(appointment_id, next_status(appointment.status))
        return AdvanceOutcome(route=route, appointment=updated)

    def change_status(self, appointment_id: int, new_status: AppointmentStatus) -> Appointment:
        """
        Request a status change and apply it once the gateway confirms.

        Raises:
            PermissionError: Role may not change appointment status
            InvalidTransition: Not in the transition table; nothing was requested
            SideFlowRequired: The role reaches this status only through staff
                assignment or the completion workflow
            PersistFailure: Gateway rejected the change; snapshot unchanged
        """
        appointment = self.get(appointment_id)
        if self.role not in _STATUS_ROLES:
            raise PermissionError(f"Role {self.role.value} cannot change appointment status")

        validate_transition(appointment.status, new_status)

        flow = intercepted_route(self.role, new_status)
        if flow is not None:
            raise SideFlowRequired(new_status, _SIDE_FLOWS[flow])

        try:
            updated = self.gateway.request_status_change(appointment_id, new_status)
        except PersistFailure:
            logger.warning(
                "Status change %s -> %s failed for appointment %s",
                appointment.status.value, new_status.value, appointment_id,
            )
            raise

        self._replace(updated)
        return updated

    def confirm_assignment(self, assignment: StaffAssignment, staff_id: int | None) -> Appointment:
        """Finish a staff assignment; the snapshot changes only if it succeeds."""
        updated = assignment.confirm(staff_id)
        self._replace(updated)
        return updated

    def complete(self, workflow: CompletionWorkflow) -> CompletionRecord:
        """Submit a completion workflow and show its appointment as completed."""
        record = workflow.submit()
        self._replace(workflow.appointment)
        return record

    # -------------------------------------------------------------------------
    # History and deletion
    # -------------------------------------------------------------------------

    def open_history(self, appointment_id: int, editable: bool = False) -> CompletionWorkflow:
        """
        Open an appointment's completion record.

        No record yet opens the workflow in create mode; otherwise in view
        mode, or edit mode when editable is set.
        """
        appointment = self.get(appointment_id)
        try:
            record = self.gateway.get_completion_record_by_appointment(appointment_id)
        except CompletionRecordNotFound:
            return CompletionWorkflow(appointment, self.gateway, mode=WorkflowMode.CREATE)

        mode = WorkflowMode.EDIT if editable else WorkflowMode.VIEW
        return CompletionWorkflow(appointment, self.gateway, mode=mode, existing=record)

    def delete(self, appointment_id: int) -> None:
        """Delete an appointment; it leaves the snapshot only after the gateway succeeds."""
        self.get(appointment_id)
        self.gateway.request_delete(appointment_id)
        del self._appointments[appointment_id]
        logger.info("Appointment %s deleted", appointment_id)

    def delete_history(self, appointment_id: int) -> None:
        """
        Delete an appointment's completion record. The appointment stays COMPLETED.

        Raises:
            PermissionError: Role cannot manage completion history
            CompletionRecordNotFound: Appointment has no record
        """
        self.get(appointment_id)
        if self.role not in _STATUS_ROLES:
            raise PermissionError(f"Role {self.role.value} cannot delete completion history")

        record = self.gateway.get_completion_record_by_appointment(appointment_id)
        self.gateway.delete_completion_record(record.id)
        logger.info("Completion record %s for appointment %s deleted", record.id, appointment_id)
