"""
Appointment service for listing, status changes and deletion.

Status changes are checked against the transition table here as well as in
the core, so a stale or hand-crafted request cannot move an appointment
along an illegal edge. Deletion is outside the state machine.
"""

import logging

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.event_bus import EventBus
from core.events import (
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentConfirmed,
    AppointmentDeleted,
)
from core.lifecycle import can_transition
from core.models import Appointment, AppointmentStatus, Role
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_SELECT_APPOINTMENTS = """
    SELECT
        a.id, a.user_id, a.company_id, a.service_id, a.staff_id,
        COALESCE(a.staff_preferences, '{}') AS staff_preferences,
        a.appointment_date::text AS date,
        to_char(a.appointment_time, 'HH24:MI') AS time,
        a.status, a.notes, a.created_at, a.updated_at,
        u.name AS user_name,
        c.name AS company_name,
        s.name AS service_name,
        s.price AS service_price,
        st.name AS staff_name
    FROM appointments a
    JOIN users u ON u.id = a.user_id
    JOIN companies c ON c.id = a.company_id
    JOIN services s ON s.id = a.service_id
    LEFT JOIN staff st ON st.id = a.staff_id
"""

# Which appointments each role sees; the parameter is the acting user's id
_ROLE_SCOPES = {
    Role.ADMIN: None,
    Role.OWNER: "c.owner_id = %s",
    Role.STAFF: "a.staff_id IN (SELECT id FROM staff WHERE user_id = %s)",
    Role.USER: "a.user_id = %s",
}

_STATUS_EVENTS = {
    AppointmentStatus.CONFIRMED: AppointmentConfirmed,
    AppointmentStatus.COMPLETED: AppointmentCompleted,
    AppointmentStatus.CANCELLED: AppointmentCancelled,
}


class AppointmentService:
    """Service for appointment operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, event_bus: EventBus | None = None):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def list_for_role(self, role: Role, user_id: int, limit: int = 200) -> list[Appointment]:
        """
        List the appointments a role can see.

        Args:
            role: Acting role
            user_id: Acting user
            limit: Maximum results

        Returns:
            Appointments ordered by date and time, newest first
        """
        condition = _ROLE_SCOPES[role]
        scope = f"WHERE {condition}" if condition else ""
        params = (user_id, limit) if condition else (limit,)

        rows = self.postgres.execute(
            f"""
            {_SELECT_APPOINTMENTS}
            {scope}
            ORDER BY a.appointment_date DESC, a.appointment_time DESC
            LIMIT %s
            """,
            params
        )

        return [Appointment.model_validate(row) for row in rows]

    def get_by_id(self, appointment_id: int) -> Appointment | None:
        row = self.postgres.execute_single(
            f"{_SELECT_APPOINTMENTS} WHERE a.id = %s",
            (appointment_id,)
        )

        if row is None:
            return None

        return Appointment.model_validate(row)

    def get_for_role(self, appointment_id: int, role: Role, user_id: int) -> Appointment | None:
        """One appointment, or None when it does not exist or the role cannot see it."""
        condition = _ROLE_SCOPES[role]
        if condition is None:
            return self.get_by_id(appointment_id)

        row = self.postgres.execute_single(
            f"{_SELECT_APPOINTMENTS} WHERE a.id = %s AND {condition}",
            (appointment_id, user_id)
        )

        if row is None:
            return None

        return Appointment.model_validate(row)

    def change_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        staff_id: int | None = None,
        actor_id: int | None = None,
        actor_role: Role | None = None,
    ) -> Appointment:
        """
        Move an appointment along one edge of the transition table.

        Args:
            appointment_id: Appointment id
            new_status: Target status
            staff_id: Staff member to assign in the same write (confirmation)
            actor_id: Acting user, for the audit trail
            actor_role: Acting role, for the audit trail

        Returns:
            Updated appointment

        Raises:
            ValueError: If appointment not found, the transition is not allowed,
                or the status changed underneath this request
        """
        current = self.get_by_id(appointment_id)
        if current is None:
            raise ValueError(f"Appointment {appointment_id} not found")

        if not can_transition(current.status, new_status):
            raise ValueError(
                f"Invalid status transition for appointment {appointment_id}: "
                f"{current.status.value} -> {new_status.value}"
            )

        rows = self.postgres.execute_returning(
            """
            UPDATE appointments
            SET status = %s, staff_id = COALESCE(%s, staff_id), updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING id
            """,
            (new_status, staff_id, now_utc(), appointment_id, current.status)
        )
        if not rows:
            raise ValueError(
                f"Appointment {appointment_id} changed status while the request was in flight"
            )

        updated = self.get_by_id(appointment_id)

        changes = {"status": {"old": current.status.value, "new": new_status.value}}
        if staff_id is not None and staff_id != current.staff_id:
            changes["staff_id"] = {"old": current.staff_id, "new": staff_id}

        self.audit.log_change(
            entity_type="appointment",
            entity_id=appointment_id,
            action=AuditAction.STATUS_CHANGE,
            changes=changes,
            actor_id=actor_id,
            actor_role=actor_role,
        )
        logger.info(
            "Appointment %s: %s -> %s", appointment_id, current.status.value, new_status.value
        )

        self._publish(_STATUS_EVENTS[new_status].create(updated))
        return updated

    def delete(
        self,
        appointment_id: int,
        actor_id: int | None = None,
        actor_role: Role | None = None,
    ) -> bool:
        """
        Delete an appointment.

        Returns:
            True if deleted, False if not found
        """
        current = self.get_by_id(appointment_id)
        if current is None:
            return False

        self.postgres.execute_returning(
            "DELETE FROM appointments WHERE id = %s RETURNING id",
            (appointment_id,)
        )

        self.audit.log_change(
            entity_type="appointment",
            entity_id=appointment_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")},
            actor_id=actor_id,
            actor_role=actor_role,
        )

        self._publish(AppointmentDeleted.create(current))
        return True
