"""
Completion record (user history) service.

A completion record is written once per appointment, together with the
appointment's move to COMPLETED, and can later have its ledger and notes
replaced as a whole. Line-level changes are never persisted on their own.
"""

import logging
from datetime import datetime

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.event_bus import EventBus
from core.events import CompletionRecorded, CompletionRemoved, CompletionRevised
from core.models import (
    AppointmentStatus,
    CompanyCompletionStats,
    CompletionRecord,
    CompletionRecordCreate,
    CompletionRecordUpdate,
    ProductUsageLine,
    Role,
    ledger_total,
)
from core.services.catalog_service import ProductService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# A record can be written while the appointment is confirmed (normal close-out)
# or already completed without history (completed directly by an admin).
_COMPLETABLE_STATUSES = {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED}

_SELECT_RECORDS = """
    SELECT
        h.id, h.appointment_id, h.user_id, h.company_id, h.staff_id, h.service_id,
        h.products_used, h.total_cost, h.notes, h.completion_date,
        h.created_at, h.updated_at,
        u.name AS user_name,
        s.name AS service_name,
        st.name AS staff_name
    FROM user_history h
    JOIN users u ON u.id = h.user_id
    JOIN services s ON s.id = h.service_id
    LEFT JOIN staff st ON st.id = h.staff_id
"""


def _ledger_json(lines: list[ProductUsageLine]) -> Json:
    return Json([line.model_dump(mode="json") for line in lines])


class CompletionRecordService:
    """Service for completion record operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        products: ProductService,
        event_bus: EventBus | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.products = products
        self.event_bus = event_bus

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def _check_products(self, company_id: int, lines: list[ProductUsageLine]) -> None:
        wanted = [line.product_id for line in lines]
        owned = self.products.ids_owned_by(company_id, wanted)
        for product_id in wanted:
            if product_id not in owned:
                raise ValueError(
                    f"Product {product_id} not found or does not belong to company {company_id}"
                )

    def get_by_id(self, record_id: int) -> CompletionRecord | None:
        row = self.postgres.execute_single(
            f"{_SELECT_RECORDS} WHERE h.id = %s",
            (record_id,)
        )

        if row is None:
            return None

        return CompletionRecord.model_validate(row)

    def get_by_appointment(self, appointment_id: int) -> CompletionRecord | None:
        """
        Get the completion record for an appointment.

        Returns:
            The record, or None when the appointment has no history yet
        """
        row = self.postgres.execute_single(
            f"{_SELECT_RECORDS} WHERE h.appointment_id = %s",
            (appointment_id,)
        )

        if row is None:
            return None

        return CompletionRecord.model_validate(row)

    def create(
        self,
        data: CompletionRecordCreate,
        actor_id: int | None = None,
        actor_role: Role | None = None,
        completion_date: datetime | None = None,
    ) -> CompletionRecord:
        """
        Record an appointment's completion and mark it COMPLETED.

        The record insert and the status update run as one statement.

        Args:
            data: Ledger, total and notes for the appointment
            actor_id: Acting user, for the audit trail
            actor_role: Acting role, for the audit trail
            completion_date: Defaults to now

        Returns:
            Created completion record

        Raises:
            ValueError: If the appointment is missing, not completable, already
                has a record, or a product belongs to another company
        """
        appointment = self.postgres.execute_single(
            """
            SELECT id, user_id, company_id, staff_id, service_id, status
            FROM appointments WHERE id = %s
            """,
            (data.appointment_id,)
        )
        if appointment is None:
            raise ValueError(f"Appointment {data.appointment_id} not found")

        status = AppointmentStatus(appointment["status"])
        if status not in _COMPLETABLE_STATUSES:
            raise ValueError(
                f"Appointment {data.appointment_id} cannot be completed from status {status.value}"
            )

        if self.get_by_appointment(data.appointment_id) is not None:
            raise ValueError(
                f"Completion record already exists for appointment {data.appointment_id}"
            )

        self._check_products(appointment["company_id"], data.products_used)

        now = now_utc()
        total_cost = ledger_total(data.products_used)

        row = self.postgres.execute_returning(
            """
            WITH completed AS (
                UPDATE appointments
                SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING id, user_id, company_id, staff_id, service_id
            )
            INSERT INTO user_history (
                appointment_id, user_id, company_id, staff_id, service_id,
                products_used, total_cost, notes, completion_date,
                created_at, updated_at
            )
            SELECT
                id, user_id, company_id, staff_id, service_id,
                %s, %s, %s, %s,
                %s, %s
            FROM completed
            RETURNING id
            """,
            (
                AppointmentStatus.COMPLETED, now, data.appointment_id,
                _ledger_json(data.products_used), total_cost, data.notes, completion_date or now,
                now, now,
            )
        )[0]

        record = self.get_by_id(row["id"])

        self.audit.log_change(
            entity_type="completion_record",
            entity_id=record.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")},
            actor_id=actor_id,
            actor_role=actor_role,
        )
        logger.info(
            "Appointment %s completed with %d product line(s), total %s",
            data.appointment_id, len(data.products_used), total_cost,
        )

        self._publish(CompletionRecorded.create(record))
        return record

    def update(
        self,
        record_id: int,
        data: CompletionRecordUpdate,
        actor_id: int | None = None,
        actor_role: Role | None = None,
    ) -> CompletionRecord:
        """
        Replace a record's ledger, total and notes in one write.

        Raises:
            ValueError: If record not found or a product belongs to another company
        """
        current = self.get_by_id(record_id)
        if current is None:
            raise ValueError(f"Completion record {record_id} not found")

        self._check_products(current.company_id, data.products_used)

        self.postgres.execute_returning(
            """
            UPDATE user_history
            SET products_used = %s, total_cost = %s, notes = %s, updated_at = %s
            WHERE id = %s
            RETURNING id
            """,
            (
                _ledger_json(data.products_used), ledger_total(data.products_used),
                data.notes, now_utc(), record_id,
            )
        )

        updated = self.get_by_id(record_id)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="completion_record",
                entity_id=record_id,
                action=AuditAction.UPDATE,
                changes=changes,
                actor_id=actor_id,
                actor_role=actor_role,
            )

        self._publish(CompletionRevised.create(updated))
        return updated

    def list_for_company(self, company_id: int, limit: int = 50, offset: int = 0) -> list[CompletionRecord]:
        """Company's completion records, most recent first."""
        rows = self.postgres.execute(
            f"""
            {_SELECT_RECORDS}
            WHERE h.company_id = %s
            ORDER BY h.completion_date DESC
            LIMIT %s OFFSET %s
            """,
            (company_id, limit, offset)
        )

        return [CompletionRecord.model_validate(row) for row in rows]

    def list_for_user(self, user_id: int, limit: int = 50, offset: int = 0) -> list[CompletionRecord]:
        """A customer's completion records across companies, most recent first."""
        rows = self.postgres.execute(
            f"""
            {_SELECT_RECORDS}
            WHERE h.user_id = %s
            ORDER BY h.completion_date DESC
            LIMIT %s OFFSET %s
            """,
            (user_id, limit, offset)
        )

        return [CompletionRecord.model_validate(row) for row in rows]

    def delete(
        self,
        record_id: int,
        actor_id: int | None = None,
        actor_role: Role | None = None,
    ) -> bool:
        """
        Delete a completion record. The appointment keeps its COMPLETED status.

        Returns:
            True if deleted, False if not found
        """
        current = self.get_by_id(record_id)
        if current is None:
            return False

        self.postgres.execute_returning(
            "DELETE FROM user_history WHERE id = %s RETURNING id",
            (record_id,)
        )

        self.audit.log_change(
            entity_type="completion_record",
            entity_id=record_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")},
            actor_id=actor_id,
            actor_role=actor_role,
        )

        self._publish(CompletionRemoved.create(current))
        return True

    def company_stats(self, company_id: int) -> CompanyCompletionStats:
        row = self.postgres.execute_single(
            """
            SELECT
                COUNT(*) AS total_appointments,
                COALESCE(SUM(total_cost), 0) AS total_revenue,
                COALESCE(AVG(total_cost), 0) AS average_cost,
                COUNT(DISTINCT user_id) AS unique_customers
            FROM user_history
            WHERE company_id = %s
            """,
            (company_id,)
        )

        return CompanyCompletionStats.model_validate(row)
