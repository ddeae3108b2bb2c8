"""
Persistence gateway consumed by the appointment workflow.

The workflow never talks to services or the database directly. It issues
requests through a BackOfficeGateway and treats the returned records as the
new truth. Implementations report failures as PersistFailure and a missing
completion record as CompletionRecordNotFound.
"""

import logging
from typing import Protocol

import psycopg2

from core.exceptions import CompletionRecordNotFound, PersistFailure
from core.models import (
    Appointment,
    AppointmentStatus,
    CompanyCompletionStats,
    CompletionRecord,
    CompletionRecordCreate,
    CompletionRecordUpdate,
    Product,
    Role,
    StaffMember,
)

logger = logging.getLogger(__name__)


class BackOfficeGateway(Protocol):
    """Requests the workflow makes of the persistence layer."""

    def list_appointments(self, role: Role, user_id: int) -> list[Appointment]: ...

    def get_appointment(self, appointment_id: int, role: Role, user_id: int) -> Appointment | None: ...

    def request_status_change(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        staff_id: int | None = None,
    ) -> Appointment: ...

    def request_delete(self, appointment_id: int) -> None: ...

    def list_active_products(self, company_id: int) -> list[Product]: ...

    def list_active_staff(self, company_id: int) -> list[StaffMember]: ...

    def get_completion_record_by_appointment(self, appointment_id: int) -> CompletionRecord: ...

    def create_completion_record(self, data: CompletionRecordCreate) -> CompletionRecord: ...

    def update_completion_record(self, record_id: int, data: CompletionRecordUpdate) -> CompletionRecord: ...

    def list_company_completions(self, company_id: int, limit: int, offset: int = 0) -> list[CompletionRecord]: ...

    def company_completion_stats(self, company_id: int) -> CompanyCompletionStats: ...

    def list_user_completions(self, user_id: int, limit: int, offset: int = 0) -> list[CompletionRecord]: ...

    def delete_completion_record(self, record_id: int) -> None: ...


class ServiceGateway:
    """
    BackOfficeGateway backed by the Postgres services.

    Bound to one acting user and role so the audit trail attributes every
    write. Service ValueErrors and database errors become PersistFailure
    with the original message.
    """

    def __init__(
        self,
        services: dict,
        actor_id: int | None = None,
        actor_role: Role | None = None,
        list_limit: int = 200,
    ):
        self.appointments = services["appointment"]
        self.products = services["product"]
        self.staff = services["staff"]
        self.completions = services["completion"]
        self.actor_id = actor_id
        self.actor_role = actor_role
        self.list_limit = list_limit

    def _call(self, operation: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (ValueError, psycopg2.Error) as exc:
            logger.warning("%s failed: %s", operation, exc)
            raise PersistFailure(str(exc), cause=exc) from exc

    def list_appointments(self, role: Role, user_id: int) -> list[Appointment]:
        return self._call(
            "list_appointments",
            self.appointments.list_for_role,
            role,
            user_id,
            limit=self.list_limit,
        )

    def get_appointment(self, appointment_id: int, role: Role, user_id: int) -> Appointment | None:
        return self._call(
            "get_appointment",
            self.appointments.get_for_role,
            appointment_id,
            role,
            user_id,
        )

    def request_status_change(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        staff_id: int | None = None,
    ) -> Appointment:
        return self._call(
            "request_status_change",
            self.appointments.change_status,
            appointment_id,
            new_status,
            staff_id=staff_id,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
        )

    def request_delete(self, appointment_id: int) -> None:
        deleted = self._call(
            "request_delete",
            self.appointments.delete,
            appointment_id,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
        )
        if not deleted:
            raise PersistFailure(f"Appointment {appointment_id} not found")

    def list_active_products(self, company_id: int) -> list[Product]:
        return self._call("list_active_products", self.products.list_active, company_id)

    def list_active_staff(self, company_id: int) -> list[StaffMember]:
        return self._call("list_active_staff", self.staff.list_active, company_id)

    def get_completion_record_by_appointment(self, appointment_id: int) -> CompletionRecord:
        record = self._call(
            "get_completion_record_by_appointment",
            self.completions.get_by_appointment,
            appointment_id,
        )
        if record is None:
            raise CompletionRecordNotFound(appointment_id)
        return record

    def create_completion_record(self, data: CompletionRecordCreate) -> CompletionRecord:
        return self._call(
            "create_completion_record",
            self.completions.create,
            data,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
        )

    def update_completion_record(self, record_id: int, data: CompletionRecordUpdate) -> CompletionRecord:
        return self._call(
            "update_completion_record",
            self.completions.update,
            record_id,
            data,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
        )

    def list_company_completions(self, company_id: int, limit: int, offset: int = 0) -> list[CompletionRecord]:
        return self._call(
            "list_company_completions",
            self.completions.list_for_company,
            company_id,
            limit=limit,
            offset=offset,
        )

    def company_completion_stats(self, company_id: int) -> CompanyCompletionStats:
        return self._call("company_completion_stats", self.completions.company_stats, company_id)

    def list_user_completions(self, user_id: int, limit: int, offset: int = 0) -> list[CompletionRecord]:
        return self._call(
            "list_user_completions",
            self.completions.list_for_user,
            user_id,
            limit=limit,
            offset=offset,
        )

    def delete_completion_record(self, record_id: int) -> None:
        deleted = self._call(
            "delete_completion_record",
            self.completions.delete,
            record_id,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
        )
        if not deleted:
            raise PersistFailure(f"Completion record {record_id} not found")
