"""Appointment domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Appointment(BaseModel):
    """
    Appointment as supplied by the persistence layer.

    The name and price fields are read-only projections joined in by the
    query; the lifecycle code never derives or mutates them.
    """

    id: int
    user_id: int
    company_id: int
    service_id: int
    staff_id: int | None = None
    staff_preferences: list[int] = Field(default_factory=list)
    date: str
    time: str
    status: AppointmentStatus
    notes: str | None = None

    user_name: str | None = None
    company_name: str | None = None
    service_name: str | None = None
    service_price: Decimal | None = None
    staff_name: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True, "frozen": True}

    def with_status(self, status: AppointmentStatus) -> "Appointment":
        """Copy of this appointment with a different status."""
        return self.model_copy(update={"status": status})
