"""Core domain models."""

from core.models.role import Role
from core.models.appointment import Appointment, AppointmentStatus
from core.models.product import Product, ProductStatus
from core.models.staff import StaffMember, StaffStatus
from core.models.completion import (
    CompletionRecord,
    CompletionRecordCreate,
    CompletionRecordUpdate,
    CompanyCompletionStats,
    ProductUsageLine,
    COST_PLACES,
    QUANTITY_PLACES,
    decimal_places,
    ledger_total,
    new_line_id,
)

__all__ = [
    # Role
    "Role",
    # Appointment
    "Appointment", "AppointmentStatus",
    # Product
    "Product", "ProductStatus",
    # Staff
    "StaffMember", "StaffStatus",
    # Completion
    "CompletionRecord", "CompletionRecordCreate", "CompletionRecordUpdate",
    "CompanyCompletionStats", "ProductUsageLine", "COST_PLACES", "QUANTITY_PLACES", "decimal_places",
    "ledger_total", "new_line_id",
]
