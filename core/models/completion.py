"""
Completion record (user history) models.

A completion record is the persisted outcome of closing out an appointment:
the products consumed and their aggregate cost. Costs are Decimal; the
total is always derived from the lines, never entered by hand.
"""

import secrets
import time
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field, model_validator

# Scale of ledger values; user_history.total_cost is sized for their product
QUANTITY_PLACES = 2
COST_PLACES = 2


def new_line_id() -> str:
    """Client-side addressing id for a pending ledger line (time + random)."""
    return f"{time.time_ns():x}-{secrets.token_hex(4)}"


def decimal_places(value: Decimal) -> int:
    """Digits after the point, ignoring trailing zeros."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def ledger_total(lines: Iterable["ProductUsageLine"]) -> Decimal:
    """Sum of quantity_used x unit_cost over the given lines."""
    return sum((line.line_total for line in lines), Decimal("0"))


class ProductUsageLine(BaseModel):
    """One product consumed while servicing an appointment."""

    line_id: str = Field(default_factory=new_line_id)
    product_id: int = Field(..., ge=1)
    product_name: str
    quantity_used: Decimal = Field(..., gt=0, decimal_places=QUANTITY_PLACES)
    unit_cost: Decimal = Field(..., ge=0, decimal_places=COST_PLACES)
    notes: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity_used * self.unit_cost


class _LedgerPayload(BaseModel):
    products_used: list[ProductUsageLine] = Field(default_factory=list)
    total_cost: Decimal = Field(Decimal("0"), ge=0)
    notes: str = ""

    @model_validator(mode="after")
    def check_ledger(self) -> "_LedgerPayload":
        """Reject duplicate product lines and totals that disagree with the lines."""
        product_ids = [line.product_id for line in self.products_used]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("products_used contains the same product more than once")

        expected = ledger_total(self.products_used)
        if self.total_cost != expected:
            raise ValueError(
                f"total_cost {self.total_cost} does not match the sum of "
                f"quantity_used x unit_cost ({expected})"
            )
        return self


class CompletionRecordCreate(_LedgerPayload):
    """Data required to record the completion of an appointment."""

    appointment_id: int


class CompletionRecordUpdate(_LedgerPayload):
    """Replacement ledger and notes for an existing completion record."""


class CompletionRecord(BaseModel):
    """Full completion record as stored."""

    id: int
    appointment_id: int
    user_id: int
    company_id: int
    staff_id: int | None = None
    service_id: int
    products_used: list[ProductUsageLine] = Field(default_factory=list)
    total_cost: Decimal
    notes: str | None = None
    completion_date: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    user_name: str | None = None
    service_name: str | None = None
    staff_name: str | None = None

    model_config = {"from_attributes": True}


class CompanyCompletionStats(BaseModel):
    """Aggregate figures over a company's completion records."""

    total_appointments: int
    total_revenue: Decimal
    average_cost: Decimal
    unique_customers: int
