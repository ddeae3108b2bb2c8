"""Product catalog models (consumed read-only by the completion workflow)."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ProductStatus(str, Enum):
    """Catalog availability."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class Product(BaseModel):
    """A consumable a company can record against a completed appointment."""

    id: int
    company_id: int
    name: str
    description: str | None = None
    category: str | None = None
    unit: str | None = None
    unit_price: Decimal = Field(..., ge=0)
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE
