"""Staff member model used by the assignment step."""

from enum import Enum

from pydantic import BaseModel


class StaffStatus(str, Enum):
    """Employment status of a staff record."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class StaffMember(BaseModel):
    """A company's staff record."""

    id: int
    company_id: int
    user_id: int
    name: str
    email: str | None = None
    position: str | None = None
    status: StaffStatus = StaffStatus.ACTIVE

    model_config = {"from_attributes": True}
