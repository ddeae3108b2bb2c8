"""Shared test fixtures for the back-office test suite."""

import pytest
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.models import AppointmentStatus, ProductStatus, StaffStatus
from factories import FakeGateway, make_appointment, make_product, make_staff
from utils.user_context import clear_current_actor


# =============================================================================
# ACTOR CONTEXT
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor()
    yield
    clear_current_actor()


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def catalog():
    return [
        make_product(1, "Shampoo", "12.50"),
        make_product(2, "Conditioner", "0.50"),
        make_product(3, "Hair Dye", "30.00"),
        make_product(4, "Old Gel", "5.00", status=ProductStatus.DISCONTINUED),
    ]


@pytest.fixture
def staff_members():
    return [make_staff(7, "Alex"), make_staff(8, "Blair"), make_staff(9, "Casey", StaffStatus.INACTIVE)]


@pytest.fixture
def gateway(catalog, staff_members):
    return FakeGateway(
        appointments=[
            make_appointment(1, AppointmentStatus.PENDING, staff_preferences=[9, 8]),
            make_appointment(2, AppointmentStatus.CONFIRMED, staff_id=7),
            make_appointment(3, AppointmentStatus.COMPLETED, staff_id=7),
            make_appointment(4, AppointmentStatus.CANCELLED),
        ],
        products=catalog,
        staff=staff_members,
    )
