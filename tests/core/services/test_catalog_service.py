"""Tests for ProductService and StaffService."""

from decimal import Decimal
from unittest.mock import Mock

import pytest

from clients.postgres_client import PostgresClient
from core.models import ProductStatus, StaffStatus
from core.services.catalog_service import ProductService, StaffService


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


class TestProductService:

    def test_list_active_filters_company_and_status(self, postgres):
        postgres.execute.return_value = [
            {"id": 1, "company_id": 1, "name": "Shampoo", "unit_price": Decimal("12.50"), "status": "active"},
        ]

        products = ProductService(postgres).list_active(1)

        assert products[0].unit_price == Decimal("12.50")
        assert postgres.execute.call_args[0][1] == (1, ProductStatus.ACTIVE)

    def test_get_by_id_missing(self, postgres):
        postgres.execute_single.return_value = None

        assert ProductService(postgres).get_by_id(9) is None

    def test_ids_owned_by(self, postgres):
        postgres.execute.return_value = [{"id": 1}, {"id": 3}]

        owned = ProductService(postgres).ids_owned_by(1, [1, 2, 3])

        assert owned == {1, 3}
        assert postgres.execute.call_args[0][1] == (1, [1, 2, 3])

    def test_ids_owned_by_empty_skips_query(self, postgres):
        assert ProductService(postgres).ids_owned_by(1, []) == set()
        postgres.execute.assert_not_called()


class TestStaffService:

    def test_list_active(self, postgres):
        postgres.execute.return_value = [
            {"id": 7, "company_id": 1, "user_id": 107, "name": "Alex", "status": "active"},
        ]

        staff = StaffService(postgres).list_active(1)

        assert staff[0].name == "Alex"
        assert postgres.execute.call_args[0][1] == (1, StaffStatus.ACTIVE)
