"""Read-only product and staff lookups used by the completion and assignment steps."""

import logging

from clients.postgres_client import PostgresClient
from core.models import Product, ProductStatus, StaffMember, StaffStatus

logger = logging.getLogger(__name__)


class ProductService:
    """Service for product catalog reads."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_by_id(self, product_id: int) -> Product | None:
        row = self.postgres.execute_single(
            "SELECT * FROM products WHERE id = %s",
            (product_id,)
        )

        if row is None:
            return None

        return Product.model_validate(row)

    def list_active(self, company_id: int) -> list[Product]:
        """
        List a company's active products.

        Args:
            company_id: Company id

        Returns:
            Active products ordered by name
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM products
            WHERE company_id = %s AND status = %s
            ORDER BY name ASC
            """,
            (company_id, ProductStatus.ACTIVE)
        )

        return [Product.model_validate(row) for row in rows]

    def ids_owned_by(self, company_id: int, product_ids: list[int]) -> set[int]:
        """Subset of product_ids that belong to the company."""
        if not product_ids:
            return set()

        rows = self.postgres.execute(
            "SELECT id FROM products WHERE company_id = %s AND id = ANY(%s)",
            (company_id, list(product_ids))
        )
        return {row["id"] for row in rows}


class StaffService:
    """Service for staff reads."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def list_active(self, company_id: int) -> list[StaffMember]:
        """Active staff of a company, ordered by name."""
        rows = self.postgres.execute(
            """
            SELECT * FROM staff
            WHERE company_id = %s AND status = %s
            ORDER BY name ASC
            """,
            (company_id, StaffStatus.ACTIVE)
        )

        return [StaffMember.model_validate(row) for row in rows]
