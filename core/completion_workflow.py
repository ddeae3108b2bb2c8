"""
Completion workflow for closing out an appointment.

Holds the in-progress product-usage ledger and notes for one appointment,
keeps the total derived from the ledger, and turns the ledger into a create
or update request against the persistence gateway.

Modes:
    CREATE: no completion record yet; submit creates one
    VIEW:   record exists, read-only
    EDIT:   record exists; submit replaces its ledger and notes

Nothing is persisted until submit(). A failed submit leaves the ledger and
notes exactly as they were so the caller can retry; closing without
submitting (reset) discards them and restores the saved record, if any.
"""

import logging
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

from core.exceptions import LedgerValidationError, PersistFailure, ReadOnlyWorkflow
from core.gateway import BackOfficeGateway
from core.models import (
    Appointment,
    AppointmentStatus,
    CompletionRecord,
    CompletionRecordCreate,
    CompletionRecordUpdate,
    Product,
    COST_PLACES,
    QUANTITY_PLACES,
    ProductUsageLine,
    decimal_places,
    ledger_total,
    new_line_id,
)

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown Product"


class WorkflowMode(str, Enum):
    CREATE = "create"
    VIEW = "view"
    EDIT = "edit"


class LineDraft(BaseModel):
    """
    Line form state before validation.

    Values here may be invalid (zero quantity, missing product); they are
    only checked when the draft is added to the ledger.
    """

    product_id: int | None = None
    product_name: str = ""
    quantity_used: Decimal = Decimal("1")
    unit_cost: Decimal = Decimal("0")
    notes: str | None = None


class CompletionWorkflow:
    """Ledger editor and submitter for a single appointment's completion record."""

    def __init__(
        self,
        appointment: Appointment,
        gateway: BackOfficeGateway,
        mode: WorkflowMode = WorkflowMode.CREATE,
        existing: CompletionRecord | None = None,
        catalog: list[Product] | None = None,
    ):
        if mode == WorkflowMode.CREATE and existing is not None:
            raise ValueError("Create mode cannot start from an existing completion record")
        if mode != WorkflowMode.CREATE and existing is None:
            raise ValueError(f"{mode.value} mode requires an existing completion record")

        self.appointment = appointment
        self.gateway = gateway
        self.mode = mode
        self.record = existing
        self._catalog = list(catalog) if catalog is not None else None
        self._lines: list[ProductUsageLine] = []
        self.notes = ""

        if existing is not None:
            self._load_record(existing)

    def _load_record(self, record: CompletionRecord) -> None:
        self._lines = [line.model_copy() for line in record.products_used]
        self.notes = record.notes or ""

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    @property
    def catalog(self) -> list[Product]:
        return list(self._catalog or [])

    def load_catalog(self) -> list[Product]:
        """Fetch the company's active products from the gateway."""
        self._catalog = self.gateway.list_active_products(self.appointment.company_id)
        return self.catalog

    def available_products(self) -> list[Product]:
        """Active catalog products not already in the ledger."""
        in_ledger = {line.product_id for line in self._lines}
        return [
            product for product in self._catalog or []
            if product.is_active and product.id not in in_ledger
        ]

    def _find_product(self, product_id: int) -> Product | None:
        for product in self._catalog or []:
            if product.id == product_id:
                return product
        return None

    def select_product(self, product_id: int, draft: LineDraft | None = None) -> LineDraft:
        """
        Choose a product for the line form.

        Fills unit_cost and product_name from the catalog entry. The returned
        draft stays editable; later edits to it are kept as typed.
        """
        product = self._find_product(product_id)
        if product is None:
            raise LedgerValidationError(f"Product {product_id} is not in the catalog")

        base = draft or LineDraft()
        return base.model_copy(update={
            "product_id": product.id,
            "product_name": product.name,
            "unit_cost": product.unit_price,
        })

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> tuple[ProductUsageLine, ...]:
        return tuple(self._lines)

    @property
    def is_read_only(self) -> bool:
        return self.mode == WorkflowMode.VIEW

    def _require_mutable(self) -> None:
        if self.is_read_only:
            raise ReadOnlyWorkflow(
                f"Completion record for appointment {self.appointment.id} is open read-only"
            )

    def add_or_update_line(
        self,
        line: LineDraft | ProductUsageLine,
        index: int | None = None,
    ) -> ProductUsageLine:
        """
        Append a line, or replace the line at index in place.

        Args:
            line: Line form values
            index: Ledger position to replace; None appends

        Returns:
            The line as stored in the ledger

        Raises:
            LedgerValidationError: Missing product, quantity <= 0, unit cost < 0,
                too many decimal places, or a product that is already in
                another ledger line
            IndexError: index does not address an existing line
        """
        self._require_mutable()

        if index is not None and not 0 <= index < len(self._lines):
            raise IndexError(f"No ledger line at index {index}")

        if not line.product_id:
            raise LedgerValidationError("Product is required")
        if line.quantity_used is None or line.quantity_used <= 0:
            raise LedgerValidationError("Quantity must be greater than 0")
        if line.unit_cost is None or line.unit_cost < 0:
            raise LedgerValidationError("Unit cost must be 0 or greater")
        if decimal_places(line.quantity_used) > QUANTITY_PLACES:
            raise LedgerValidationError(f"Quantity allows at most {QUANTITY_PLACES} decimal places")
        if decimal_places(line.unit_cost) > COST_PLACES:
            raise LedgerValidationError(f"Unit cost allows at most {COST_PLACES} decimal places")

        for position, existing in enumerate(self._lines):
            if position != index and existing.product_id == line.product_id:
                raise LedgerValidationError(
                    f"Product {line.product_id} is already in the ledger; remove it first"
                )

        replacing_same_product = (
            index is not None and self._lines[index].product_id == line.product_id
        )
        if self._catalog is not None and not replacing_same_product:
            selectable = {product.id for product in self.available_products()}
            if line.product_id not in selectable:
                raise LedgerValidationError(f"Product {line.product_id} is not available")

        catalog_entry = self._find_product(line.product_id)
        product_name = line.product_name or (
            catalog_entry.name if catalog_entry else UNKNOWN_PRODUCT_NAME
        )

        stored = ProductUsageLine(
            line_id=self._lines[index].line_id if index is not None else new_line_id(),
            product_id=line.product_id,
            product_name=product_name,
            quantity_used=line.quantity_used,
            unit_cost=line.unit_cost,
            notes=line.notes or None,
        )

        if index is None:
            self._lines.append(stored)
        else:
            self._lines[index] = stored

        logger.debug(
            "Ledger for appointment %s: %d line(s), total %s",
            self.appointment.id, len(self._lines), self.compute_total(),
        )
        return stored

    def remove_line(self, index: int) -> ProductUsageLine:
        """Remove the line at index. No confirmation at this layer."""
        self._require_mutable()
        if not 0 <= index < len(self._lines):
            raise IndexError(f"No ledger line at index {index}")
        return self._lines.pop(index)

    def clear_ledger(self) -> None:
        """Drop every line so the ledger can be rebuilt from scratch."""
        self._require_mutable()
        self._lines = []

    def compute_total(self) -> Decimal:
        """Sum of quantity_used x unit_cost over the current ledger."""
        return ledger_total(self._lines)

    def set_notes(self, notes: str | None) -> None:
        self._require_mutable()
        self.notes = notes or ""

    def begin_edit(self) -> None:
        """Switch a read-only view of an existing record into edit mode."""
        if self.mode == WorkflowMode.VIEW:
            self.mode = WorkflowMode.EDIT

    def reset(self) -> None:
        """
        Discard unsaved ledger and notes edits.

        With a saved record the form goes back to that record; without one it
        is emptied.
        """
        if self.record is not None:
            self._load_record(self.record)
        else:
            self._lines = []
            self.notes = ""

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def build_request(self) -> CompletionRecordCreate | CompletionRecordUpdate:
        """The create or update payload for the current ledger."""
        products_used = [line.model_copy() for line in self._lines]
        total_cost = self.compute_total()

        if self.mode == WorkflowMode.CREATE:
            return CompletionRecordCreate(
                appointment_id=self.appointment.id,
                products_used=products_used,
                total_cost=total_cost,
                notes=self.notes,
            )
        return CompletionRecordUpdate(
            products_used=products_used,
            total_cost=total_cost,
            notes=self.notes,
        )

    def submit(self) -> CompletionRecord:
        """
        Persist the ledger as a completion record.

        Creates the record in CREATE mode and replaces it in EDIT mode. On
        success the appointment is reported as COMPLETED without re-fetching
        and the form shows the saved record.

        Raises:
            ReadOnlyWorkflow: Workflow is in VIEW mode
            PersistFailure: Gateway rejected the request; ledger and notes are kept
        """
        self._require_mutable()
        request = self.build_request()

        try:
            if isinstance(request, CompletionRecordCreate):
                record = self.gateway.create_completion_record(request)
            else:
                record = self.gateway.update_completion_record(self.record.id, request)
        except PersistFailure as exc:
            logger.warning(
                "Completion submit failed for appointment %s (%s): %s",
                self.appointment.id, self.mode.value, exc,
            )
            raise

        logger.info(
            "Completion record %s saved for appointment %s (%d line(s), total %s)",
            record.id, self.appointment.id, len(request.products_used), request.total_cost,
        )

        self.record = record
        self.appointment = self.appointment.with_status(AppointmentStatus.COMPLETED)
        self.mode = WorkflowMode.VIEW
        self.reset()
        return record
