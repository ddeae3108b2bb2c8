"""POST /api/actions: unified mutation endpoint."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from api.data import GatewayFactory
from api.middleware import get_actor
from core.completion_workflow import LineDraft, WorkflowMode
from core.desk import AppointmentDesk
from core.interception import AdvanceRoute, StaffAssignment
from core.lifecycle import validate_transition
from core.models import AppointmentStatus, Role

logger = logging.getLogger(__name__)

_MANAGING_ROLES = (Role.ADMIN, Role.OWNER)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(gateway_factory: GatewayFactory) -> APIRouter:
    router = APIRouter()

    handlers = {
        "appointment": AppointmentHandler,
        "completion": CompletionHandler,
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler_cls = handlers.get(body.domain)
        if handler_cls is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler_cls.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler_cls.ALLOWED_ACTIONS))}"
            )

        actor = get_actor(request)
        desk = AppointmentDesk(actor.role, actor.user_id, gateway_factory(actor))

        handler = handler_cls(desk)
        method = getattr(handler, f"_handle_{body.action}")
        result = method(body.data)

        request_id = getattr(request.state, "request_id", None)
        return success_response(result, request_id).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


def _require_id(data: dict, key: str = "id") -> int:
    if data.get(key) is None:
        raise ValueError(f"'{key}' is required")
    return int(data[key])


class AppointmentHandler:
    ALLOWED_ACTIONS = {"advance", "change_status", "assign_staff", "delete"}

    def __init__(self, desk: AppointmentDesk):
        self.desk = desk

    def _handle_advance(self, data: dict):
        """
        Select the advance action.

        A direct advance is applied here. An intercepted one changes nothing
        and returns what the follow-up needs: the staff list and default pick
        for assign_staff, or the active catalog for completion.submit.
        """
        outcome = self.desk.advance(_require_id(data))
        result = {
            "route": outcome.route.value,
            "appointment": outcome.appointment.model_dump(mode="json"),
        }

        if outcome.route == AdvanceRoute.ASSIGN_STAFF:
            staff = outcome.assignment.load_staff()
            result["staff"] = [member.model_dump(mode="json") for member in staff]
            result["default_staff_id"] = outcome.assignment.default_selection()
        elif outcome.route == AdvanceRoute.COMPLETE:
            products = outcome.workflow.load_catalog()
            result["products"] = [product.model_dump(mode="json") for product in products]

        return result

    def _handle_change_status(self, data: dict):
        appointment_id = _require_id(data)
        if not data.get("status"):
            raise ValueError("'status' is required")

        appointment = self.desk.change_status(appointment_id, AppointmentStatus(data["status"]))
        return appointment.model_dump(mode="json")

    def _handle_assign_staff(self, data: dict):
        appointment_id = _require_id(data)
        if self.desk.role not in _MANAGING_ROLES:
            raise PermissionError(f"Role {self.desk.role.value} cannot assign staff")

        assignment = StaffAssignment(self.desk.get(appointment_id), self.desk.gateway)
        assignment.load_staff()
        appointment = self.desk.confirm_assignment(assignment, data.get("staff_id"))
        return appointment.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.desk.delete(_require_id(data))
        return {"deleted": True}


class CompletionHandler:
    ALLOWED_ACTIONS = {"submit", "delete"}

    def __init__(self, desk: AppointmentDesk):
        self.desk = desk

    def _handle_submit(self, data: dict):
        """
        Create or replace an appointment's completion record.

        Lines are priced from the company's active catalog unless a unit_cost
        is given; the total is always recomputed from the lines.
        """
        appointment_id = _require_id(data, "appointment_id")
        if self.desk.role not in _MANAGING_ROLES:
            raise PermissionError(f"Role {self.desk.role.value} cannot complete appointments")

        workflow = self.desk.open_history(appointment_id, editable=True)
        status = workflow.appointment.status
        if workflow.mode == WorkflowMode.CREATE and status != AppointmentStatus.COMPLETED:
            validate_transition(status, AppointmentStatus.COMPLETED)

        workflow.load_catalog()
        workflow.clear_ledger()

        for line in data.get("products_used") or []:
            draft = LineDraft.model_validate(line)
            if draft.product_id and "unit_cost" not in line:
                draft = workflow.select_product(draft.product_id, draft)
            workflow.add_or_update_line(draft)

        workflow.set_notes(data.get("notes"))

        record = self.desk.complete(workflow)
        logger.info(
            "Completion submitted for appointment %s by user %s",
            appointment_id, self.desk.user_id,
        )
        return record.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        appointment_id = _require_id(data, "appointment_id")
        self.desk.delete_history(appointment_id)
        return {"deleted": True}
