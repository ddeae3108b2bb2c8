"""GET /api/data: unified read endpoint."""

from typing import Callable

from fastapi import APIRouter, Query, Request

from api.base import success_response
from api.middleware import get_actor
from core.config import BackOfficeConfig
from core.desk import AppointmentDesk
from core.exceptions import CompletionRecordNotFound
from core.lifecycle import STATUS_DISPLAY_NAMES
from core.gateway import BackOfficeGateway
from core.models import Role
from core.policy import Column
from utils.user_context import Actor


VALID_TYPES = {
    "appointments", "products", "completion_records",
    "company_completions", "completion_stats", "user_completions",
}

_REPORTING_ROLES = (Role.ADMIN, Role.OWNER)

GatewayFactory = Callable[[Actor], BackOfficeGateway]


def create_data_router(gateway_factory: GatewayFactory, config: BackOfficeConfig | None = None) -> APIRouter:
    router = APIRouter()
    config = config or BackOfficeConfig()

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        company_id: int | None = Query(None),
        appointment_id: int | None = Query(None),
        user_id: int | None = Query(None),
        offset: int = Query(0, ge=0),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        actor = get_actor(request)
        gateway = gateway_factory(actor)
        request_id = getattr(request.state, "request_id", None)

        if type == "appointments":
            data = _handle_appointments(gateway, actor, config.appointment_list_limit)
        elif type == "products":
            data = _handle_products(gateway, company_id)
        elif type == "completion_records":
            data = _handle_completion_records(gateway, actor, appointment_id)
        elif type == "company_completions":
            data = _handle_company_completions(gateway, actor, company_id, config.completion_list_limit, offset)
        elif type == "completion_stats":
            data = _handle_completion_stats(gateway, actor, company_id)
        else:
            data = _handle_user_completions(gateway, actor, user_id, config.completion_list_limit, offset)

        return success_response(data, request_id).model_dump(mode="json")

    return router


def _handle_appointments(gateway, actor: Actor, limit: int) -> dict:
    desk = AppointmentDesk(actor.role, actor.user_id, gateway)
    appointments = desk.refresh()[:limit]

    rows = []
    for appointment in appointments:
        row = appointment.model_dump(mode="json")
        row["status_label"] = STATUS_DISPLAY_NAMES[appointment.status]
        row["actions"] = [action.model_dump(mode="json") for action in desk.actions_for(appointment.id)]
        rows.append(row)

    visible = desk.columns()
    return {
        "appointments": rows,
        "columns": [column.value for column in Column if column in visible],
        "headers": desk.headers(),
    }


def _handle_products(gateway, company_id):
    if company_id is None:
        raise ValueError("'products' type requires 'company_id' parameter")

    products = gateway.list_active_products(company_id)
    return [p.model_dump(mode="json") for p in products]


def _handle_completion_records(gateway, actor: Actor, appointment_id):
    _require_reporting_role(actor, "completion_records")
    if appointment_id is None:
        raise ValueError("'completion_records' type requires 'appointment_id' parameter")

    try:
        record = gateway.get_completion_record_by_appointment(appointment_id)
    except CompletionRecordNotFound:
        return None
    return record.model_dump(mode="json")


def _require_reporting_role(actor: Actor, type: str) -> None:
    if actor.role not in _REPORTING_ROLES:
        raise PermissionError(f"Role {actor.role.value} cannot read '{type}'")


def _handle_company_completions(gateway, actor: Actor, company_id, limit: int, offset: int):
    _require_reporting_role(actor, "company_completions")
    if company_id is None:
        raise ValueError("'company_completions' type requires 'company_id' parameter")

    records = gateway.list_company_completions(company_id, limit=limit, offset=offset)
    return {
        "records": [r.model_dump(mode="json") for r in records],
        "limit": limit,
        "offset": offset,
    }


def _handle_completion_stats(gateway, actor: Actor, company_id):
    _require_reporting_role(actor, "completion_stats")
    if company_id is None:
        raise ValueError("'completion_stats' type requires 'company_id' parameter")

    return gateway.company_completion_stats(company_id).model_dump(mode="json")


def _handle_user_completions(gateway, actor: Actor, user_id, limit: int, offset: int):
    """A customer's own history; admins and owners may read anyone's."""
    user_id = actor.user_id if user_id is None else user_id
    if user_id != actor.user_id:
        _require_reporting_role(actor, "user_completions")

    records = gateway.list_user_completions(user_id, limit=limit, offset=offset)
    return {
        "records": [r.model_dump(mode="json") for r in records],
        "limit": limit,
        "offset": offset,
    }
