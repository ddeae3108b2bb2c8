"""Application entry point: wires services, gateway and routers into a FastAPI app."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router, GatewayFactory
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, RequestIDMiddleware
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.audit import AuditLogger
from core.config import BackOfficeConfig
from core.event_bus import EventBus
from core.gateway import ServiceGateway
from core.services.appointment_service import AppointmentService
from core.services.catalog_service import ProductService, StaffService
from core.services.completion_record_service import CompletionRecordService
from utils.user_context import Actor

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, event_bus: EventBus | None = None) -> dict:
    audit = AuditLogger(postgres)
    products = ProductService(postgres)
    return {
        "appointment": AppointmentService(postgres, audit, event_bus),
        "product": products,
        "staff": StaffService(postgres),
        "completion": CompletionRecordService(postgres, audit, products, event_bus),
    }


def service_gateway_factory(services: dict, config: BackOfficeConfig) -> GatewayFactory:
    def factory(actor: Actor) -> ServiceGateway:
        return ServiceGateway(
            services,
            actor_id=actor.user_id,
            actor_role=actor.role,
            list_limit=config.appointment_list_limit,
        )
    return factory


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Back office shutting down, closing database pools")
    PostgresClient.close_all_pools()


def create_app(
    config: BackOfficeConfig | None = None,
    gateway_factory: GatewayFactory | None = None,
) -> FastAPI:
    """
    Build the back-office app.

    Without a gateway_factory, connects to Postgres using the Vault-held
    database URL and serves through the Postgres services.
    """
    config = config or BackOfficeConfig()

    if gateway_factory is None:
        postgres = PostgresClient(
            get_database_url(),
            min_connections=config.db_min_connections,
            max_connections=config.db_max_connections,
        )
        gateway_factory = service_gateway_factory(build_services(postgres, EventBus()), config)

    app = FastAPI(title="Appointment Back Office", lifespan=lifespan)
    app.add_middleware(ActorMiddleware, role_header=config.role_header, user_header=config.user_header)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(gateway_factory, config), prefix="/api")
    app.include_router(create_actions_router(gateway_factory), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info("Back office app created")
    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
