"""
Application assembly.

Wires clients, services, event handlers and routers into one FastAPI app.
Run with ``uvicorn app:create_app --factory``.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.base import success_response
from api.errors import register_error_handlers
from api.invoices import create_invoice_router
from api.middleware import RequestIDMiddleware
from api.payments import create_payment_router
from api.tasks import create_task_router
from api.time_entries import create_time_entry_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.tokens import TokenVerifier
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url, get_jwt_secret
from config import AppConfig
from core.audit import AuditLogger
from core.event_bus import EventBus
from core.events import TaskStatusChanged
from core.handlers.task_status_handler import handle_task_status_changed
from core.services.invoice_service import InvoiceService
from core.services.organization_service import OrganizationService
from core.services.payment_service import PaymentService
from core.services.task_dependency_service import TaskDependencyService
from core.services.task_service import TaskService
from core.services.time_entry_service import TimeEntryService

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once. LOG_LEVEL env var overrides the default INFO."""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_services(postgres: PostgresClient, config: AppConfig, event_bus: EventBus) -> dict:
    """Construct every service and subscribe event handlers."""
    audit = AuditLogger(postgres)
    dependency_service = TaskDependencyService(postgres, audit, event_bus)

    services = {
        "organization": OrganizationService(postgres),
        "invoice": InvoiceService(postgres, audit, config),
        "payment": PaymentService(postgres, audit),
        "time_entry": TimeEntryService(postgres, audit),
        "task": TaskService(postgres, audit, event_bus),
        "task_dependency": dependency_service,
    }

    event_bus.subscribe(TaskStatusChanged, handle_task_status_changed(dependency_service))
    return services


def create_app(
    services: dict | None = None,
    verifier: TokenVerifier | None = None,
    config: AppConfig | None = None,
    auth_config: AuthConfig | None = None,
) -> FastAPI:
    """
    Build the application.

    With no arguments, secrets come from Vault and config from the
    environment. Tests pass prepared services and a verifier.
    """
    configure_logging()
    config = config or AppConfig.from_env()
    auth_config = auth_config or AuthConfig()

    postgres = None
    if services is None:
        postgres = PostgresClient(get_database_url())
        services = build_services(postgres, config, EventBus())
    if verifier is None:
        verifier = TokenVerifier(get_jwt_secret(), auth_config.jwt_algorithm)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if postgres is not None:
            postgres.close()

    app = FastAPI(title="OrgDesk", debug=False, lifespan=lifespan)
    app.state.services = services
    app.state.config = config

    app.add_middleware(AuthMiddleware, verifier=verifier, config=auth_config)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app, debug=config.debug)

    app.include_router(create_invoice_router(services), prefix="/api")
    app.include_router(create_payment_router(services), prefix="/api")
    app.include_router(create_time_entry_router(services), prefix="/api")
    app.include_router(create_task_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    logger.info("Application created (debug=%s)", config.debug)
    return app
