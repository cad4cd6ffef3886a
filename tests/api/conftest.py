"""API test fixtures: the full app with mocked services and a stub token verifier."""

from unittest.mock import Mock
from uuid import uuid4

import pytest
from starlette.testclient import TestClient

from app import create_app
from auth.tokens import TokenVerifier
from auth.types import Principal
from config import AppConfig
from core.models import OrganizationMembership, Role
from core.services.invoice_service import InvoiceService
from core.services.organization_service import OrganizationService
from core.services.payment_service import PaymentService
from core.services.task_dependency_service import TaskDependencyService
from core.services.task_service import TaskService
from core.services.time_entry_service import TimeEntryService
from utils.timezone import now_utc


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def role() -> Role:
    """Role of the authenticated caller. Override in a test module to change it."""
    return Role.OWNER


@pytest.fixture
def organization_service(role, test_user_id, test_org_id):
    mock = Mock(spec=OrganizationService)
    mock.get_membership.return_value = OrganizationMembership(
        id=uuid4(),
        user_id=test_user_id,
        organization_id=test_org_id,
        role=role,
        created_at=now_utc(),
    )
    return mock


@pytest.fixture
def services(organization_service):
    return {
        "organization": organization_service,
        "invoice": Mock(spec=InvoiceService),
        "payment": Mock(spec=PaymentService),
        "time_entry": Mock(spec=TimeEntryService),
        "task": Mock(spec=TaskService),
        "task_dependency": Mock(spec=TaskDependencyService),
    }


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_verifier(test_user_id, test_org_id):
    mock = Mock(spec=TokenVerifier)
    mock.verify.return_value = Principal(user_id=test_user_id, organization_id=test_org_id)
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def app(services, mock_verifier, app_config):
    """Application as served, minus Vault and the database."""
    return create_app(services=services, verifier=mock_verifier, config=app_config)


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("authToken", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no token cookie)."""
    return TestClient(app, raise_server_exceptions=False)
