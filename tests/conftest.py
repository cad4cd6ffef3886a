"""Shared test fixtures for the test suite. No live database or Vault needed."""

import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module.clear_secret_cache()

from core.models import Role
from utils.request_context import RequestContext


# =============================================================================
# TEST IDENTITY CONSTANTS
# =============================================================================

TEST_ORG_ID = UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_ORG_ID = UUID("00000000-0000-0000-0000-0000000000a2")

# Primary test user - organization owner
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - plain member, for visibility tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")


def make_context(role: Role = Role.OWNER, user_id: UUID = TEST_USER_ID,
                 organization_id: UUID = TEST_ORG_ID) -> RequestContext:
    return RequestContext(user_id=user_id, organization_id=organization_id, role=role)


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture
def test_user_id() -> UUID:
    return TEST_USER_ID


@pytest.fixture
def test_org_id() -> UUID:
    return TEST_ORG_ID


@pytest.fixture
def owner_ctx() -> RequestContext:
    """OWNER of the test organization."""
    return make_context(Role.OWNER)


@pytest.fixture
def manager_ctx() -> RequestContext:
    return make_context(Role.MANAGER)


@pytest.fixture
def member_ctx() -> RequestContext:
    """Plain MEMBER, the secondary test user."""
    return make_context(Role.MEMBER, user_id=TEST_USER_B_ID)


@pytest.fixture
def client_ctx() -> RequestContext:
    """CLIENT-role membership: read-only guest."""
    return make_context(Role.CLIENT, user_id=TEST_USER_B_ID)


@pytest.fixture
def context_factory():
    """Build a RequestContext for any role/user/organization."""
    return make_context
