"""Domain object factories shared by core tests. In-memory only."""

from decimal import Decimal
from uuid import uuid4

import pytest

from core.models import (
    Client,
    Organization,
    PricingType,
    Project,
    Task,
    TaskStatus,
)
from utils.timezone import now_utc


@pytest.fixture
def task_factory():
    def make(status: TaskStatus = TaskStatus.TODO, **overrides) -> Task:
        now = now_utc()
        values = dict(
            id=uuid4(), project_id=uuid4(), title="Write copy",
            status=status, due_date=None, created_at=now, updated_at=now,
        )
        values.update(overrides)
        return Task(**values)
    return make


@pytest.fixture
def organization_factory():
    def make(**overrides) -> Organization:
        now = now_utc()
        values = dict(
            id=uuid4(), name="Acme Studio", currency="USD",
            default_hourly_rate=None, tax_rate=None,
            created_at=now, updated_at=now,
        )
        values.update(overrides)
        return Organization(**values)
    return make


@pytest.fixture
def client_factory():
    def make(**overrides) -> Client:
        now = now_utc()
        values = dict(
            id=uuid4(), organization_id=uuid4(), name="Globex",
            company="Globex Corp", email=None, custom_hourly_rate=None,
            created_at=now, updated_at=now,
        )
        values.update(overrides)
        return Client(**values)
    return make


@pytest.fixture
def project_factory():
    def make(pricing_type: PricingType = PricingType.HOURLY, **overrides) -> Project:
        now = now_utc()
        values = dict(
            id=uuid4(), organization_id=uuid4(), client_id=uuid4(),
            name="Website Redesign", pricing_type=pricing_type,
            fixed_price=Decimal("5000") if pricing_type == PricingType.FIXED else None,
            hourly_rate=None, created_at=now, updated_at=now,
        )
        values.update(overrides)
        return Project(**values)
    return make
