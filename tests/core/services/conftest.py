"""
Service test fixtures.

Services run against a mocked PostgresClient whose transactions are a
ScriptedTransaction: queries are answered by SQL-fragment rules, INSERTs echo
their own row back, and every statement is recorded for assertions.
"""

import re
from contextlib import nullcontext
from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest

from clients.postgres_client import PostgresClient
from config import AppConfig
from core.audit import AuditLogger
from core.event_bus import EventBus
from utils.timezone import now_utc


_NO_RULE = object()
_INSERT = re.compile(r"INSERT INTO (\w+) \((.*?)\) VALUES")


class ScriptedTransaction:
    """
    In-memory stand-in for clients.postgres_client.Transaction.

    on(fragment, *results) answers any statement containing ``fragment``
    (whitespace-normalized). Several results are handed out in order, the
    last one repeating. A result may be a row dict, a list of rows, None for
    no rows, or a callable taking the statement's params.
    """

    def __init__(self):
        self._rules: list[tuple[str, list]] = []
        self.statements: list[tuple[str, tuple]] = []
        self.locks: list[str] = []

    def on(self, fragment: str, *results) -> "ScriptedTransaction":
        self._rules.append((" ".join(fragment.split()), list(results)))
        return self

    def _answer(self, query: str, params):
        for fragment, results in self._rules:
            if fragment in query:
                result = results.pop(0) if len(results) > 1 else results[0]
                if callable(result):
                    result = result(params)
                if result is None:
                    return []
                return [result] if isinstance(result, dict) else list(result)
        return _NO_RULE

    def execute(self, query: str, params=None) -> list[dict]:
        query = " ".join(query.split())
        self.statements.append((query, params))

        rows = self._answer(query, params)
        if rows is not _NO_RULE:
            return rows

        match = _INSERT.search(query)
        if match:
            columns = [c.strip() for c in match.group(2).split(",")]
            return [dict(zip(columns, params))]
        return []

    def execute_single(self, query: str, params=None) -> dict | None:
        rows = self.execute(query, params)
        return rows[0] if rows else None

    def execute_returning(self, query: str, params=None) -> list[dict]:
        return self.execute(query, params)

    def lock(self, key: str) -> None:
        self.locks.append(key)

    # Assertion helpers

    def executed(self, fragment: str) -> list[tuple[str, tuple]]:
        """Statements containing ``fragment``."""
        return [(q, p) for q, p in self.statements if fragment in q]

    def inserted(self, table: str) -> list[dict]:
        """Rows INSERTed into ``table``, as column -> param dicts."""
        rows = []
        for query, params in self.statements:
            match = _INSERT.search(query)
            if match and match.group(1) == table:
                columns = [c.strip() for c in match.group(2).split(",")]
                rows.append(dict(zip(columns, params)))
        return rows


class Rows:
    """Database row dicts as RealDictCursor would return them."""

    def __init__(self, organization_id):
        self.organization_id = organization_id

    def _stamp(self, values: dict, overrides: dict) -> dict:
        now = now_utc()
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)
        values.update(overrides)
        return values

    def organization(self, **overrides) -> dict:
        return self._stamp({
            "id": self.organization_id, "name": "Acme Studio", "currency": "USD",
            "default_hourly_rate": None, "tax_rate": None,
        }, overrides)

    def client(self, **overrides) -> dict:
        return self._stamp({
            "id": uuid4(), "organization_id": self.organization_id, "name": "Globex",
            "company": "Globex Corp", "email": "ap@globex.test", "custom_hourly_rate": None,
        }, overrides)

    def project(self, client_id, pricing_type="HOURLY", **overrides) -> dict:
        return self._stamp({
            "id": uuid4(), "organization_id": self.organization_id, "client_id": client_id,
            "name": "Website Redesign", "pricing_type": pricing_type,
            "fixed_price": Decimal("5000") if pricing_type == "FIXED" else None,
            "hourly_rate": None,
        }, overrides)

    def task(self, status="TODO", **overrides) -> dict:
        return self._stamp({
            "id": uuid4(), "project_id": uuid4(), "title": "Homepage",
            "status": status, "due_date": None,
        }, overrides)

    def time_entry(self, user_id, **overrides) -> dict:
        now = now_utc()
        return self._stamp({
            "id": uuid4(), "task_id": uuid4(), "user_id": user_id,
            "started_at": now, "ended_at": None, "minutes": None,
            "billable": True, "note": None,
        }, overrides)

    def invoice(self, client_id, status="DRAFT", **overrides) -> dict:
        now = now_utc()
        return self._stamp({
            "id": uuid4(), "organization_id": self.organization_id,
            "client_id": client_id, "project_id": None,
            "invoice_no": "INV-001", "status": status, "currency": "USD",
            "subtotal": Decimal("100.00"), "tax": Decimal("0.00"), "total": Decimal("100.00"),
            "issue_date": now, "due_date": None, "notes": None,
        }, overrides)

    def payment(self, invoice_id, **overrides) -> dict:
        now = now_utc()
        return self._stamp({
            "id": uuid4(), "invoice_id": invoice_id, "amount": Decimal("100.00"),
            "method": "bank transfer", "reference": None, "notes": None, "paid_at": now,
        }, overrides)


@pytest.fixture
def tx() -> ScriptedTransaction:
    return ScriptedTransaction()


@pytest.fixture
def postgres(tx):
    """PostgresClient mock routing every call through ``tx``."""
    mock = Mock(spec=PostgresClient)
    mock.transaction.side_effect = lambda: nullcontext(tx)
    mock.execute.side_effect = tx.execute
    mock.execute_single.side_effect = tx.execute_single
    mock.execute_returning.side_effect = tx.execute_returning
    return mock


@pytest.fixture
def audit(postgres) -> AuditLogger:
    return AuditLogger(postgres)


@pytest.fixture
def event_bus():
    return Mock(spec=EventBus)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def rows(test_org_id) -> Rows:
    return Rows(test_org_id)
