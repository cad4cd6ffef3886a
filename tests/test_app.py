"""Tests for application assembly."""

from unittest.mock import Mock
from uuid import uuid4

from starlette.testclient import TestClient

from app import build_services, create_app
from auth.tokens import TokenVerifier
from clients.postgres_client import PostgresClient
from config import AppConfig
from core.event_bus import EventBus
from core.events import TaskStatusChanged
from core.models import Task, TaskStatus
from utils.timezone import now_utc


class TestBuildServices:

    def test_every_router_dependency_present(self):
        services = build_services(Mock(spec=PostgresClient), AppConfig(), EventBus())

        assert set(services) == {
            "organization", "invoice", "payment", "time_entry", "task", "task_dependency",
        }

    def test_done_task_refreshes_dependents(self, owner_ctx):
        postgres = Mock(spec=PostgresClient)
        postgres.execute.return_value = []
        bus = EventBus()
        build_services(postgres, AppConfig(), bus)

        now = now_utc()
        task = Task(id=uuid4(), project_id=uuid4(), title="Launch", status=TaskStatus.DONE,
                    created_at=now, updated_at=now)
        bus.publish(TaskStatusChanged.create(owner_ctx, task, TaskStatus.IN_PROGRESS))

        query, params = postgres.execute.call_args.args
        assert "WHERE td.depends_on_task_id = %s" in query
        assert params == (task.id, owner_ctx.organization_id)


class TestCreateApp:

    def test_routes_mounted_under_api(self):
        app = create_app(services={
            "organization": Mock(), "invoice": Mock(), "payment": Mock(),
            "time_entry": Mock(), "task": Mock(), "task_dependency": Mock(),
        }, verifier=Mock(spec=TokenVerifier), config=AppConfig())

        paths = {route.path for route in app.routes}

        assert "/api/invoices/{invoice_id}/mark-paid" in paths
        assert "/api/time-entries/active-timer" in paths
        assert "/api/task-dependencies/{dependency_id}" in paths
        assert "/health" in paths

    def test_unknown_route_is_enveloped_404(self):
        verifier = Mock(spec=TokenVerifier)
        app = create_app(services={"organization": Mock(), "invoice": Mock(), "payment": Mock(),
                                   "time_entry": Mock(), "task": Mock(), "task_dependency": Mock()},
                         verifier=verifier, config=AppConfig())
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get(f"/api/nothing/{uuid4()}", headers={"Authorization": "Bearer t"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
