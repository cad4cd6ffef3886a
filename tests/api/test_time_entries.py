"""Tests for /api/time-entries routes."""

from datetime import timedelta
from uuid import uuid4

from core.exceptions import ConflictError, NotFoundError
from core.models import TimeEntry, TimeEntryList
from utils.timezone import now_utc


def make_entry(user_id, **overrides) -> TimeEntry:
    now = now_utc()
    values = dict(
        id=uuid4(), task_id=uuid4(), user_id=user_id, started_at=now, ended_at=None,
        minutes=None, billable=True, note=None, created_at=now, updated_at=now,
    )
    values.update(overrides)
    return TimeEntry(**values)


class TestTimer:

    def test_start(self, client, services, test_user_id):
        entry = make_entry(test_user_id)
        services["time_entry"].start_timer.return_value = entry

        response = client.post("/api/time-entries/start-timer", json={"task_id": str(entry.task_id)})

        assert response.status_code == 201
        assert response.json()["data"]["ended_at"] is None

    def test_start_twice_is_409(self, client, services):
        services["time_entry"].start_timer.side_effect = ConflictError(
            "You already have an active timer for this task"
        )

        response = client.post("/api/time-entries/start-timer", json={"task_id": str(uuid4())})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    def test_stop(self, client, services, test_user_id):
        start = now_utc() - timedelta(minutes=30)
        entry = make_entry(test_user_id, started_at=start, ended_at=start + timedelta(minutes=30), minutes=30)
        services["time_entry"].stop_timer.return_value = entry

        response = client.post("/api/time-entries/stop-timer", json={"time_entry_id": str(entry.id)})

        assert response.status_code == 200
        assert response.json()["data"]["minutes"] == 30

    def test_stop_without_timer_is_404(self, client, services):
        services["time_entry"].stop_timer.side_effect = NotFoundError("Active timer not found")

        response = client.post("/api/time-entries/stop-timer", json={"time_entry_id": str(uuid4())})

        assert response.status_code == 404

    def test_active_timer_reports_elapsed(self, client, services, test_user_id):
        services["time_entry"].active_timer.return_value = make_entry(
            test_user_id, started_at=now_utc() - timedelta(minutes=20)
        )

        response = client.get("/api/time-entries/active-timer")

        assert response.status_code == 200
        assert response.json()["data"]["elapsed_minutes"] == 20

    def test_no_active_timer(self, client, services):
        services["time_entry"].active_timer.return_value = None

        response = client.get("/api/time-entries/active-timer")

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert response.json()["message"] == "No active timer"


class TestEntries:

    def test_create_rejects_inverted_interval(self, client, services):
        start = now_utc()
        response = client.post("/api/time-entries", json={
            "task_id": str(uuid4()),
            "started_at": start.isoformat(),
            "ended_at": (start - timedelta(hours=1)).isoformat(),
        })

        assert response.status_code == 422
        services["time_entry"].create.assert_not_called()

    def test_list_with_totals(self, client, services, test_user_id):
        services["time_entry"].list.return_value = TimeEntryList(
            entries=[
                make_entry(test_user_id, ended_at=now_utc(), minutes=90, billable=True),
                make_entry(test_user_id, ended_at=now_utc(), minutes=30, billable=False),
            ],
            total_minutes=120,
            billable_minutes=90,
        )

        response = client.get("/api/time-entries", params={"billable": "true"})

        assert response.status_code == 200
        totals = response.json()["data"]["totals"]
        assert totals == {
            "total_minutes": 120,
            "billable_minutes": 90,
            "total_hours": 2.0,
            "billable_hours": 1.5,
            "count": 2,
        }
        _, filters = services["time_entry"].list.call_args.args
        assert filters.billable is True

    def test_get_missing_is_404(self, client, services):
        services["time_entry"].get_by_id.return_value = None
        assert client.get(f"/api/time-entries/{uuid4()}").status_code == 404

    def test_delete(self, client, services, test_user_id):
        entry = make_entry(test_user_id)
        services["time_entry"].delete.return_value = entry

        response = client.delete(f"/api/time-entries/{entry.id}")

        assert response.status_code == 200
        assert response.json()["data"] == {"id": str(entry.id)}

    def test_update_rejects_null_start(self, client, services):
        response = client.put(f"/api/time-entries/{uuid4()}", json={"started_at": None})

        assert response.status_code == 422
        services["time_entry"].update.assert_not_called()

    def test_update_with_null_end_reaches_service(self, client, services, test_user_id):
        entry = make_entry(test_user_id)
        services["time_entry"].update.return_value = entry

        response = client.put(f"/api/time-entries/{entry.id}", json={"ended_at": None})

        assert response.status_code == 200
        _, _, data = services["time_entry"].update.call_args.args
        assert data.model_dump(exclude_unset=True) == {"ended_at": None}
