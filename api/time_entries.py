"""Time tracking endpoints under /api/time-entries."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.base import success_response
from api.dependencies import get_request_context
from core.exceptions import NotFoundError
from core.models import TimeEntryCreate, TimeEntryFilter, TimeEntryUpdate, TimerStart, TimerStop
from utils.request_context import RequestContext
from utils.timezone import minutes_between, now_utc


def create_time_entry_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/time-entries", tags=["time-entries"])

    time_svc = services["time_entry"]

    # -------------------------------------------------------------------------
    # Timer (registered before /{entry_id})
    # -------------------------------------------------------------------------

    @router.post("/start-timer", status_code=201)
    async def start_timer(body: TimerStart, ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.start_timer(ctx, body)
        return success_response(
            entry.model_dump(mode="json"), "Timer started successfully"
        ).model_dump(mode="json")

    @router.post("/stop-timer")
    async def stop_timer(body: TimerStop, ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.stop_timer(ctx, body)
        return success_response(
            entry.model_dump(mode="json"), "Timer stopped successfully"
        ).model_dump(mode="json")

    @router.get("/active-timer")
    async def active_timer(ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.active_timer(ctx)
        if entry is None:
            return success_response(None, "No active timer").model_dump(mode="json")

        data = entry.model_dump(mode="json")
        data["elapsed_minutes"] = minutes_between(entry.started_at, now_utc())
        return success_response(data).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    @router.post("", status_code=201)
    async def create_time_entry(body: TimeEntryCreate, ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.create(ctx, body)
        return success_response(
            entry.model_dump(mode="json"), "Time entry created successfully"
        ).model_dump(mode="json")

    @router.get("")
    async def list_time_entries(
        ctx: RequestContext = Depends(get_request_context),
        task_id: UUID | None = Query(None),
        project_id: UUID | None = Query(None),
        user_id: UUID | None = Query(None),
        start_date: datetime | None = Query(None),
        end_date: datetime | None = Query(None),
        billable: bool | None = Query(None),
    ):
        filters = TimeEntryFilter(
            task_id=task_id,
            project_id=project_id,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            billable=billable,
        )
        result = time_svc.list(ctx, filters)
        return success_response({
            "entries": [e.model_dump(mode="json") for e in result.entries],
            "totals": {
                "total_minutes": result.total_minutes,
                "billable_minutes": result.billable_minutes,
                "total_hours": result.total_hours,
                "billable_hours": result.billable_hours,
                "count": len(result.entries),
            },
        }).model_dump(mode="json")

    @router.get("/{entry_id}")
    async def get_time_entry(entry_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.get_by_id(ctx, entry_id)
        if entry is None:
            raise NotFoundError(f"Time entry {entry_id} not found")
        return success_response(entry.model_dump(mode="json")).model_dump(mode="json")

    @router.put("/{entry_id}")
    async def update_time_entry(
        entry_id: UUID, body: TimeEntryUpdate, ctx: RequestContext = Depends(get_request_context)
    ):
        entry = time_svc.update(ctx, entry_id, body)
        return success_response(
            entry.model_dump(mode="json"), "Time entry updated successfully"
        ).model_dump(mode="json")

    @router.delete("/{entry_id}")
    async def delete_time_entry(entry_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        entry = time_svc.delete(ctx, entry_id)
        return success_response(
            {"id": str(entry.id)}, "Time entry deleted successfully"
        ).model_dump(mode="json")

    return router
