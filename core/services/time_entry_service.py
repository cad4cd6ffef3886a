"""
Time entry service.

Members track time on tasks of their organization's projects, either with a
start/stop timer or by logging a finished interval. Members see and edit only
their own entries; OWNER, ADMIN and MANAGER act on everyone's.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from core.models import (
    TimeEntry,
    TimeEntryCreate,
    TimeEntryFilter,
    TimeEntryList,
    TimeEntryUpdate,
    TimerStart,
    TimerStop,
)
from core.permissions import Action, is_allowed, require
from core.services.task_dependency_service import get_task_in_org
from utils.request_context import RequestContext
from utils.timezone import minutes_between, now_utc

logger = logging.getLogger(__name__)


_ENTRY_IN_ORG = """
    SELECT te.* FROM time_entries te
    JOIN tasks t ON t.id = te.task_id
    JOIN projects p ON p.id = t.project_id
    WHERE te.id = %s AND p.organization_id = %s
"""


class TimeEntryService:
    """Service for time tracking operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def _require_task(self, tx: Transaction, ctx: RequestContext, task_id: UUID) -> None:
        if get_task_in_org(tx, ctx, task_id) is None:
            raise NotFoundError(f"Task {task_id} not found")

    def _visible_entry(self, db, ctx: RequestContext, entry_id: UUID) -> TimeEntry | None:
        """Entry in the organization that the caller may see."""
        row = db.execute_single(_ENTRY_IN_ORG, (entry_id, ctx.organization_id))
        if row is None:
            return None

        entry = TimeEntry.model_validate(row)
        if entry.user_id != ctx.user_id and not is_allowed(ctx.role, Action.TIME_MANAGE_ALL):
            return None
        return entry

    def _ensure_no_active_timer(self, tx: Transaction, user_id: UUID, task_id: UUID) -> None:
        """One running timer per user per task. Caller holds the ``timer:{user}`` lock."""
        active = tx.execute_single(
            """
            SELECT id FROM time_entries
            WHERE user_id = %s AND task_id = %s AND ended_at IS NULL
            """,
            (user_id, task_id)
        )
        if active:
            raise ConflictError("You already have an active timer for this task")

    def _insert(self, tx: Transaction, ctx: RequestContext, values: dict) -> TimeEntry:
        now = now_utc()
        row = tx.execute_single(
            """
            INSERT INTO time_entries (
                id, task_id, user_id, started_at, ended_at,
                minutes, billable, note, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                uuid4(), values["task_id"], ctx.user_id,
                values["started_at"], values.get("ended_at"), values.get("minutes"),
                values["billable"], values.get("note"), now, now
            )
        )
        entry = TimeEntry.model_validate(row)

        self.audit.log_change(
            tx, ctx,
            entity_type="time_entry",
            entity_id=entry.id,
            action=AuditAction.CREATE,
            changes={"created": entry.model_dump(mode="json")}
        )
        return entry

    # -------------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------------

    def start_timer(self, ctx: RequestContext, data: TimerStart) -> TimeEntry:
        """
        Start a timer on a task.

        Raises:
            NotFoundError: Task not in the caller's organization
            ConflictError: Caller already has a running timer on this task
        """
        require(ctx, Action.TIME_TRACK)

        with self.postgres.transaction() as tx:
            tx.lock(f"timer:{ctx.user_id}")
            self._require_task(tx, ctx, data.task_id)

            self._ensure_no_active_timer(tx, ctx.user_id, data.task_id)

            entry = self._insert(tx, ctx, {
                "task_id": data.task_id,
                "started_at": now_utc(),
                "billable": data.billable,
                "note": data.notes,
            })

        logger.info("Timer %s started by user %s on task %s", entry.id, ctx.user_id, data.task_id)
        return entry

    def stop_timer(self, ctx: RequestContext, data: TimerStop) -> TimeEntry:
        """
        Stop the caller's running timer and compute its minutes.

        Raises:
            NotFoundError: No running timer with that id for the caller
        """
        require(ctx, Action.TIME_TRACK)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                _ENTRY_IN_ORG + " AND te.user_id = %s AND te.ended_at IS NULL",
                (data.time_entry_id, ctx.organization_id, ctx.user_id)
            )
            if row is None:
                raise NotFoundError("Active timer not found")
            current = TimeEntry.model_validate(row)

            ended_at = now_utc()
            minutes = minutes_between(current.started_at, ended_at)

            row = tx.execute_single(
                """
                UPDATE time_entries
                SET ended_at = %s, minutes = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (ended_at, minutes, ended_at, current.id)
            )
            entry = TimeEntry.model_validate(row)

            self.audit.log_change(
                tx, ctx,
                entity_type="time_entry",
                entity_id=entry.id,
                action=AuditAction.UPDATE,
                changes={
                    "ended_at": {"old": None, "new": ended_at.isoformat()},
                    "minutes": {"old": None, "new": minutes},
                }
            )

        logger.info("Timer %s stopped after %d minute(s)", entry.id, minutes)
        return entry

    def active_timer(self, ctx: RequestContext) -> TimeEntry | None:
        """The caller's most recently started running timer, if any."""
        require(ctx, Action.TIME_TRACK)

        row = self.postgres.execute_single(
            """
            SELECT te.* FROM time_entries te
            JOIN tasks t ON t.id = te.task_id
            JOIN projects p ON p.id = t.project_id
            WHERE te.user_id = %s AND te.ended_at IS NULL AND p.organization_id = %s
            ORDER BY te.started_at DESC
            LIMIT 1
            """,
            (ctx.user_id, ctx.organization_id)
        )
        return TimeEntry.model_validate(row) if row else None

    # -------------------------------------------------------------------------
    # Manual entries
    # -------------------------------------------------------------------------

    def create(self, ctx: RequestContext, data: TimeEntryCreate) -> TimeEntry:
        """
        Log a finished interval.

        Raises:
            NotFoundError: Task not in the caller's organization
        """
        require(ctx, Action.TIME_TRACK)

        with self.postgres.transaction() as tx:
            self._require_task(tx, ctx, data.task_id)
            return self._insert(tx, ctx, {
                "task_id": data.task_id,
                "started_at": data.started_at,
                "ended_at": data.ended_at,
                "minutes": minutes_between(data.started_at, data.ended_at),
                "billable": data.billable,
                "note": data.notes,
            })

    def get_by_id(self, ctx: RequestContext, entry_id: UUID) -> TimeEntry | None:
        """Entry by id, None if missing or not visible to the caller."""
        require(ctx, Action.TIME_TRACK)
        return self._visible_entry(self.postgres, ctx, entry_id)

    def list(self, ctx: RequestContext, filters: TimeEntryFilter) -> TimeEntryList:
        """
        Entries newest first with minute totals.

        Members only ever see their own entries, whatever user filter they
        pass.
        """
        require(ctx, Action.TIME_TRACK)

        conditions = ["p.organization_id = %s"]
        params: list = [ctx.organization_id]

        user_id = filters.user_id
        if not is_allowed(ctx.role, Action.TIME_MANAGE_ALL):
            user_id = ctx.user_id

        if user_id is not None:
            conditions.append("te.user_id = %s")
            params.append(user_id)
        if filters.task_id is not None:
            conditions.append("te.task_id = %s")
            params.append(filters.task_id)
        if filters.project_id is not None:
            conditions.append("t.project_id = %s")
            params.append(filters.project_id)
        if filters.start_date is not None:
            conditions.append("te.started_at >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            conditions.append("te.started_at <= %s")
            params.append(filters.end_date)
        if filters.billable is not None:
            conditions.append("te.billable = %s")
            params.append(filters.billable)

        rows = self.postgres.execute(
            f"""
            SELECT te.* FROM time_entries te
            JOIN tasks t ON t.id = te.task_id
            JOIN projects p ON p.id = t.project_id
            WHERE {' AND '.join(conditions)}
            ORDER BY te.started_at DESC
            """,
            tuple(params)
        )
        entries = [TimeEntry.model_validate(row) for row in rows]

        return TimeEntryList(
            entries=entries,
            total_minutes=sum(entry.minutes or 0 for entry in entries),
            billable_minutes=sum(entry.minutes or 0 for entry in entries if entry.billable),
        )

    def update(self, ctx: RequestContext, entry_id: UUID, data: TimeEntryUpdate) -> TimeEntry:
        """
        Update an entry, recomputing minutes when the interval is closed.

        Clearing ended_at on a finished entry turns it back into a running
        timer: minutes are cleared, and the entry's owner must not already
        have another timer running on the same task.

        Raises:
            NotFoundError: Entry missing or not visible to the caller
            InvalidRequestError: Resulting end time is not after start time
            ConflictError: Reopening would start a second timer on the task
        """
        require(ctx, Action.TIME_TRACK)

        with self.postgres.transaction() as tx:
            current = self._visible_entry(tx, ctx, entry_id)
            if current is None:
                raise NotFoundError(f"Time entry {entry_id} not found")

            update_data = data.model_dump(exclude_unset=True)
            if "notes" in update_data:
                update_data["note"] = update_data.pop("notes")

            started_at = update_data.get("started_at", current.started_at)
            ended_at = update_data.get("ended_at", current.ended_at)
            if ended_at is not None:
                if ended_at <= started_at:
                    raise InvalidRequestError("End time must be after start time")
                update_data["minutes"] = minutes_between(started_at, ended_at)
            elif current.ended_at is not None:
                tx.lock(f"timer:{current.user_id}")
                self._ensure_no_active_timer(tx, current.user_id, current.task_id)
                update_data["minutes"] = None

            if not update_data:
                return current

            update_data["updated_at"] = now_utc()
            set_clause = ", ".join(f"{field} = %s" for field in update_data)

            row = tx.execute_single(
                f"UPDATE time_entries SET {set_clause} WHERE id = %s RETURNING *",
                tuple(update_data.values()) + (entry_id,)
            )
            entry = TimeEntry.model_validate(row)

            changes = compute_changes(current.model_dump(mode="json"), entry.model_dump(mode="json"))
            if changes:
                self.audit.log_change(
                    tx, ctx,
                    entity_type="time_entry",
                    entity_id=entry_id,
                    action=AuditAction.UPDATE,
                    changes=changes
                )

        return entry

    def delete(self, ctx: RequestContext, entry_id: UUID) -> TimeEntry:
        """
        Delete an entry.

        Raises:
            NotFoundError: Entry missing or not visible to the caller
        """
        require(ctx, Action.TIME_TRACK)

        with self.postgres.transaction() as tx:
            current = self._visible_entry(tx, ctx, entry_id)
            if current is None:
                raise NotFoundError(f"Time entry {entry_id} not found")

            tx.execute("DELETE FROM time_entries WHERE id = %s", (entry_id,))

            self.audit.log_change(
                tx, ctx,
                entity_type="time_entry",
                entity_id=entry_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.model_dump(mode="json")}
            )

        return current
