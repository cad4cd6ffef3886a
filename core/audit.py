"""
Audit trail for billing, time and task mutations.

One append-only ``audit_log`` row per change, scoped to the organization
and attributed to the acting user. Rows are written on the caller's
Transaction, so they commit or roll back together with the change.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json
from pydantic import BaseModel

from clients.postgres_client import PostgresClient, Transaction
from utils.request_context import RequestContext
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntry(BaseModel):
    """One recorded change, as read back for an entity's history."""

    id: UUID
    user_id: UUID
    entity_type: str
    entity_id: UUID
    action: AuditAction
    changes: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-mode model dumps.

    Returns {field: {"old": ..., "new": ...}} for every field whose value
    differs, ignoring ``exclude_fields`` (``updated_at`` unless given).
    """
    exclude = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in old.keys() | new.keys()
        if key not in exclude and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writes and reads the audit trail.

    ``changes`` takes one of three shapes:
    - CREATE: {"created": <entity>}
    - UPDATE: {<field>: {"old": ..., "new": ...}, ...}
    - DELETE: {"deleted": <entity>}

    Pass model_dump(mode="json") output so the payload is JSON-serializable.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        tx: Transaction,
        ctx: RequestContext,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
    ) -> None:
        """Append one entry on ``tx``."""
        tx.execute(
            """
            INSERT INTO audit_log (
                id, organization_id, user_id, entity_type, entity_id,
                action, changes, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(), ctx.organization_id, ctx.user_id, entity_type, entity_id,
                action.value, Json(changes), now_utc()
            )
        )

    def get_entity_history(self, ctx: RequestContext, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """Entries for one entity of the caller's organization, newest first."""
        rows = self.postgres.execute(
            """
            SELECT id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE organization_id = %s AND entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (ctx.organization_id, entity_type, entity_id)
        )
        return [AuditEntry.model_validate(row) for row in rows]
