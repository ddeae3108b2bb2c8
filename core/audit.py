"""
Append-only audit trail for appointment and completion-record changes.

Every status change, deletion and completion record write is logged with
the acting user, the role they acted as, and the old/new values.
"""

from enum import Enum
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.models import Role
from utils.timezone import now_utc
from utils.user_context import get_current_actor


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    DELETE = "delete"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old.keys()) | set(new.keys()):
        if key in exclude:
            continue
        if old.get(key) != new.get(key):
            changes[key] = {"old": old.get(key), "new": new.get(key)}

    return changes


class AuditLogger:
    """
    Writes audit_log rows.

    Pass pydantic models through model_dump(mode="json") so Decimals and
    datetimes are JSON-compatible.

    Usage:
        audit.log_change(
            entity_type="appointment",
            entity_id=appointment.id,
            action=AuditAction.STATUS_CHANGE,
            changes={"status": {"old": "pending", "new": "confirmed"}},
            actor_id=user_id,
            actor_role=Role.OWNER,
        )
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: int,
        action: AuditAction,
        changes: dict[str, Any],
        actor_id: int | None = None,
        actor_role: Role | None = None,
    ) -> None:
        """
        Log an entity change.

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE / STATUS_CHANGE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}

        Without an explicit actor, the request's actor context is used.
        """
        if actor_id is None:
            actor = get_current_actor()
            if actor is not None:
                actor_id, actor_role = actor.user_id, actor.role

        self.postgres.execute(
            """
            INSERT INTO audit_log (actor_id, actor_role, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                actor_id,
                actor_role.value if actor_role else None,
                entity_type,
                entity_id,
                action.value,
                Json(changes),
                now_utc(),
            )
        )
