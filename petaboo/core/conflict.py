# petaboo/core/conflict.py
"""
Optimistic locking for team tasks and memos.

The client sends back the ``updatedAt`` it last saw. If the stored value has
moved on (or the row is gone) the write is rejected and the client is told
why, so it can reload and retry.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petaboo.core.exceptions import UpstreamError

logger = logging.getLogger("Petaboo.Conflict")

# Table names are interpolated into SQL, so only these are accepted.
CONFLICT_CHECKED_TABLES = frozenset({"team_tasks", "team_memos"})

REASON_NOT_FOUND = "not_found"
REASON_OUTDATED = "outdated"


@dataclass(frozen=True)
class ConflictCheckResult:
    conflict: bool
    reason: Optional[str] = None
    current_updated_at: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": "conflict",
            "reason": self.reason,
            "currentUpdatedAt": self.current_updated_at,
        }


NO_CONFLICT = ConflictCheckResult(conflict=False)


def check_conflict(
    db: Session,
    table_name: str,
    row_id: int,
    client_updated_at: Optional[int],
    team_id: Optional[int] = None,
) -> ConflictCheckResult:
    """
    Compare the client's version token with the stored ``updated_at``.

    ``None`` skips the check entirely (older clients do not send a token).
    With ``team_id`` the row must belong to that team; a row of another team
    is reported as ``not_found``.
    Read failures raise ``UpstreamError``; they are never reported as
    "no conflict".
    """
    if table_name not in CONFLICT_CHECKED_TABLES:
        raise ValueError(f"Conflict check is not supported for table '{table_name}'")

    if client_updated_at is None:
        return NO_CONFLICT

    sql = f"SELECT updated_at FROM {table_name} WHERE id = :row_id"
    params: Dict[str, Any] = {"row_id": row_id}
    if team_id is not None:
        sql += " AND team_id = :team_id"
        params["team_id"] = team_id

    try:
        row = db.execute(text(sql), params).first()
    except SQLAlchemyError as e:
        logger.error(f"Conflict check failed for {table_name}#{row_id}: {e}")
        raise UpstreamError("Database error while checking for conflicts.")

    if row is None:
        logger.info(f"Conflict on {table_name}#{row_id}: row not found")
        return ConflictCheckResult(conflict=True, reason=REASON_NOT_FOUND)

    current = row[0]
    if current != client_updated_at:
        logger.info(
            f"Conflict on {table_name}#{row_id}: client={client_updated_at} current={current}"
        )
        return ConflictCheckResult(
            conflict=True,
            reason=REASON_OUTDATED,
            current_updated_at=current,
        )

    return NO_CONFLICT
