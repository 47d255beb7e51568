from __future__ import annotations

from typing import Optional

from ..core.enums import ApprovalStatus

_ACTOR_COLUMNS = {
    ApprovalStatus.PENDING_COMMISSIONER: ("treasurer_approved_by", "treasurer_approved_at"),
    ApprovalStatus.APPROVED: ("commissioner_approved_by", "commissioner_approved_at"),
    ApprovalStatus.REJECTED: ("rejected_by", "rejected_at"),
}


def transition_statement(
    *,
    table: str,
    id_column: str,
    entity_id: int,
    from_status: ApprovalStatus,
    to_status: ApprovalStatus,
    actor_id: int,
    reject_reason: Optional[str] = None,
) -> tuple[str, tuple]:
    """Conditional UPDATE that only matches a row still in from_status."""
    actor_col, at_col = _ACTOR_COLUMNS[to_status]
    sets = ["status=%s", f"{actor_col}=%s", f"{at_col}=NOW()", "updated_at=NOW()"]
    params: list = [to_status.value, int(actor_id)]
    if to_status == ApprovalStatus.REJECTED:
        sets.append("reject_reason=%s")
        params.append(reject_reason)
    params.extend([int(entity_id), from_status.value])
    sql = f"UPDATE {table} SET {', '.join(sets)} WHERE {id_column}=%s AND status=%s"
    return sql, tuple(params)
