"""Snap record queries and atomic batch deletes."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapkeeper.models.snap import Snap, SnapType
from snapkeeper.utils.timestamps import to_iso_timestamp, utcnow

# Upper bound on operations in one atomic delete batch.
MAX_BATCH_OPERATIONS = 500


async def find_expired(
    session: AsyncSession,
    *,
    snap_type: SnapType | None = None,
    viewed: bool | None = None,
    now: datetime | None = None,
) -> list[Snap]:
    """Return a snapshot of snaps whose ``expires_at`` is at or before ``now``.

    ``snap_type`` and ``viewed`` add equality predicates when given. The whole
    match set is materialized in one query; there is no pagination.
    """
    threshold = to_iso_timestamp(now or utcnow())
    stmt = select(Snap).where(Snap.expires_at <= threshold)
    if snap_type is not None:
        stmt = stmt.where(Snap.type == snap_type)
    if viewed is not None:
        stmt = stmt.where(Snap.viewed.is_(viewed))
    result = await session.scalars(stmt.order_by(Snap.expires_at, Snap.id))
    return list(result.all())


async def commit_delete_batch(session: AsyncSession, snap_ids: Sequence[str]) -> int:
    """Delete ``snap_ids`` in a single transaction and commit it."""
    if not snap_ids:
        return 0
    if len(snap_ids) > MAX_BATCH_OPERATIONS:
        raise ValueError(f"Delete batch of {len(snap_ids)} exceeds {MAX_BATCH_OPERATIONS} operations")
    stmt = delete(Snap).where(Snap.id.in_(list(snap_ids))).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0
