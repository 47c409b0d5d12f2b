"""Chunked delete sweeps over expired snaps, with optional image cleanup.

Invariants:
- Matches come from one snapshot query; rows created after it are left for the next run.
- Batches hold at most ``delete_batch_size`` ids and are committed one at a time, in order.
- The number of commits is ceil(matched / batch size); an empty batch is never committed.
- Image deletion starts only after every record batch has been committed.
- Nothing raises to the caller; failures land in ``SweepResult.error`` or the blob counters.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from snapkeeper.core.config import settings
from snapkeeper.models.snap import SnapType
from snapkeeper.schema.sweep import SweepResult
from snapkeeper.services import snap_store
from snapkeeper.services.blob_store import BlobReferenceError, BlobStore, blob_path_from_url
from snapkeeper.utils.redaction import redact_secrets

logger = logging.getLogger("snapkeeper.services.expiry_sweep")


@dataclass(frozen=True)
class SweepDefinition:
    """Which expired snaps a sweep deletes and whether their images go too."""
    name: str
    snap_type: SnapType | None = None
    viewed: bool | None = None
    cleanup_blobs: bool = False


STORY_SWEEP = SweepDefinition(name="stories", snap_type=SnapType.STORY, cleanup_blobs=True)
DIRECT_SNAP_SWEEP = SweepDefinition(name="direct_snaps", snap_type=SnapType.DIRECT, viewed=True)
EXPIRED_CONTENT_PURGE = SweepDefinition(name="expired_content", cleanup_blobs=True)


async def _delete_blob(blob_store: Any, path: str) -> None:
    outcome = blob_store.delete(path)
    if asyncio.iscoroutine(outcome):
        await outcome


async def _cleanup_blobs(
    blob_store: Any, targets: list[tuple[str, str | None]], result: SweepResult
) -> None:
    """Delete each target's image sequentially; one failure never stops the rest."""
    for snap_id, image_url in targets:
        if not image_url:
            continue
        try:
            path = blob_path_from_url(image_url)
        except BlobReferenceError as exc:
            result.blobs_skipped += 1
            logger.warning("Skipping image for snap %s (%s): %s", snap_id, redact_secrets(image_url), exc)
            continue
        try:
            await _delete_blob(blob_store, path)
        except Exception as exc:
            result.blobs_failed += 1
            logger.warning("Error deleting image %s for snap %s: %s", path, snap_id, redact_secrets(str(exc)))
            continue
        result.blobs_deleted += 1
        logger.info("Deleted image: %s", path)


async def run_sweep(
    session: AsyncSession,
    definition: SweepDefinition,
    *,
    blob_store: Any | None = None,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> SweepResult:
    """Delete every snap matching ``definition`` that expired at or before ``now``."""
    result = SweepResult(name=definition.name)
    limit = batch_size or settings.delete_batch_size
    try:
        snaps = await snap_store.find_expired(
            session, snap_type=definition.snap_type, viewed=definition.viewed, now=now
        )
        # Read attributes up front; the ORM rows are gone once their batch commits.
        targets = [(snap.id, snap.image_url) for snap in snaps]
        result.matched = len(targets)
        logger.info("Found %d expired %s", result.matched, definition.name)

        pending: list[str] = []
        delete_count = 0
        for snap_id, _ in targets:
            pending.append(snap_id)
            delete_count += 1
            if delete_count % limit == 0:
                result.deleted += await snap_store.commit_delete_batch(session, pending)
                result.commits += 1
                pending = []
        if delete_count % limit != 0:
            result.deleted += await snap_store.commit_delete_batch(session, pending)
            result.commits += 1

        if definition.cleanup_blobs and result.deleted > 0:
            await _cleanup_blobs(blob_store or BlobStore(), targets, result)
    except Exception as exc:
        result.error = redact_secrets(str(exc)) or exc.__class__.__name__
        logger.exception("Error deleting expired %s", definition.name)
        return result

    logger.info("Successfully deleted %d expired %s", result.deleted, definition.name)
    return result
