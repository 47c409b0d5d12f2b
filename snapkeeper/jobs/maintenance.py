"""Scheduled expiry sweeps for stories and direct snaps."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from snapkeeper.db.session import async_session
from snapkeeper.services.expiry_sweep import (
    DIRECT_SNAP_SWEEP,
    EXPIRED_CONTENT_PURGE,
    STORY_SWEEP,
    SweepDefinition,
    run_sweep,
)

logger = logging.getLogger("snapkeeper.jobs.maintenance")


def _run_definition(definition: SweepDefinition) -> dict[str, Any]:
    """Run one sweep to completion; the scheduler always sees a normal return."""

    async def _run():
        async with async_session() as session:
            return await run_sweep(session, definition)

    logger.info("Running expired %s cleanup...", definition.name)
    try:
        result = asyncio.run(_run())
    except Exception as exc:
        logger.exception("Expired %s cleanup could not start", definition.name)
        return {"name": definition.name, "deleted": 0, "error": str(exc) or exc.__class__.__name__}
    return result.model_dump()


def delete_expired_stories_job() -> dict[str, Any]:
    """Hourly: delete expired stories and their images."""
    return _run_definition(STORY_SWEEP)


def delete_expired_snaps_job() -> dict[str, Any]:
    """Every six hours: delete expired direct snaps that have been viewed."""
    return _run_definition(DIRECT_SNAP_SWEEP)


def purge_expired_content_job() -> dict[str, Any]:
    """On demand: delete every expired snap regardless of type, with images."""
    return _run_definition(EXPIRED_CONTENT_PURGE)
