"""Shared helpers for sweep and moderation tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from snapkeeper.models.snap import Snap, SnapType
from snapkeeper.utils.timestamps import to_iso_timestamp

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_snap(
    snap_type: SnapType,
    *,
    expires_in: timedelta,
    viewed: bool = False,
    image_url: str | None = None,
    now: datetime = NOW,
) -> Snap:
    """Build an unsaved snap expiring ``expires_in`` from ``now`` (negative means expired)."""
    return Snap(
        type=snap_type,
        expires_at=to_iso_timestamp(now + expires_in),
        viewed=viewed,
        image_url=image_url,
    )


def storage_url(path: str, bucket: str = "demo.appspot.com") -> str:
    encoded = path.replace("/", "%2F")
    return f"https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{encoded}?alt=media&token=abc123"


class FakeBlobStore:
    """Records deletes; paths in ``failing`` raise like a missing object would."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.deleted: list[str] = []
        self.attempted: list[str] = []

    async def delete(self, path: str) -> None:
        self.attempted.append(path)
        if path in self.failing:
            raise FileNotFoundError(f"No such object: {path}")
        self.deleted.append(path)
