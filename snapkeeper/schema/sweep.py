"""Summary returned by an expiry sweep run."""

from __future__ import annotations

from pydantic import BaseModel


class SweepResult(BaseModel):
    name: str
    matched: int = 0
    deleted: int = 0
    commits: int = 0
    blobs_deleted: int = 0
    blobs_skipped: int = 0
    blobs_failed: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
