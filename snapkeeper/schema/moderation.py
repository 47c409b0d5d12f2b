"""Moderation verdicts and remote classifier payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Severity = Literal["low", "medium", "high"]


class ModerationVerdict(BaseModel):
    """Outcome of a single moderation check; never persisted."""

    flagged: bool
    reason: str | None = None
    severity: Severity | None = None
    categories: list[str] | None = None

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class ModerationResult(BaseModel):
    """First result of the remote text classifier."""

    flagged: bool = False
    categories: dict[str, bool | None] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)


class ImageAssessment(BaseModel):
    """JSON verdict the vision classifier is instructed to return."""

    appropriate: bool
    reason: str | None = None
