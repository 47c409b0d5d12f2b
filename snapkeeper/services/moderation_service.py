"""Content moderation gate: local pattern filter, then the remote classifier.

Every failure fails open to an unflagged verdict so moderation never blocks
posting when the classifier is unavailable.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from snapkeeper.core.config import settings
from snapkeeper.schema.moderation import ImageAssessment, ModerationVerdict, Severity
from snapkeeper.services.moderation_client import ModerationClient
from snapkeeper.utils.redaction import redact_secrets

logger = logging.getLogger("snapkeeper.services.moderation_service")

ContentPredicate = Callable[[str], bool]

FORBIDDEN_REASON = "Contains forbidden content"
IMAGE_INSTRUCTION = (
    "Is this image appropriate for a social media app? Check for violence, adult content, "
    "hate symbols, or other inappropriate content. Respond with JSON: {appropriate: boolean, reason: string}"
)
_FENCED_JSON_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def regex_predicate(pattern: str | re.Pattern[str]) -> ContentPredicate:
    """Build a case-insensitive search predicate from a regex."""
    compiled = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, re.IGNORECASE)

    def _matches(text: str) -> bool:
        return compiled.search(text) is not None

    return _matches


def severity_for_scores(scores: Mapping[str, float]) -> Severity:
    """Map the highest category score onto a severity bucket."""
    max_score = max(scores.values(), default=0.0)
    if max_score > 0.8:
        return "high"
    if max_score > 0.5:
        return "medium"
    return "low"


def _parse_image_assessment(content: str) -> ImageAssessment:
    text = content.strip()
    fenced = _FENCED_JSON_RE.match(text)
    if fenced:
        text = fenced.group(1)
    return ImageAssessment.model_validate(json.loads(text))


class ModerationService:
    """Classifies text and images as flagged or unflagged."""

    def __init__(
        self,
        client: ModerationClient | None = None,
        patterns: Iterable[ContentPredicate] | None = None,
    ) -> None:
        self.client = client
        if patterns is None:
            patterns = [regex_predicate(pattern) for pattern in settings.forbidden_patterns]
        self.patterns: list[ContentPredicate] = list(patterns)

    async def moderate_text(self, text: Any) -> ModerationVerdict:
        text = "" if text is None else str(text)
        try:
            for matches in self.patterns:
                if matches(text):
                    return ModerationVerdict(flagged=True, reason=FORBIDDEN_REASON, severity="high")
            if self.client is None:
                return ModerationVerdict(flagged=False)
            result = await self.client.moderate(text)
        except Exception as exc:
            logger.warning("Moderation error: %s", redact_secrets(str(exc)))
            return ModerationVerdict(flagged=False)

        if not result.flagged:
            return ModerationVerdict(flagged=False)
        categories = [name for name, flagged in result.categories.items() if flagged]
        return ModerationVerdict(
            flagged=True,
            reason=f"Flagged for: {', '.join(categories)}",
            severity=severity_for_scores(result.category_scores),
            categories=categories,
        )

    async def moderate_image(self, image_url: str) -> ModerationVerdict:
        if self.client is None:
            return ModerationVerdict(flagged=False)
        try:
            content = await self.client.describe_image(
                image_url, IMAGE_INSTRUCTION, max_tokens=settings.vision_max_tokens
            )
            assessment = _parse_image_assessment(content)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Image moderation returned an unreadable verdict: %s", exc)
            return ModerationVerdict(flagged=False)
        except Exception as exc:
            logger.warning("Image moderation error: %s", redact_secrets(str(exc)))
            return ModerationVerdict(flagged=False)
        return ModerationVerdict(flagged=not assessment.appropriate, reason=assessment.reason)

    async def filter_content(
        self, items: Sequence[Mapping[str, Any]], content_key: str = "text"
    ) -> list[dict[str, Any]]:
        """Moderate every item concurrently and keep the unflagged ones in input order.

        Each returned item is a copy carrying its verdict under ``moderation``.
        """

        async def _moderate(item: Mapping[str, Any]) -> dict[str, Any]:
            verdict = await self.moderate_text(item.get(content_key) or "")
            return {**item, "moderation": verdict.as_dict()}

        moderated = await asyncio.gather(*(_moderate(item) for item in items))
        return [item for item in moderated if not item["moderation"]["flagged"]]


def build_moderation_service() -> ModerationService:
    """Construct the process-wide service once at startup and pass it to callers."""
    client = ModerationClient() if settings.openai_api_key else None
    return ModerationService(client=client)
