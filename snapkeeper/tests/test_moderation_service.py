"""Moderation gate tests: pattern filter, remote verdicts, and fail-open behavior."""

from __future__ import annotations

import asyncio

import pytest

from snapkeeper.core.config import settings
from snapkeeper.schema.moderation import ModerationResult
from snapkeeper.services.moderation_client import ModerationAPIError, ModerationClient
from snapkeeper.services.moderation_service import (
    IMAGE_INSTRUCTION,
    ModerationService,
    build_moderation_service,
    regex_predicate,
    severity_for_scores,
)


class StubClient:
    """Stands in for ModerationClient; records calls and replays canned answers."""

    def __init__(
        self,
        *,
        result: ModerationResult | None = None,
        image_reply: str | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result or ModerationResult(flagged=False)
        self.image_reply = image_reply
        self.error = error
        self.texts: list[str] = []
        self.images: list[tuple[str, str, int]] = []

    async def moderate(self, text: str) -> ModerationResult:
        self.texts.append(text)
        if self.error:
            raise self.error
        return self.result

    async def describe_image(self, image_url: str, instruction: str, *, max_tokens: int) -> str:
        self.images.append((image_url, instruction, max_tokens))
        if self.error:
            raise self.error
        return self.image_reply or ""


@pytest.mark.asyncio
async def test_forbidden_pattern_short_circuits_remote_call():
    client = StubClient()
    service = ModerationService(client=client)

    verdict = await service.moderate_text("I will KILL this level")

    assert verdict.flagged is True
    assert verdict.severity == "high"
    assert verdict.reason == "Contains forbidden content"
    assert client.texts == []


@pytest.mark.asyncio
async def test_pattern_requires_word_boundary():
    client = StubClient()
    service = ModerationService(client=client)

    verdict = await service.moderate_text("skilled diet planning")

    assert verdict.flagged is False
    assert client.texts == ["skilled diet planning"]


@pytest.mark.asyncio
async def test_remote_failure_fails_open():
    service = ModerationService(client=StubClient(error=ModerationAPIError("quota exceeded")))

    verdict = await service.moderate_text("hello there")

    assert verdict.as_dict() == {"flagged": False}


@pytest.mark.asyncio
async def test_remote_flag_lists_categories_in_classifier_order():
    result = ModerationResult(
        flagged=True,
        categories={"harassment": True, "sexual": False, "violence": True},
        category_scores={"harassment": 0.62, "sexual": 0.01, "violence": 0.4},
    )
    service = ModerationService(client=StubClient(result=result))

    verdict = await service.moderate_text("some borderline text")

    assert verdict.flagged is True
    assert verdict.categories == ["harassment", "violence"]
    assert verdict.reason == "Flagged for: harassment, violence"
    assert verdict.severity == "medium"


@pytest.mark.asyncio
async def test_unflagged_remote_result_and_missing_client():
    assert (await ModerationService(client=StubClient()).moderate_text("nice pic")).flagged is False
    assert (await ModerationService(client=None).moderate_text("nice pic")).flagged is False


@pytest.mark.parametrize(
    ("scores", "expected"),
    [
        ({"a": 0.9}, "high"),
        ({"a": 0.6}, "medium"),
        ({"a": 0.3}, "low"),
        ({"a": 0.8}, "medium"),
        ({"a": 0.5}, "low"),
        ({"a": 0.1, "b": 0.85}, "high"),
        ({}, "low"),
    ],
)
def test_severity_for_scores(scores, expected):
    assert severity_for_scores(scores) == expected


@pytest.mark.asyncio
async def test_custom_predicates_replace_defaults():
    service = ModerationService(client=None, patterns=[regex_predicate(r"\bspoiler\b"), lambda text: len(text) > 20])

    assert (await service.moderate_text("kill")).flagged is False
    assert (await service.moderate_text("SPOILER: he lives")).flagged is True
    assert (await service.moderate_text("x" * 21)).flagged is True


@pytest.mark.asyncio
async def test_predicate_error_fails_open():
    def _broken(text: str) -> bool:
        raise RuntimeError("bad predicate")

    service = ModerationService(client=None, patterns=[_broken])

    assert (await service.moderate_text("anything")).flagged is False


@pytest.mark.asyncio
async def test_image_inappropriate_is_flagged():
    client = StubClient(image_reply='{"appropriate": false, "reason": "graphic violence"}')
    service = ModerationService(client=client)

    verdict = await service.moderate_image("https://img.example.com/a.jpg")

    assert verdict.flagged is True
    assert verdict.reason == "graphic violence"
    assert client.images == [("https://img.example.com/a.jpg", IMAGE_INSTRUCTION, settings.vision_max_tokens)]


@pytest.mark.asyncio
async def test_image_reply_in_code_fence_is_parsed():
    reply = '```json\n{"appropriate": true, "reason": "landscape photo"}\n```'
    service = ModerationService(client=StubClient(image_reply=reply))

    verdict = await service.moderate_image("https://img.example.com/b.jpg")

    assert verdict.flagged is False
    assert verdict.reason == "landscape photo"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["Looks fine to me!", '{"reason": "no verdict"}', "[]"])
async def test_unreadable_image_reply_fails_open(reply):
    service = ModerationService(client=StubClient(image_reply=reply))

    verdict = await service.moderate_image("https://img.example.com/c.jpg")

    assert verdict.as_dict() == {"flagged": False}


@pytest.mark.asyncio
async def test_image_client_error_and_missing_client_fail_open():
    failing = ModerationService(client=StubClient(error=ModerationAPIError("timeout")))
    assert (await failing.moderate_image("https://img.example.com/d.jpg")).flagged is False
    assert (await ModerationService(client=None).moderate_image("https://img.example.com/d.jpg")).flagged is False


@pytest.mark.asyncio
async def test_filter_content_drops_flagged_items_and_keeps_order():
    service = ModerationService(client=StubClient())
    items = [{"id": 1, "text": "hello"}, {"id": 2, "text": "kill"}, {"id": 3, "text": "bye"}]

    kept = await service.filter_content(items)

    assert [item["id"] for item in kept] == [1, 3]
    assert kept[0]["moderation"] == {"flagged": False}
    assert "moderation" not in items[0]


@pytest.mark.asyncio
async def test_filter_content_runs_checks_concurrently():
    started: list[str] = []
    release = asyncio.Event()

    class SlowClient(StubClient):
        async def moderate(self, text: str) -> ModerationResult:
            started.append(text)
            if len(started) == 2:
                release.set()
            await release.wait()
            return ModerationResult(flagged=False)

    service = ModerationService(client=SlowClient())

    kept = await asyncio.wait_for(service.filter_content([{"caption": "a"}, {"caption": "b"}], "caption"), 2)

    assert [item["caption"] for item in kept] == ["a", "b"]


@pytest.mark.asyncio
async def test_filter_content_treats_missing_field_as_empty_text():
    client = StubClient()
    service = ModerationService(client=client)

    kept = await service.filter_content([{"id": 1}, {"id": 2, "text": None}])

    assert len(kept) == 2
    assert client.texts == ["", ""]


def test_build_moderation_service_wires_client_only_with_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    assert build_moderation_service().client is None

    monkeypatch.setattr(settings, "openai_api_key", "sk-test-key-123456")
    service = build_moderation_service()
    assert isinstance(service.client, ModerationClient)
    assert len(service.patterns) == len(settings.forbidden_patterns)


@pytest.mark.asyncio
async def test_filter_content_moderates_non_string_fields_as_text():
    flag_all = ModerationResult(flagged=True, categories={"spam": True}, category_scores={"spam": 0.7})
    client = StubClient(result=flag_all)
    service = ModerationService(client=client)

    kept = await service.filter_content([{"text": 12345}, {"text": ["kill"]}, {"text": "hello"}])

    assert kept == []
    assert client.texts == ["12345", "hello"]


@pytest.mark.asyncio
async def test_non_string_text_reaches_pattern_filter():
    client = StubClient()
    service = ModerationService(client=client)

    verdict = await service.moderate_text(["kill"])

    assert verdict.flagged is True
    assert verdict.severity == "high"
    assert client.texts == []
