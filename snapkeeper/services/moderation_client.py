"""HTTP client for the remote text moderation and vision classifiers."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from snapkeeper.core.config import settings
from snapkeeper.schema.moderation import ModerationResult


class ModerationAPIError(Exception):
    pass


class ModerationClient:
    """Calls the OpenAI-compatible ``/moderations`` and ``/chat/completions`` endpoints.

    There are no retries here; request timeouts come from the underlying httpx client.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.moderation_timeout_seconds

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise ModerationAPIError("Moderation API key missing")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ModerationAPIError(f"Request to {path} failed: {exc.__class__.__name__}") from exc
        if response.status_code >= 400:
            raise ModerationAPIError(f"{path} returned status {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ModerationAPIError(f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ModerationAPIError(f"{path} returned an unexpected payload")
        return data

    async def moderate(self, text: str) -> ModerationResult:
        """Classify ``text`` and return the first result."""
        payload: dict[str, Any] = {"input": text}
        if settings.moderation_model:
            payload["model"] = settings.moderation_model
        data = await self._post("/moderations", payload)
        results = data.get("results") or []
        if not results:
            raise ModerationAPIError("Moderation response contained no results")
        try:
            return ModerationResult.model_validate(results[0])
        except ValidationError as exc:
            raise ModerationAPIError("Moderation result had an unexpected shape") from exc

    async def describe_image(self, image_url: str, instruction: str, *, max_tokens: int) -> str:
        """Ask the vision model about ``image_url`` and return its raw reply text."""
        payload = {
            "model": settings.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {"type": "image_url", "image_url": {"url": image_url, "detail": "low"}},
                    ],
                }
            ],
            "max_tokens": max_tokens,
        }
        data = await self._post("/chat/completions", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModerationAPIError("Chat completion response had no message content") from exc
        if not isinstance(content, str):
            raise ModerationAPIError("Chat completion content was not text")
        return content
