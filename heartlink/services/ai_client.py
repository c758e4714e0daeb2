"""OpenAI-compatible chat completion client (DeepSeek by default).

The API key belongs to the caller: it arrives with each request and is
passed straight through, never stored.

API base: https://api.deepseek.com/v1

Endpoint used:
    POST /chat/completions: single-turn completion with a system prompt
"""

from __future__ import annotations

import logging

import httpx

from heartlink.config import Settings, get_settings
from heartlink.core.errors import AIProviderError

logger = logging.getLogger("heartlink.ai")

SYSTEM_PROMPT = "You are a professional assistant for intimate relationships and menstrual health."

FALLBACK_ANSWER = (
    "Sorry, I'm having trouble reaching the cloud right now. Please try again in a moment."
)

_PROMPT_TEMPLATE = """You are a caring, warm and empathetic assistant for emotions and menstrual health.
User gender: {gender}
User nickname: {nickname}
User question: {question}
Give a short (under 150 words), warm and constructive answer, in the language the question is written in."""


def build_prompt(question: str, gender: str | None, nickname: str | None) -> str:
    """User-turn prompt carrying the asker's gender and nickname."""
    return _PROMPT_TEMPLATE.format(
        gender="male" if gender == "male" else "female",
        nickname=nickname or "dear",
        question=question,
    )


class ChatCompletionClient:
    """Thin async wrapper around ``POST {base_url}/chat/completions``."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """
        Args:
            base_url:    API root, e.g. ``https://api.deepseek.com/v1``.
            model:       Model name sent in the request body.
            timeout:     Request timeout in seconds.
            http_client: Optional pre-configured httpx client (for testing).
        """
        s = settings or get_settings()
        self._base_url = (base_url or s.ai_api_base_url).rstrip("/")
        self._model = model or s.ai_model
        self._timeout = timeout if timeout is not None else s.ai_timeout_seconds
        self._http_client = http_client

    async def complete(self, api_key: str, prompt: str, system: str = SYSTEM_PROMPT) -> str:
        """Return the first choice's message content.

        Raises:
            AIProviderError: Transport failure, non-2xx status, or a body
                             without ``choices[0].message.content``.
        """
        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {api_key}"}
        url = f"{self._base_url}/chat/completions"

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("AI provider returned %s", exc.response.status_code)
            raise AIProviderError(
                f"AI provider returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("AI provider request failed: %s", exc)
            raise AIProviderError("AI provider request failed") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AIProviderError("AI provider response had no answer") from exc
        if not isinstance(content, str) or not content.strip():
            raise AIProviderError("AI provider returned an empty answer")
        return content.strip()
