import json
import logging
from typing import Optional

import httpx

from ..config import DEFAULT_MODEL, api_base_url
from ..errors import RemoteFailure
from .base import LLMProvider

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Pull ``detail`` / ``error`` out of an error payload, else the raw body."""
    fallback = f"API Error: {resp.status_code}"
    text = resp.text
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return text or fallback
    if isinstance(data, dict):
        message = data.get("detail") or data.get("error")
        if isinstance(message, dict):
            message = message.get("message") or json.dumps(message)
        if message:
            return str(message)
    return fallback


class AIBuilderProvider(LLMProvider):
    """OpenAI-compatible ``/v1/chat/completions`` endpoint of the AI Builder backend."""

    name = "ai_builder"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or api_base_url()).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    async def complete(
        self, messages: list[dict], model: str, api_token: str, **kwargs
    ) -> str:
        url = self.endpoint
        payload = {
            "model": model or DEFAULT_MODEL,
            "messages": [
                {"role": m["role"], "content": m["content"]} for m in messages
            ],
            **kwargs,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_token}",
        }

        logger.info("Calling %s (model=%s)", url, payload["model"])
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.RequestError as e:
            msg = (
                f"Network error: Unable to reach API at {url}. "
                "Please verify the API URL is correct and that AI_BUILDER_API_URL "
                "is set correctly."
            )
            logger.error("%s (%s)", msg, e)
            raise RemoteFailure(msg, endpoint=url) from e

        if resp.is_error:
            msg = f"{_error_message(resp)} (URL: {url})"
            logger.error("API error %s: %s", resp.status_code, msg)
            raise RemoteFailure(msg, endpoint=url, upstream_status=resp.status_code)

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RemoteFailure(
                f"Malformed response from API (URL: {url})", endpoint=url
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            return content

        raise RemoteFailure(f"No response from API (URL: {url})", endpoint=url)


_provider: Optional[AIBuilderProvider] = None


def get_provider() -> AIBuilderProvider:
    global _provider
    if _provider is None:
        _provider = AIBuilderProvider()
    return _provider
