"""OpenRouter chat-completion helpers."""

import json
import logging
from typing import Any

import httpx
from dotenv import load_dotenv

from degradscan.config import Settings, get_settings
from degradscan.constants import (
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    OPENROUTER_CHAT_URL,
    OPENROUTER_MODELS_URL,
    OPENROUTER_REFERER,
    OPENROUTER_TITLE,
)
from degradscan.errors import CredentialMissing, ParseError, UpstreamError

load_dotenv()

logger = logging.getLogger(__name__)


def _headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "HTTP-Referer": OPENROUTER_REFERER,
        "X-Title": OPENROUTER_TITLE,
    }


def extract_message_content(data: Any) -> str:
    """Pull the assistant text out of a chat-completion body.

    ``content`` is either a string or a list of ``{"type": "text", "text": ...}``
    parts depending on the upstream model.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ParseError(f"Unexpected chat completion body: {e!r}") from e
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    if not isinstance(content, str) or not content.strip():
        raise ParseError("Chat completion returned no content")
    return content


async def query_llm(
    prompt: str, system: str = "", settings: Settings | None = None
) -> str:
    """Send one chat-completion request and return the assistant text.

    Raises CredentialMissing without an API key, UpstreamError on a
    non-success status or transport failure, ParseError on an unusable body.
    """
    settings = settings or get_settings()
    if not settings.open_router_api_key:
        raise CredentialMissing("OPEN_ROUTER_API_KEY is not set")

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    body = {
        "model": settings.open_router_model,
        "messages": messages,
        "temperature": LLM_TEMPERATURE,
        "response_format": {"type": "json_object"},
        "max_tokens": LLM_MAX_TOKENS,
    }

    async with httpx.AsyncClient(timeout=settings.llm_timeout) as client:
        try:
            resp = await client.post(
                OPENROUTER_CHAT_URL,
                headers=_headers(settings.open_router_api_key),
                json=body,
            )
        except httpx.HTTPError as e:
            raise UpstreamError("openrouter", f"Connection error: {e}") from e

    if resp.status_code >= 400:
        raise UpstreamError(
            "openrouter",
            f"HTTP {resp.status_code}: {resp.text[:500]}",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except json.JSONDecodeError as e:
        raise ParseError(f"Chat completion body is not JSON: {e}") from e

    logger.debug("OpenRouter usage: %s", data.get("usage") if isinstance(data, dict) else None)
    return extract_message_content(data)


async def check_llm_health(settings: Settings | None = None) -> dict[str, Any]:
    """Probe the OpenRouter models endpoint. Never raises."""
    settings = settings or get_settings()
    health: dict[str, Any] = {
        "has_key": settings.has_llm_credential,
        "ok": False,
        "status": None,
        "error": None,
    }
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.get(
                OPENROUTER_MODELS_URL, headers=_headers(settings.open_router_api_key)
            )
        except httpx.HTTPError as e:
            health["error"] = str(e) or type(e).__name__
            logger.warning("OpenRouter health probe failed: %s", e)
            return health

    health["status"] = resp.status_code
    health["ok"] = resp.is_success
    if not resp.is_success:
        health["error"] = resp.text
    return health
