import logging
from typing import Optional

from openai import AsyncOpenAI

from scholar_rewards.config import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None


def get_client() -> Optional[AsyncOpenAI]:
    """Return the shared client, or None when no API key is configured."""
    global _client
    if not settings.LLM_API_KEY:
        return None
    if _client is None:
        _client = AsyncOpenAI(
            base_url=settings.LLM_BASE_URL,
            api_key=settings.LLM_API_KEY,
            timeout=settings.JUDGE_TIMEOUT_SECONDS,
            max_retries=0,
        )
    return _client


async def chat_completion(
    messages: list[dict],
    temperature: float = 0.7,
    max_tokens: int = 300,
) -> str | None:
    """Send a chat request and return the response text, or None on any failure."""
    client = get_client()
    if client is None:
        logger.debug("LLM_API_KEY not set, skipping completion")
        return None

    try:
        response = await client.chat.completions.create(
            model=settings.LLM_MODEL,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content
    except Exception as e:
        logger.error(f"LLM request failed: {e}")
        return None
