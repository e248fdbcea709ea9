import asyncio
import logging

from scholar_rewards.config import settings
from scholar_rewards.core.exceptions import JudgeUnavailableError
from scholar_rewards.llm.client import chat_completion
from scholar_rewards.llm.parser import Judgement, parse_judgement
from scholar_rewards.llm.prompts import build_judge_messages

logger = logging.getLogger(__name__)


async def judge_short_answer(prompt: str, variants: tuple[str, ...], submitted: str) -> Judgement:
    """
    Ask the AI judge whether a short answer is correct.

    Raises:
        JudgeUnavailableError: the judge is not configured, timed out,
            failed, or returned something unparseable
    """
    messages = build_judge_messages(prompt, variants, submitted)

    try:
        raw = await asyncio.wait_for(
            chat_completion(messages, temperature=settings.JUDGE_TEMPERATURE),
            timeout=settings.JUDGE_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        raise JudgeUnavailableError(
            f"judge timed out after {settings.JUDGE_TIMEOUT_SECONDS}s"
        )

    if raw is None:
        raise JudgeUnavailableError("judge returned no response")

    judgement = parse_judgement(raw)
    if judgement is None:
        raise JudgeUnavailableError("judge response could not be parsed")

    return judgement
