import json
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Judgement:
    is_correct: bool
    feedback: str


def parse_judgement(raw_text: str) -> Judgement | None:
    """Parse judge output into a Judgement. Returns None on failure."""
    if not raw_text:
        return None

    # Try direct JSON parse
    data = _try_parse_json(raw_text)

    # Try extracting from markdown code block
    if data is None:
        match = re.search(r"```(?:json)?\s*(\{.+?})\s*```", raw_text, re.DOTALL)
        if match:
            data = _try_parse_json(match.group(1))

    # Try finding an object in the text
    if data is None:
        match = re.search(r"(\{.*})", raw_text, re.DOTALL)
        if match:
            data = _try_parse_json(match.group(1))

    if data is None or "isCorrect" not in data:
        logger.warning("Failed to parse judge response as JSON")
        return None

    # Only a literal true counts as correct
    is_correct = data["isCorrect"] is True
    feedback = data.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        feedback = "Correct!" if is_correct else "Not quite right."

    return Judgement(is_correct=is_correct, feedback=feedback.strip())


def _try_parse_json(text: str) -> dict | None:
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except (json.JSONDecodeError, TypeError):
        pass
    return None
