import json

JUDGE_SYSTEM_PROMPT = """You are a friendly teacher grading student work. Be encouraging but accurate.

Given a question, the correct answer(s), and a student's answer, determine if the student's answer is correct.
Accept spelling variations and answers that are equivalent in meaning to one of the correct answers.

Respond with JSON only: {"isCorrect": boolean, "feedback": "brief encouraging feedback"}"""


def build_judge_messages(prompt: str, variants: tuple[str, ...], submitted: str) -> list[dict]:
    """Chat messages asking the judge to grade one short answer."""
    user = (
        f"Question: {prompt}\n"
        f"Correct Answer(s): {json.dumps(list(variants), ensure_ascii=False)}\n"
        f"Student's Answer: {submitted}\n\n"
        "Is this correct?"
    )
    return [
        {"role": "system", "content": JUDGE_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]
