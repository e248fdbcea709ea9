"""Request validation models for the grade and award entry points."""
import json
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from scholar_rewards.config import settings
from scholar_rewards.core.exceptions import RequestValidationError
from scholar_rewards.grading.models import (
    DragOrderKey,
    FillBlankKey,
    MatchingKey,
    MatchingPair,
    MultipleChoiceKey,
    Question,
    QuestionType,
    ShortAnswerKey,
)
from scholar_rewards.rewards.models import ClaimType

Model = TypeVar("Model", bound=BaseModel)


class MatchingPairPayload(BaseModel):
    left: str
    right: str


class QuestionPayload(BaseModel):
    """Question as sent by the client; answer_key shape depends on question_type."""
    id: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    question_type: QuestionType
    answer_key: Union[str, List[str], List[MatchingPairPayload]]
    options: Optional[List[str]] = Field(default=None, max_length=10)
    skill_tag: Optional[str] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    exam_category: Optional[str] = None

    @model_validator(mode="after")
    def check_answer_key_shape(self):
        # Raises ValueError on a mismatch; pydantic reports it as a field error
        self.to_question()
        return self

    def to_question(self) -> Question:
        key = self.answer_key
        qtype = self.question_type

        if qtype == QuestionType.MULTIPLE_CHOICE:
            if not isinstance(key, str):
                raise ValueError("multiple_choice answer_key must be a string")
            answer_key = MultipleChoiceKey(option=key)
        elif qtype == QuestionType.SHORT_ANSWER:
            # A bare string is the one-variant case of the list form
            variants = [key] if isinstance(key, str) else _strings(key, qtype)
            if not variants or not all(v.strip() for v in variants):
                raise ValueError("short_answer needs at least one non-blank accepted answer")
            answer_key = ShortAnswerKey(variants=tuple(variants))
        elif qtype == QuestionType.DRAG_ORDER:
            answer_key = DragOrderKey(sequence=tuple(_strings(key, qtype)))
        elif qtype == QuestionType.MATCHING:
            if not isinstance(key, list) or not key or not all(
                isinstance(p, MatchingPairPayload) for p in key
            ):
                raise ValueError("matching answer_key must be a non-empty list of {left, right} pairs")
            answer_key = MatchingKey(
                pairs=tuple(MatchingPair(left=p.left, right=p.right) for p in key)
            )
        else:
            answer_key = FillBlankKey(blanks=tuple(_strings(key, qtype)))

        return Question(
            id=self.id,
            prompt=self.prompt,
            answer_key=answer_key,
            skill_tag=self.skill_tag or None,
            difficulty=self.difficulty,
            exam_category=self.exam_category or None,
        )


def _strings(key, qtype: QuestionType) -> List[str]:
    if not isinstance(key, list) or not key or not all(isinstance(k, str) for k in key):
        raise ValueError(f"{qtype.value} answer_key must be a non-empty list of strings")
    return key


class AnswerPayload(BaseModel):
    question_id: str
    answer: str = ""

    @field_validator("answer", mode="before")
    @classmethod
    def encode_structured(cls, value: Any) -> Any:
        # Structured answers may arrive already decoded
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)


class GradeRequest(BaseModel):
    student_id: str = Field(min_length=1)
    assignment_id: str = Field(min_length=1)
    attempt_id: Optional[str] = None
    answers: List[AnswerPayload] = Field(default_factory=list)
    questions: List[QuestionPayload] = Field(min_length=1)
    exam_category: Optional[str] = None

    @model_validator(mode="after")
    def check_limits(self):
        if len(self.questions) > settings.MAX_QUESTIONS_PER_ASSIGNMENT:
            raise ValueError(
                f"At most {settings.MAX_QUESTIONS_PER_ASSIGNMENT} questions per assignment"
            )
        ids = [q.id for q in self.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("Question ids must be unique")
        return self

    def mastery_category(self) -> Optional[str]:
        """Request-level tag first, else the first tagged question's."""
        if self.exam_category:
            return self.exam_category
        return next((q.exam_category for q in self.questions if q.exam_category), None)


class AwardRequest(BaseModel):
    claim_type: ClaimType
    reference_id: str = Field(min_length=1)
    xp_amount: int = Field(ge=0)
    coin_amount: int = Field(ge=0)
    reason: str = Field(min_length=1)
    validation_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("validation_data", mode="before")
    @classmethod
    def default_validation_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def check_limits(self):
        if self.xp_amount > settings.MAX_XP_PER_REQUEST:
            raise ValueError(f"xp_amount exceeds {settings.MAX_XP_PER_REQUEST}")
        if self.coin_amount > settings.MAX_COINS_PER_REQUEST:
            raise ValueError(f"coin_amount exceeds {settings.MAX_COINS_PER_REQUEST}")
        if len(self.reason) > settings.MAX_REASON_LENGTH:
            raise ValueError(f"reason exceeds {settings.MAX_REASON_LENGTH} characters")
        return self


def parse_request(model: Type[Model], payload: Any) -> Model:
    """Validate a raw payload, mapping pydantic errors to VALIDATION_ERROR."""
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
            for err in e.errors()
        )
        raise RequestValidationError(details) from e
