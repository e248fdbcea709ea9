"""Data models for questions and grading results."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union


class QuestionType(str, Enum):
    """Supported question types."""
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    DRAG_ORDER = "drag_order"
    MATCHING = "matching"
    FILL_BLANK = "fill_blank"


# ============================================================================
# ANSWER KEYS: one variant per question type
# ============================================================================

@dataclass(frozen=True)
class MultipleChoiceKey:
    """The single correct option."""
    option: str


@dataclass(frozen=True)
class ShortAnswerKey:
    """Accepted answer variants; the first one is shown to the student."""
    variants: Tuple[str, ...]


@dataclass(frozen=True)
class DragOrderKey:
    """Items in their correct order."""
    sequence: Tuple[str, ...]


@dataclass(frozen=True)
class MatchingPair:
    left: str
    right: str


@dataclass(frozen=True)
class MatchingKey:
    pairs: Tuple[MatchingPair, ...]


@dataclass(frozen=True)
class FillBlankKey:
    """Expected fill for each blank, in order."""
    blanks: Tuple[str, ...]


AnswerKey = Union[MultipleChoiceKey, ShortAnswerKey, DragOrderKey, MatchingKey, FillBlankKey]

KEY_TYPES = {
    MultipleChoiceKey: QuestionType.MULTIPLE_CHOICE,
    ShortAnswerKey: QuestionType.SHORT_ANSWER,
    DragOrderKey: QuestionType.DRAG_ORDER,
    MatchingKey: QuestionType.MATCHING,
    FillBlankKey: QuestionType.FILL_BLANK,
}


@dataclass(frozen=True)
class Question:
    """A gradable question. The answer key variant determines its type."""
    id: str
    prompt: str
    answer_key: AnswerKey
    skill_tag: Optional[str] = None
    difficulty: Optional[int] = None
    exam_category: Optional[str] = None

    @property
    def question_type(self) -> QuestionType:
        return KEY_TYPES[type(self.answer_key)]


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: str
    answer: str


# ============================================================================
# RESULTS
# ============================================================================

@dataclass
class QuestionResult:
    """Outcome for one question."""
    question_id: str
    is_correct: bool
    canonical_answer: str
    submitted_answer: str
    feedback: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "question_id": self.question_id,
            "is_correct": self.is_correct,
            "canonical_answer": self.canonical_answer,
            "submitted_answer": self.submitted_answer,
        }
        if self.feedback is not None:
            data["feedback"] = self.feedback
        return data


@dataclass
class GradeResult:
    """Aggregated outcome of a grading request."""
    score: int
    total_questions: int
    percentage: int
    meets_threshold: bool
    incorrect_skill_tags: List[str]
    question_results: List[QuestionResult]
    xp_earned: int = 0
    coins_earned: int = 0
    feedback: str = ""
    mastery_unlocked: Optional[bool] = None

    def to_dict(self) -> dict:
        data = {
            "score": self.score,
            "total_questions": self.total_questions,
            "percentage": self.percentage,
            "meets_threshold": self.meets_threshold,
            "feedback": self.feedback,
            "incorrect_skill_tags": list(self.incorrect_skill_tags),
            "xp_earned": self.xp_earned,
            "coins_earned": self.coins_earned,
            "question_results": [r.to_dict() for r in self.question_results],
        }
        if self.mastery_unlocked is not None:
            data["mastery_unlocked"] = self.mastery_unlocked
        return data
