"""Data models for reward claims and balances."""
from dataclasses import asdict, dataclass
from enum import Enum


class ClaimType(str, Enum):
    """Kinds of achievement that can be redeemed for rewards."""
    PRACTICE_SET = "practice_set"
    GAME = "game"
    STUDY_GOAL = "study_goal"
    ASSIGNMENT = "assignment"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class ClaimRecord:
    """The single grant recorded for a claim key."""
    claim_key: str
    student_id: str
    claim_type: str
    reference_id: str
    xp_amount: int
    coin_amount: int
    reason: str
    created_at: str


@dataclass(frozen=True)
class StudentBalance:
    student_id: str
    xp_total: int
    coins_total: int
    current_streak: int = 0
    longest_streak: int = 0


@dataclass(frozen=True)
class AwardResult:
    """Outcome of RewardLedger.award."""
    xp_awarded: int
    coins_awarded: int
    new_xp_total: int
    new_coins_total: int
    already_claimed: bool

    def to_dict(self) -> dict:
        return asdict(self)
