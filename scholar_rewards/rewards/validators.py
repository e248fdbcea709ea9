"""Per-claim-type eligibility checks for standalone reward claims."""
from typing import Any, Dict, Optional

import aiosqlite

from scholar_rewards.config import settings
from scholar_rewards.core.exceptions import (
    NotFoundError,
    RequestValidationError,
    UnauthorizedError,
)
from scholar_rewards.database import crud
from scholar_rewards.rewards.models import ClaimType


class ClaimValidator:
    """
    Base validator. Subclasses implement ``validate`` and raise
    NotFoundError, UnauthorizedError or RequestValidationError to reject.
    """

    claim_type: ClaimType
    entity_name = "Entity"

    async def validate(
        self,
        student_id: str,
        reference_id: str,
        requested_xp: int,
        requested_coins: int,
        extra: Dict[str, Any],
    ) -> None:
        raise NotImplementedError

    async def on_credit(self, conn: aiosqlite.Connection, reference_id: str) -> None:
        """Hook run inside the crediting transaction of a first-time award."""

    # ------------------------------------------------------------------
    # Shared rules
    # ------------------------------------------------------------------
    def _require_owned(self, entity: Optional[Dict], student_id: str) -> Dict:
        if not entity:
            raise NotFoundError(f"{self.entity_name} not found")
        if entity["student_id"] != student_id:
            raise UnauthorizedError(f"{self.entity_name} does not belong to this user")
        return entity

    @staticmethod
    def _require_within_cap(
        requested_xp: int, requested_coins: int, max_xp: int, max_coins: int
    ) -> None:
        if requested_xp > max_xp or requested_coins > max_coins:
            raise RequestValidationError(
                f"Requested rewards exceed allowed amounts ({max_xp} XP, {max_coins} coins)"
            )

    @staticmethod
    def _require_score(score: Any, minimum: int) -> None:
        if isinstance(score, bool) or not isinstance(score, (int, float)) or score < minimum:
            raise RequestValidationError(
                f"Score does not meet the minimum threshold ({minimum}%)"
            )


class PracticeSetClaim(ClaimValidator):
    claim_type = ClaimType.PRACTICE_SET
    entity_name = "Practice set"

    async def validate(self, student_id, reference_id, requested_xp, requested_coins, extra):
        practice_set = self._require_owned(await crud.get_practice_set(reference_id), student_id)

        if practice_set["status"] != "completed":
            raise RequestValidationError("Practice set is not completed")

        self._require_score(practice_set["score"], settings.PRACTICE_MINIMUM)
        self._require_within_cap(
            requested_xp, requested_coins, practice_set["xp_reward"], practice_set["coin_reward"]
        )


class GameClaim(ClaimValidator):
    claim_type = ClaimType.GAME
    entity_name = "Game"

    async def validate(self, student_id, reference_id, requested_xp, requested_coins, extra):
        game = self._require_owned(await crud.get_skill_game(reference_id), student_id)

        # Score reported with the claim; the stored high score covers replays
        score = extra.get("score")
        if score is None:
            score = game["high_score"]
        self._require_score(score, settings.GAME_MINIMUM)
        self._require_within_cap(
            requested_xp, requested_coins, game["xp_reward"], game["coin_reward"]
        )


class StudyGoalClaim(ClaimValidator):
    """Client-reported goals have no backing row; a fixed ceiling bounds them."""

    claim_type = ClaimType.STUDY_GOAL

    async def validate(self, student_id, reference_id, requested_xp, requested_coins, extra):
        if extra.get("goal_index") is None:
            raise RequestValidationError("Missing goal index")

        self._require_within_cap(
            requested_xp, requested_coins,
            settings.STUDY_GOAL_MAX_XP, settings.STUDY_GOAL_MAX_COINS,
        )


class AssignmentClaim(ClaimValidator):
    claim_type = ClaimType.ASSIGNMENT
    entity_name = "Attempt"

    async def validate(self, student_id, reference_id, requested_xp, requested_coins, extra):
        attempt = self._require_owned(await crud.get_attempt(reference_id), student_id)

        if attempt["status"] not in ("verified", "submitted"):
            raise RequestValidationError("Attempt is not in a valid state for rewards")

        self._require_within_cap(
            requested_xp, requested_coins, attempt["xp_earned"], attempt["coins_earned"]
        )


class ChallengeClaim(ClaimValidator):
    claim_type = ClaimType.CHALLENGE
    entity_name = "Challenge participation"

    async def validate(self, student_id, reference_id, requested_xp, requested_coins, extra):
        participant = self._require_owned(
            await crud.get_challenge_participation(reference_id), student_id
        )

        if not participant["completed_at"]:
            raise RequestValidationError("Challenge not completed")

        if participant["rewards_claimed"]:
            raise RequestValidationError("Challenge rewards already claimed")

        self._require_within_cap(
            requested_xp, requested_coins, participant["xp_bonus"], participant["coin_bonus"]
        )

    async def on_credit(self, conn, reference_id):
        await crud.mark_challenge_rewards_claimed(conn, reference_id)


VALIDATORS: Dict[ClaimType, ClaimValidator] = {
    v.claim_type: v
    for v in (PracticeSetClaim(), GameClaim(), StudyGoalClaim(), AssignmentClaim(), ChallengeClaim())
}


def get_validator(claim_type: ClaimType) -> ClaimValidator:
    return VALIDATORS[claim_type]
