"""Tests for per-claim-type eligibility checks."""
import pytest

from scholar_rewards.core.exceptions import (
    NotFoundError,
    RequestValidationError,
    UnauthorizedError,
)
from scholar_rewards.rewards.models import ClaimType
from scholar_rewards.rewards.validators import (
    ChallengeClaim,
    GameClaim,
    get_validator,
)


@pytest.fixture
async def entities(db):
    """Backing rows for every claim type, owned by student s1."""
    await db.execute(
        "INSERT INTO practice_sets (id, student_id, status, score) VALUES (?, ?, ?, ?)",
        ("p-done", "s1", "completed", 80),
    )
    await db.execute(
        "INSERT INTO practice_sets (id, student_id, status, score) VALUES (?, ?, ?, ?)",
        ("p-low", "s1", "completed", 40),
    )
    await db.execute(
        "INSERT INTO practice_sets (id, student_id, status, score) VALUES (?, ?, ?, ?)",
        ("p-open", "s1", "in_progress", 90),
    )
    await db.execute(
        "INSERT INTO skill_games (id, student_id, status, high_score) VALUES (?, ?, ?, ?)",
        ("g1", "s1", "completed", 85),
    )
    await db.execute(
        """INSERT INTO attempts (id, student_id, assignment_id, status, xp_earned, coins_earned)
           VALUES (?, ?, ?, ?, ?, ?)""",
        ("a-verified", "s1", "asg-1", "verified", 70, 14),
    )
    await db.execute(
        "INSERT INTO attempts (id, student_id, assignment_id, status) VALUES (?, ?, ?, ?)",
        ("a-open", "s1", "asg-1", "in_progress"),
    )
    await db.execute("INSERT INTO challenges (id, title) VALUES (?, ?)", ("ch1", "Weekly"))
    await db.execute(
        """INSERT INTO challenge_participants (id, challenge_id, student_id, completed_at)
           VALUES (?, ?, ?, ?)""",
        ("cp-done", "ch1", "s1", "2026-10-01T10:00:00+00:00"),
    )
    await db.execute(
        "INSERT INTO challenge_participants (id, challenge_id, student_id) VALUES (?, ?, ?)",
        ("cp-open", "ch1", "s1"),
    )
    return db


class TestPracticeSetClaim:
    validator = get_validator(ClaimType.PRACTICE_SET)

    async def test_valid(self, entities):
        await self.validator.validate("s1", "p-done", 25, 10, {})

    async def test_missing(self, entities):
        with pytest.raises(NotFoundError, match="Practice set not found"):
            await self.validator.validate("s1", "nope", 25, 10, {})

    async def test_other_student(self, entities):
        with pytest.raises(UnauthorizedError):
            await self.validator.validate("s2", "p-done", 25, 10, {})

    async def test_not_completed(self, entities):
        with pytest.raises(RequestValidationError, match="not completed"):
            await self.validator.validate("s1", "p-open", 25, 10, {})

    async def test_score_too_low(self, entities):
        with pytest.raises(RequestValidationError, match="minimum threshold"):
            await self.validator.validate("s1", "p-low", 25, 10, {})

    async def test_over_cap(self, entities):
        with pytest.raises(RequestValidationError, match="exceed"):
            await self.validator.validate("s1", "p-done", 26, 10, {})


class TestGameClaim:
    validator = GameClaim()

    async def test_reported_score(self, entities):
        await self.validator.validate("s1", "g1", 30, 15, {"score": 75})

    async def test_reported_score_too_low(self, entities):
        """The reported score is checked even when the stored high score passes."""
        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "g1", 30, 15, {"score": 50})

    async def test_falls_back_to_high_score(self, entities):
        await self.validator.validate("s1", "g1", 30, 15, {})

    async def test_non_numeric_score(self, entities):
        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "g1", 30, 15, {"score": "100"})

    async def test_over_cap(self, entities):
        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "g1", 31, 15, {})


class TestStudyGoalClaim:
    validator = get_validator(ClaimType.STUDY_GOAL)

    async def test_within_fixed_ceiling(self, db):
        """No backing row is needed."""
        await self.validator.validate("s1", "goal-2026-10-18-0", 25, 10, {"goal_index": 0})

    async def test_missing_goal_index(self, db):
        with pytest.raises(RequestValidationError, match="goal index"):
            await self.validator.validate("s1", "goal-x", 5, 5, {})

    async def test_over_ceiling(self, db):
        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "goal-x", 26, 10, {"goal_index": 1})


class TestAssignmentClaim:
    validator = get_validator(ClaimType.ASSIGNMENT)

    async def test_capped_by_recorded_earnings(self, entities):
        await self.validator.validate("s1", "a-verified", 70, 14, {})

        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "a-verified", 71, 14, {})

    async def test_not_submitted(self, entities):
        with pytest.raises(RequestValidationError, match="valid state"):
            await self.validator.validate("s1", "a-open", 0, 0, {})

    async def test_other_student(self, entities):
        with pytest.raises(UnauthorizedError, match="Attempt does not belong"):
            await self.validator.validate("s2", "a-verified", 10, 2, {})


class TestChallengeClaim:
    validator = ChallengeClaim()

    async def test_valid(self, entities):
        await self.validator.validate("s1", "cp-done", 100, 25, {})

    async def test_not_completed(self, entities):
        with pytest.raises(RequestValidationError, match="not completed"):
            await self.validator.validate("s1", "cp-open", 100, 25, {})

    async def test_over_bonus(self, entities):
        with pytest.raises(RequestValidationError):
            await self.validator.validate("s1", "cp-done", 101, 25, {})

    async def test_marker_blocks_second_claim(self, entities):
        async with entities.transaction() as conn:
            await self.validator.on_credit(conn, "cp-done")

        with pytest.raises(RequestValidationError, match="already claimed"):
            await self.validator.validate("s1", "cp-done", 100, 25, {})


class TestRegistry:

    def test_every_claim_type_has_validator(self):
        for claim_type in ClaimType:
            assert get_validator(claim_type).claim_type == claim_type
