"""CRUD operations for claim-backing entities."""
from datetime import datetime, timezone
from typing import Dict, Optional

import aiosqlite

from scholar_rewards.core.database import get_db


# ============================================================================
# LOOKUPS USED BY CLAIM VALIDATION
# ============================================================================

async def get_practice_set(practice_set_id: str) -> Optional[Dict]:
    """Get practice set by ID."""
    db = get_db()
    return await db.fetchone(
        """SELECT id, student_id, status, score, xp_reward, coin_reward
           FROM practice_sets WHERE id = ?""",
        (practice_set_id,),
    )


async def get_skill_game(game_id: str) -> Optional[Dict]:
    """Get skill game by ID."""
    db = get_db()
    return await db.fetchone(
        """SELECT id, student_id, status, high_score, xp_reward, coin_reward
           FROM skill_games WHERE id = ?""",
        (game_id,),
    )


async def get_attempt(attempt_id: str) -> Optional[Dict]:
    """Get assignment attempt by ID."""
    db = get_db()
    return await db.fetchone(
        """SELECT id, student_id, assignment_id, status, score,
                  xp_earned, coins_earned, verified_at
           FROM attempts WHERE id = ?""",
        (attempt_id,),
    )


async def get_challenge_participation(participant_id: str) -> Optional[Dict]:
    """
    Get a challenge participation joined with its challenge bonuses.

    Returns:
        Dict with participation fields plus xp_bonus and coin_bonus, or None
    """
    db = get_db()
    return await db.fetchone(
        """SELECT cp.id, cp.challenge_id, cp.student_id, cp.completed_at,
                  cp.rewards_claimed, c.xp_bonus, c.coin_bonus
           FROM challenge_participants cp
           JOIN challenges c ON c.id = cp.challenge_id
           WHERE cp.id = ?""",
        (participant_id,),
    )


# ============================================================================
# WRITES
# ============================================================================

async def record_attempt_outcome(
    conn: aiosqlite.Connection,
    attempt_id: str,
    student_id: str,
    score: Optional[int],
    xp_earned: int,
    coins_earned: int,
) -> bool:
    """
    Mark an attempt owned by the student as verified with its paid amounts.
    Runs inside the grading transaction.

    Args:
        score: Percentage to store; None keeps the stored score

    Returns:
        True if the attempt existed and was updated
    """
    cursor = await conn.execute(
        """UPDATE attempts
           SET status = 'verified', score = COALESCE(?, score),
               xp_earned = ?, coins_earned = ?, verified_at = ?
           WHERE id = ? AND student_id = ?""",
        (score, xp_earned, coins_earned,
         datetime.now(timezone.utc).isoformat(), attempt_id, student_id),
    )
    return cursor.rowcount > 0


async def increment_streak(conn: aiosqlite.Connection, student_id: str) -> None:
    """Extend the student's streak. Runs inside the crediting transaction."""
    await conn.execute(
        """UPDATE student_balances
           SET current_streak = current_streak + 1,
               longest_streak = MAX(longest_streak, current_streak + 1)
           WHERE student_id = ?""",
        (student_id,),
    )


async def mark_challenge_rewards_claimed(conn: aiosqlite.Connection, participant_id: str) -> None:
    """Set the one-shot claimed marker. Runs inside the crediting transaction."""
    await conn.execute(
        "UPDATE challenge_participants SET rewards_claimed = 1 WHERE id = ?",
        (participant_id,),
    )
