"""Exactly-once reward crediting."""
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

import aiosqlite

from scholar_rewards.core.database import Database, get_db
from scholar_rewards.core.exceptions import RequestValidationError, StorageError
from scholar_rewards.rewards.models import AwardResult, ClaimRecord, ClaimType, StudentBalance
from scholar_rewards.utils.identity import claim_key

logger = logging.getLogger(__name__)

# Runs inside the crediting transaction, only on a first-time credit
OnCredit = Callable[[aiosqlite.Connection, str], Awaitable[None]]


class RewardLedger:
    """
    Credits XP and coins at most once per (student, claim type, reference).

    The claim row insert is the gate: it runs as INSERT ... ON CONFLICT DO
    NOTHING inside the same BEGIN IMMEDIATE transaction as the balance
    increment, so of N racing calls for one claim key exactly one sees its
    insert take effect and credits the balance. The others observe the
    existing row and return the recorded grant.
    """

    def __init__(self, db: Optional[Database] = None):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db or get_db()

    async def award(
        self,
        student_id: str,
        claim_type: Union[ClaimType, str],
        reference_id: str,
        xp_amount: int,
        coin_amount: int,
        reason: str,
        on_credit: Optional[OnCredit] = None,
    ) -> AwardResult:
        """
        Credit a reward once.

        Returns:
            AwardResult; ``already_claimed`` is True when the key was claimed
            before, in which case the amounts are those of the original grant
            and nothing is written

        Raises:
            RequestValidationError: Bad identifiers or amounts
            StorageError: Database failure (nothing is written)
        """
        try:
            async with self.db.transaction() as conn:
                return await self.credit(
                    conn, student_id, claim_type, reference_id,
                    xp_amount, coin_amount, reason, on_credit,
                )
        except aiosqlite.Error as e:
            logger.error("Award failed for student %s: %s", student_id, e)
            raise StorageError(f"Could not record reward: {e}") from e

    async def credit(
        self,
        conn: aiosqlite.Connection,
        student_id: str,
        claim_type: Union[ClaimType, str],
        reference_id: str,
        xp_amount: int,
        coin_amount: int,
        reason: str,
        on_credit: Optional[OnCredit] = None,
    ) -> AwardResult:
        """
        Same as ``award`` but inside a transaction the caller already holds,
        so the credit commits or rolls back together with the caller's writes.
        """
        claim_type = _claim_type(claim_type)
        _check_amount("xp_amount", xp_amount)
        _check_amount("coin_amount", coin_amount)
        if not student_id or not reference_id:
            raise RequestValidationError("student_id and reference_id are required")

        key = claim_key(student_id, claim_type.value, reference_id)
        now = datetime.now(timezone.utc).isoformat()

        cursor = await conn.execute(
            """INSERT INTO reward_claims
                   (claim_key, student_id, claim_type, reference_id,
                    xp_awarded, coins_awarded, reason, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(claim_key) DO NOTHING""",
            (key, student_id, claim_type.value, reference_id,
             xp_amount, coin_amount, reason, now),
        )

        if cursor.rowcount == 0:
            claim = await _fetch_claim(conn, key)
            balance = await _fetch_balance(conn, student_id)
            logger.info(
                "Duplicate claim %s for student %s (%s %s)",
                key, student_id, claim_type.value, reference_id,
            )
            return AwardResult(
                xp_awarded=claim.xp_amount,
                coins_awarded=claim.coin_amount,
                new_xp_total=balance.xp_total,
                new_coins_total=balance.coins_total,
                already_claimed=True,
            )

        await conn.execute(
            """INSERT INTO student_balances (student_id, xp_total, coins_total, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(student_id) DO UPDATE SET
                   xp_total = student_balances.xp_total + excluded.xp_total,
                   coins_total = student_balances.coins_total + excluded.coins_total,
                   updated_at = excluded.updated_at""",
            (student_id, xp_amount, coin_amount, now),
        )
        await conn.execute(
            """INSERT INTO reward_ledger
                   (student_id, claim_key, xp_delta, coin_delta, reason, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (student_id, key, xp_amount, coin_amount, reason, now),
        )
        if on_credit is not None:
            await on_credit(conn, reference_id)

        balance = await _fetch_balance(conn, student_id)
        logger.info(
            "Crediting %d XP / %d coins to student %s (%s %s)",
            xp_amount, coin_amount, student_id, claim_type.value, reference_id,
        )
        return AwardResult(
            xp_awarded=xp_amount,
            coins_awarded=coin_amount,
            new_xp_total=balance.xp_total,
            new_coins_total=balance.coins_total,
            already_claimed=False,
        )

    async def find_claim(
        self,
        conn: aiosqlite.Connection,
        student_id: str,
        claim_type: Union[ClaimType, str],
        reference_id: str,
    ) -> Optional[ClaimRecord]:
        """Claim lookup inside a caller's transaction."""
        key = claim_key(student_id, _claim_type(claim_type).value, reference_id)
        async with conn.execute(_CLAIM_QUERY, (key,)) as cursor:
            row = await cursor.fetchone()
        return _claim_from_row(row) if row else None

    async def get_balance(self, student_id: str) -> StudentBalance:
        """Current balance; zero for a student who was never credited."""
        row = await self.db.fetchone(
            """SELECT student_id, xp_total, coins_total, current_streak, longest_streak
               FROM student_balances WHERE student_id = ?""",
            (student_id,),
        )
        if not row:
            return StudentBalance(student_id=student_id, xp_total=0, coins_total=0)
        return StudentBalance(**row)

    async def get_claim(
        self, student_id: str, claim_type: Union[ClaimType, str], reference_id: str
    ) -> Optional[ClaimRecord]:
        key = claim_key(student_id, _claim_type(claim_type).value, reference_id)
        row = await self.db.fetchone(_CLAIM_QUERY, (key,))
        return _claim_from_row(row) if row else None

    async def get_reward_history(self, student_id: str, limit: int = 20) -> list[dict]:
        """Most recent ledger entries for a student, newest first."""
        return await self.db.fetchall(
            """SELECT id, claim_key, xp_delta, coin_delta, reason, created_at
               FROM reward_ledger
               WHERE student_id = ?
               ORDER BY id DESC
               LIMIT ?""",
            (student_id, limit),
        )


_CLAIM_QUERY = """
    SELECT claim_key, student_id, claim_type, reference_id,
           xp_awarded, coins_awarded, reason, created_at
    FROM reward_claims WHERE claim_key = ?
"""


def _claim_type(value: Union[ClaimType, str]) -> ClaimType:
    try:
        return ClaimType(value)
    except ValueError:
        raise RequestValidationError(f"Unknown claim type: {value}")


def _check_amount(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RequestValidationError(f"{name} must be a non-negative integer")


def _claim_from_row(row) -> ClaimRecord:
    return ClaimRecord(
        claim_key=row["claim_key"],
        student_id=row["student_id"],
        claim_type=row["claim_type"],
        reference_id=row["reference_id"],
        xp_amount=row["xp_awarded"],
        coin_amount=row["coins_awarded"],
        reason=row["reason"],
        created_at=row["created_at"],
    )


async def _fetch_claim(conn: aiosqlite.Connection, key: str) -> ClaimRecord:
    async with conn.execute(_CLAIM_QUERY, (key,)) as cursor:
        return _claim_from_row(await cursor.fetchone())


async def _fetch_balance(conn: aiosqlite.Connection, student_id: str) -> StudentBalance:
    async with conn.execute(
        "SELECT xp_total, coins_total FROM student_balances WHERE student_id = ?",
        (student_id,),
    ) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return StudentBalance(student_id=student_id, xp_total=0, coins_total=0)
    return StudentBalance(student_id=student_id, xp_total=row["xp_total"], coins_total=row["coins_total"])
