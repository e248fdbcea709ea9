"""Cumulative per-category mastery with a one-way unlock."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from scholar_rewards.config import settings
from scholar_rewards.core.database import Database, get_db
from scholar_rewards.core.exceptions import RequestValidationError, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MasteryRecord:
    student_id: str
    category: str
    questions_attempted: int
    questions_correct: int
    unlocked: bool
    unlocked_at: Optional[str]

    @property
    def percentage(self) -> float:
        if self.questions_attempted == 0:
            return 0.0
        return self.questions_correct / self.questions_attempted * 100


class MasteryTracker:
    """
    Accumulates attempted/correct counts per (student, category).

    Once a record is unlocked it stays unlocked and its unlocked_at never
    changes, whatever later batches do to the percentage.
    """

    def __init__(self, db: Optional[Database] = None, unlock_threshold: Optional[int] = None):
        self._db = db
        self.unlock_threshold = (
            unlock_threshold if unlock_threshold is not None else settings.MASTERY_UNLOCK_THRESHOLD
        )

    @property
    def db(self) -> Database:
        return self._db or get_db()

    async def update(
        self,
        student_id: str,
        category: str,
        attempted_delta: int,
        correct_delta: int,
        event_ref: Optional[str] = None,
    ) -> bool:
        """
        Add a batch of answers to the student's record.

        Args:
            event_ref: Grading event the batch came from; a batch whose
                event was already counted is ignored

        Returns:
            True only if this update caused a new unlock
        """
        try:
            async with self.db.transaction() as conn:
                return await self.apply(
                    conn, student_id, category, attempted_delta, correct_delta, event_ref
                )
        except aiosqlite.Error as e:
            raise StorageError(f"Could not update mastery: {e}") from e

    async def apply(
        self,
        conn: aiosqlite.Connection,
        student_id: str,
        category: str,
        attempted_delta: int,
        correct_delta: int,
        event_ref: Optional[str] = None,
    ) -> bool:
        """Same as ``update`` inside a transaction the caller already holds."""
        if attempted_delta < 0 or correct_delta < 0 or correct_delta > attempted_delta:
            raise RequestValidationError(
                f"Invalid mastery deltas: attempted={attempted_delta}, correct={correct_delta}"
            )

        now = datetime.now(timezone.utc).isoformat()

        if event_ref is not None:
            cursor = await conn.execute(
                """INSERT INTO mastery_events (student_id, category, event_ref, created_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(student_id, category, event_ref) DO NOTHING""",
                (student_id, category, event_ref, now),
            )
            if cursor.rowcount == 0:
                logger.info(
                    "Mastery event %s already counted for student %s (%s)",
                    event_ref, student_id, category,
                )
                return False

        current = await _fetch(conn, student_id, category)
        attempted = (current.questions_attempted if current else 0) + attempted_delta
        correct = (current.questions_correct if current else 0) + correct_delta
        was_unlocked = bool(current and current.unlocked)

        newly_unlocked = (
            not was_unlocked
            and attempted > 0
            and correct * 100 >= self.unlock_threshold * attempted
        )

        await conn.execute(
            """INSERT INTO mastery_records
                   (student_id, category, questions_attempted, questions_correct,
                    unlocked, unlocked_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(student_id, category) DO UPDATE SET
                   questions_attempted = excluded.questions_attempted,
                   questions_correct = excluded.questions_correct,
                   unlocked = MAX(mastery_records.unlocked, excluded.unlocked),
                   unlocked_at = COALESCE(mastery_records.unlocked_at, excluded.unlocked_at),
                   updated_at = excluded.updated_at""",
            (student_id, category, attempted, correct,
             1 if newly_unlocked else 0, now if newly_unlocked else None, now),
        )

        if newly_unlocked:
            logger.info(
                "Mastery unlocked: student=%s category=%s (%d/%d)",
                student_id, category, correct, attempted,
            )
        return newly_unlocked

    async def get(self, student_id: str, category: str) -> Optional[MasteryRecord]:
        row = await self.db.fetchone(
            """SELECT student_id, category, questions_attempted, questions_correct,
                      unlocked, unlocked_at
               FROM mastery_records WHERE student_id = ? AND category = ?""",
            (student_id, category),
        )
        return _record_from_row(row) if row else None


def _record_from_row(row) -> MasteryRecord:
    return MasteryRecord(
        student_id=row["student_id"],
        category=row["category"],
        questions_attempted=row["questions_attempted"],
        questions_correct=row["questions_correct"],
        unlocked=bool(row["unlocked"]),
        unlocked_at=row["unlocked_at"],
    )


async def _fetch(conn: aiosqlite.Connection, student_id: str, category: str) -> Optional[MasteryRecord]:
    async with conn.execute(
        """SELECT student_id, category, questions_attempted, questions_correct,
                  unlocked, unlocked_at
           FROM mastery_records WHERE student_id = ? AND category = ?""",
        (student_id, category),
    ) as cursor:
        row = await cursor.fetchone()
    return _record_from_row(row) if row else None
