"""Tests for cumulative mastery tracking."""
import asyncio

import pytest

from scholar_rewards.core.exceptions import RequestValidationError
from scholar_rewards.mastery.tracker import MasteryTracker


class TestMasteryUpdate:

    async def test_unlock_on_cumulative_threshold(self, db):
        """6/10 stays locked; adding 5/10 makes 11/20 = 55%, still locked; 14/20 unlocks."""
        tracker = MasteryTracker(unlock_threshold=70)

        assert await tracker.update("s1", "geometry", 10, 6) is False
        assert await tracker.update("s1", "geometry", 10, 5) is False

        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (20, 11)
        assert record.unlocked is False

        assert await tracker.update("s1", "geometry", 10, 10) is True
        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (30, 21)
        assert record.unlocked is True
        assert record.unlocked_at is not None

    async def test_unlock_never_reverts(self, db):
        """A bad batch after unlocking leaves it unlocked with the same timestamp."""
        tracker = MasteryTracker(unlock_threshold=70)
        assert await tracker.update("s1", "geometry", 10, 8) is True
        first = await tracker.get("s1", "geometry")

        assert await tracker.update("s1", "geometry", 10, 0) is False

        after = await tracker.get("s1", "geometry")
        assert after.percentage == 40
        assert after.unlocked is True
        assert after.unlocked_at == first.unlocked_at

    async def test_exact_threshold_unlocks(self, db):
        tracker = MasteryTracker(unlock_threshold=70)
        assert await tracker.update("s1", "algebra", 10, 7) is True

    async def test_just_below_threshold(self, db):
        """69.9...% does not round up into an unlock."""
        tracker = MasteryTracker(unlock_threshold=70)
        assert await tracker.update("s1", "algebra", 1000, 699) is False

    async def test_categories_are_independent(self, db):
        tracker = MasteryTracker(unlock_threshold=70)
        await tracker.update("s1", "geometry", 10, 10)

        assert await tracker.update("s1", "algebra", 10, 1) is False
        assert (await tracker.get("s1", "algebra")).unlocked is False
        assert (await tracker.get("s1", "geometry")).unlocked is True

    async def test_empty_batch_creates_locked_record(self, db):
        tracker = MasteryTracker(unlock_threshold=70)
        assert await tracker.update("s1", "geometry", 0, 0) is False

        record = await tracker.get("s1", "geometry")
        assert record.questions_attempted == 0
        assert record.percentage == 0.0

    async def test_concurrent_updates_are_not_lost(self, db):
        tracker = MasteryTracker(unlock_threshold=70)

        results = await asyncio.gather(*(
            tracker.update("s1", "geometry", 1, 1) for _ in range(20)
        ))

        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (20, 20)
        assert results.count(True) == 1

    @pytest.mark.parametrize("attempted,correct", [(-1, 0), (5, -1), (5, 6)])
    async def test_bad_deltas_rejected(self, db, attempted, correct):
        with pytest.raises(RequestValidationError):
            await MasteryTracker().update("s1", "geometry", attempted, correct)

    async def test_unknown_record(self, db):
        assert await MasteryTracker().get("s1", "nothing") is None


class TestMasteryEvents:

    async def test_replayed_event_counts_once(self, db):
        tracker = MasteryTracker(unlock_threshold=70)

        assert await tracker.update("s1", "geometry", 10, 10, event_ref="attempt-1") is True
        assert await tracker.update("s1", "geometry", 10, 10, event_ref="attempt-1") is False

        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (10, 10)

    async def test_distinct_events_accumulate(self, db):
        tracker = MasteryTracker(unlock_threshold=70)
        await tracker.update("s1", "geometry", 10, 5, event_ref="attempt-1")
        await tracker.update("s1", "geometry", 10, 9, event_ref="attempt-2")
        await tracker.update("s1", "algebra", 10, 9, event_ref="attempt-1")

        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (20, 14)
        assert (await tracker.get("s1", "algebra")).questions_attempted == 10

    async def test_concurrent_replays_count_once(self, db):
        tracker = MasteryTracker(unlock_threshold=70)

        results = await asyncio.gather(*(
            tracker.update("s1", "geometry", 4, 3, event_ref="attempt-1") for _ in range(5)
        ))

        record = await tracker.get("s1", "geometry")
        assert (record.questions_attempted, record.questions_correct) == (4, 3)
        assert results.count(True) == 1

    async def test_rejected_deltas_leave_event_unclaimed(self, db):
        tracker = MasteryTracker(unlock_threshold=70)

        with pytest.raises(RequestValidationError):
            await tracker.update("s1", "geometry", 5, 6, event_ref="attempt-1")

        assert await tracker.update("s1", "geometry", 5, 5, event_ref="attempt-1") is True
