"""Best-effort mirroring of grading outcomes to a partner system."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

import aiohttp

from scholar_rewards.config import settings
from scholar_rewards.utils.identity import deterministic_uuid

logger = logging.getLogger(__name__)


class OutcomeNotifier:
    """
    Posts outcome events in background tasks.

    ``notify_graded`` returns immediately; delivery failures are logged and
    never reach the caller. ``drain`` waits for in-flight deliveries and is
    meant for shutdown and tests.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        source_app: Optional[str] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.SYNC_WEBHOOK_URL
        self.timeout_seconds = timeout_seconds or settings.SYNC_TIMEOUT_SECONDS
        self.source_app = source_app or settings.SOURCE_APP
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def build_graded_event(
        self,
        student_id: str,
        assignment_id: str,
        attempt_id: Optional[str],
        result: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Event envelope for a graded assignment."""
        event_id = deterministic_uuid(
            "assignment_graded", student_id, assignment_id, attempt_id or ""
        )
        return {
            "source": self.source_app,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": "assignment_graded",
            "event_id": str(event_id),
            "data": {
                "student_id": student_id,
                "assignment_id": assignment_id,
                "attempt_id": attempt_id,
                "score": result["score"],
                "total_questions": result["total_questions"],
                "percentage": result["percentage"],
                "passed": result["meets_threshold"],
                "xp_earned": result["xp_earned"],
                "coins_earned": result["coins_earned"],
                "incorrect_skill_tags": result["incorrect_skill_tags"],
            },
        }

    def notify_graded(
        self,
        student_id: str,
        assignment_id: str,
        attempt_id: Optional[str],
        result: Dict[str, Any],
    ) -> Optional[asyncio.Task]:
        """Schedule delivery of a graded event. Returns the task, or None if disabled."""
        if not self.enabled:
            return None

        event = self.build_graded_event(student_id, assignment_id, attempt_id, result)
        task = asyncio.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for all in-flight deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, event: Dict[str, Any]) -> bool:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    self.webhook_url,
                    json=event,
                    headers={"x-source-app": self.source_app},
                ) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(
                            "Outcome sync rejected (%s) for event %s: %s",
                            response.status, event["event_id"], body[:200],
                        )
                        return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Outcome sync failed for event %s: %s", event["event_id"], e)
            return False
        except Exception:
            logger.exception("Outcome sync crashed for event %s", event["event_id"])
            return False

        logger.info("Outcome synced: event %s", event["event_id"])
        return True


_notifier: Optional[OutcomeNotifier] = None


def get_notifier() -> OutcomeNotifier:
    """Get global notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = OutcomeNotifier()
    return _notifier
