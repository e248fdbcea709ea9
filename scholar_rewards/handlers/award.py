"""Standalone reward claim entry point."""
import logging
from typing import Any, Dict, Optional

from scholar_rewards.core.exceptions import (
    ScholarRewardsError,
    StorageError,
    UnauthorizedError,
)
from scholar_rewards.handlers.responses import error_response, internal_error_response
from scholar_rewards.handlers.schemas import AwardRequest, parse_request
from scholar_rewards.rewards.ledger import RewardLedger
from scholar_rewards.rewards.models import AwardResult
from scholar_rewards.rewards.validators import get_validator

logger = logging.getLogger(__name__)


async def claim_reward(
    student_id: Optional[str],
    payload: Dict[str, Any],
    ledger: Optional[RewardLedger] = None,
) -> AwardResult:
    """
    Validate a claim against its backing entity and credit it once.

    Args:
        student_id: Authenticated student; None or empty is rejected
        payload: Raw award request

    Raises:
        UnauthorizedError, NotFoundError, RequestValidationError, StorageError
    """
    if not student_id:
        raise UnauthorizedError("User not authenticated")

    request = parse_request(AwardRequest, payload)
    validator = get_validator(request.claim_type)
    ledger = ledger or RewardLedger()

    # A replay of a paid claim gets the original grant back, even when the
    # entity itself (e.g. a one-shot challenge) would no longer validate
    if await ledger.get_claim(student_id, request.claim_type, request.reference_id) is None:
        await validator.validate(
            student_id,
            request.reference_id,
            request.xp_amount,
            request.coin_amount,
            request.validation_data,
        )

    return await ledger.award(
        student_id,
        request.claim_type,
        request.reference_id,
        request.xp_amount,
        request.coin_amount,
        request.reason,
        on_credit=validator.on_credit,
    )


async def handle_award_request(
    student_id: Optional[str],
    payload: Dict[str, Any],
    ledger: Optional[RewardLedger] = None,
) -> Dict[str, Any]:
    """Claim a reward and return the success dict or an error envelope."""
    try:
        result = await claim_reward(student_id, payload, ledger)
    except StorageError as e:
        logger.error("Award failed for student %s: %s", student_id, e)
        return error_response(e)
    except ScholarRewardsError as e:
        logger.warning("Claim rejected for student %s: [%s] %s", student_id, e.code, e)
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error while awarding rewards")
        return internal_error_response()

    return {"success": True, **result.to_dict()}
