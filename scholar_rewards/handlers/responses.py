"""Response envelope shared by the entry points."""
from typing import Any, Dict

from scholar_rewards.core.exceptions import ScholarRewardsError


def error_response(error: ScholarRewardsError) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": error.code, "message": str(error) or error.code},
    }


def internal_error_response() -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": "INTERNAL_ERROR", "message": "Internal server error"},
    }
