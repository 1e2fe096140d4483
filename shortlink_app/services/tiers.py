"""
Owner quotas by billing plan.

The plan itself is decided upstream (billing); this module only turns the
plan name into the numeric ceiling the allocator enforces.
"""

from enum import Enum
from typing import Optional


class Plan(Enum):
    """Plans known to the billing collaborator"""
    FREE = "free"
    PRO = "pro"


FREE_MAX_URLS = 10
PRO_MAX_URLS = 500

MAX_URLS_BY_PLAN = {
    Plan.FREE: FREE_MAX_URLS,
    Plan.PRO: PRO_MAX_URLS,
}


def parse_plan(plan: Optional[str]) -> Plan:
    """Unknown or missing plans fall back to free."""
    try:
        return Plan((plan or Plan.FREE.value).strip().lower())
    except ValueError:
        return Plan.FREE


def quota_for_plan(plan: Optional[str]) -> int:
    return MAX_URLS_BY_PLAN[parse_plan(plan)]
