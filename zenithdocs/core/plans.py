"""Subscription plans and their monthly token quotas."""

from __future__ import annotations

import enum


class Plan(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


PLAN_TOKEN_LIMITS: dict[Plan, int] = {
    Plan.FREE: 10_000,
    Plan.PREMIUM: 100_000,
}


def token_limit_for(plan: str | Plan) -> int:
    return PLAN_TOKEN_LIMITS[Plan(plan)]
