"""
Premium subscription gate.

Routes opt in with ``@gate.requires_premium(...)``. For every gated call
the gate resolves the caller, fetches subscription access fresh, and
either lets the handler run, lets it run and tags the result with an
upgrade warning, or answers 402 without running it. Any failure while
resolving the caller or their subscription lets the call through.
"""

import functools
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..auth.identity import current_user_id
from .models import (
    DEFAULT_PREMIUM_MESSAGE,
    GateDecision,
    GateOutcome,
    PlanType,
    PremiumRequirement,
    SubscriptionAccessInfo,
    SubscriptionStatus,
)
from .provider import SubscriptionProvider

READ_METHODS = frozenset({"GET", "HEAD"})
PAYMENT_REQUIRED = 402
DEFAULT_UPGRADE_URL = "/api/payments/checkout"

UserResolver = Callable[[Request], Optional[str]]


def available_plans() -> Dict[str, Dict[str, Any]]:
    """Paid plans offered in an upgrade prompt."""
    plans = (PlanType.MONTHLY, PlanType.QUARTERLY, PlanType.YEARLY)
    return {
        plan.value: {"price": plan.price, "duration": f"{plan.duration_days} days"}
        for plan in plans
    }


def resolve_message(requirement: PremiumRequirement, access: SubscriptionAccessInfo) -> str:
    """Pick the user-facing message for a denial or warning."""
    if requirement.message and requirement.message != DEFAULT_PREMIUM_MESSAGE:
        return requirement.message

    if access.status is SubscriptionStatus.TRIAL:
        if access.days_remaining > 0:
            return (
                f"You have {access.days_remaining} days left in your trial. "
                "Upgrade now to continue after trial expires."
            )
        return "Your 14-day trial has expired. Upgrade to Premium to continue using this feature."

    if access.status is SubscriptionStatus.EXPIRED:
        return "Your subscription has expired. Renew your plan to continue using premium features."

    return "Premium subscription required to access this feature."


def _find_request(args: tuple, kwargs: Dict[str, Any]) -> Optional[Request]:
    for value in list(kwargs.values()) + list(args):
        if isinstance(value, Request):
            return value
    return None


class SubscriptionGate:
    """Checks premium access before gated route handlers run."""

    def __init__(
        self,
        provider: SubscriptionProvider,
        metrics: Optional[MetricsCollector] = None,
        user_resolver: UserResolver = current_user_id,
        upgrade_url: str = DEFAULT_UPGRADE_URL,
    ):
        self.provider = provider
        self.metrics = metrics
        self.user_resolver = user_resolver
        self.upgrade_url = upgrade_url
        self.logger = get_logger("tasks.subscription_gate")

    async def evaluate(self, request: Request, requirement: PremiumRequirement) -> GateDecision:
        """Decide what happens to one gated call."""
        try:
            user_id = self.user_resolver(request)
            if not user_id:
                self.logger.debug("No user resolved, skipping subscription check", feature=requirement.feature)
                return GateDecision.proceed()

            access = await self.provider.check_access(user_id)
        except Exception as e:
            self.logger.error(
                "Subscription check failed, allowing request",
                feature=requirement.feature,
                error=str(e),
            )
            return GateDecision.proceed()

        if access.has_access:
            return GateDecision.proceed()

        message = resolve_message(requirement, access)

        if requirement.allow_read_only and request.method.upper() in READ_METHODS:
            self.logger.info(
                "Premium feature accessed read-only",
                user_id=user_id,
                feature=requirement.feature,
                status=access.status.value,
            )
            return GateDecision.proceed_with_warning(self._warning(requirement, access, message))

        self.logger.info(
            "Premium feature access denied",
            user_id=user_id,
            feature=requirement.feature,
            status=access.status.value,
        )
        return GateDecision.deny(self._denial(requirement, access, message))

    def _warning(self, requirement: PremiumRequirement, access: SubscriptionAccessInfo,
                 message: str) -> Dict[str, Any]:
        return {
            "message": message,
            "status": access.status.value,
            "planType": access.plan_type,
            "showUpgradeBanner": True,
            "feature": requirement.feature,
        }

    def _denial(self, requirement: PremiumRequirement, access: SubscriptionAccessInfo,
                message: str) -> Dict[str, Any]:
        return {
            "success": False,
            "requiresUpgrade": True,
            "message": message,
            "subscriptionStatus": access.status.value,
            "planType": access.plan_type or "none",
            "daysRemaining": access.days_remaining,
            "feature": requirement.feature,
            "upgradeUrl": self.upgrade_url,
            "availablePlans": available_plans(),
        }

    def _record(self, requirement: PremiumRequirement, decision: GateDecision) -> None:
        if self.metrics is not None:
            self.metrics.record_gate_decision(requirement.feature, decision.outcome.value)

    def requires_premium(self, message: str = DEFAULT_PREMIUM_MESSAGE, feature: str = "",
                         allow_read_only: bool = False):
        """Decorator gating a route handler on premium access.

        The handler must take a ``request: Request`` parameter.
        """
        requirement = PremiumRequirement(message=message, feature=feature, allow_read_only=allow_read_only)

        def decorator(handler):
            @functools.wraps(handler)
            async def wrapper(*args, **kwargs):
                request = _find_request(args, kwargs)
                if request is None:
                    self.logger.warning("Gated handler called without a request", feature=feature)
                    return await handler(*args, **kwargs)

                decision = await self.evaluate(request, requirement)
                self._record(requirement, decision)

                if decision.outcome is GateOutcome.DENY:
                    return JSONResponse(status_code=PAYMENT_REQUIRED, content=decision.payload)

                result = await handler(*args, **kwargs)

                if decision.outcome is GateOutcome.PROCEED_WITH_WARNING and isinstance(result, dict):
                    result["subscriptionWarning"] = decision.warning
                return result

            return wrapper

        return decorator
