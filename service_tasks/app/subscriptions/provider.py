"""
Subscription access providers.

Access is computed fresh for every call; nothing here caches a decision.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.errors import SubscriptionLookupError
from shared.logging import get_logger

from .models import PlanType, SubscriptionAccessInfo, SubscriptionStatus, UserProfile

ProfileLookup = Callable[[str], Awaitable[Optional[UserProfile]]]


class SubscriptionProvider(Protocol):
    """Source of subscription access decisions."""

    async def check_access(self, user_id: str) -> SubscriptionAccessInfo:
        ...


def evaluate_access(profile: Optional[UserProfile], now: Optional[datetime] = None) -> SubscriptionAccessInfo:
    """Derive access from a profile's premium flag, plan and expiry."""
    now = now or datetime.now(timezone.utc)

    if profile is None:
        return SubscriptionAccessInfo(
            has_access=False,
            status=SubscriptionStatus.EXPIRED,
            plan_type=None,
            days_remaining=0,
            message="User profile not found",
        )

    expiry = profile.premium_expiry
    if expiry is not None and expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)

    if not profile.is_premium or expiry is None:
        return SubscriptionAccessInfo(
            has_access=False,
            status=SubscriptionStatus.EXPIRED,
            plan_type=profile.premium_plan_type,
            days_remaining=0,
            message="No active subscription",
        )

    if expiry > now:
        plan = PlanType.from_code(profile.premium_plan_type)
        return SubscriptionAccessInfo(
            has_access=True,
            status=SubscriptionStatus.TRIAL if plan is PlanType.TRIAL else SubscriptionStatus.ACTIVE,
            plan_type=profile.premium_plan_type,
            days_remaining=(expiry - now).days,
            expiry_date=expiry,
            message="Subscription active",
        )

    return SubscriptionAccessInfo(
        has_access=False,
        status=SubscriptionStatus.EXPIRED,
        plan_type=profile.premium_plan_type,
        days_remaining=0,
        expiry_date=expiry,
        message="Subscription expired",
    )


class ProfileSubscriptionProvider:
    """Evaluates access from user profiles on every call."""

    def __init__(self, profile_lookup: ProfileLookup, clock: Optional[Callable[[], datetime]] = None):
        self.profile_lookup = profile_lookup
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("tasks.subscriptions.profile")

    async def check_access(self, user_id: str) -> SubscriptionAccessInfo:
        try:
            profile = await self.profile_lookup(user_id)
        except Exception as e:
            raise SubscriptionLookupError("Profile lookup failed", details={"user_id": user_id, "error": str(e)})
        return evaluate_access(profile, self.clock())


class InMemoryProfileStore:
    """Profile store backing local runs and tests."""

    def __init__(self, profiles: Optional[Dict[str, UserProfile]] = None):
        self._profiles: Dict[str, UserProfile] = dict(profiles or {})

    def put(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile

    async def get(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)


class HttpSubscriptionProvider:
    """Client for a remote subscription service. No retries."""

    def __init__(self, base_url: str, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("tasks.subscriptions.http")

    async def check_access(self, user_id: str) -> SubscriptionAccessInfo:
        url = f"{self.base_url}/subscriptions/{user_id}/access"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            self.logger.error("Subscription service HTTP error", user_id=user_id, error=str(e))
            raise SubscriptionLookupError("Subscription service unavailable", details={"http_error": str(e)})

        if response.status_code != 200:
            raise SubscriptionLookupError(
                f"Subscription service error: {response.status_code}",
                details={"status_code": response.status_code, "user_id": user_id}
            )

        try:
            return SubscriptionAccessInfo.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise SubscriptionLookupError("Malformed subscription response", details={"error": str(e)})
