"""
Subscription access data models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_PREMIUM_MESSAGE = "Upgrade to Premium to continue using this feature"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states."""
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    PAST_DUE = "PAST_DUE"
    PENDING_PAYMENT = "PENDING_PAYMENT"


class PlanType(str, Enum):
    """Purchasable plans."""
    TRIAL = "trial"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def display_name(self) -> str:
        return PLAN_CATALOG[self]["display_name"]

    @property
    def price(self) -> float:
        return PLAN_CATALOG[self]["price"]

    @property
    def duration_days(self) -> int:
        return PLAN_CATALOG[self]["duration_days"]

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["PlanType"]:
        if not code:
            return None
        try:
            return cls(code.lower())
        except ValueError:
            return None


PLAN_CATALOG: Dict[PlanType, Dict[str, Any]] = {
    PlanType.TRIAL: {"display_name": "14-day Trial", "price": 0.00, "duration_days": 14},
    PlanType.MONTHLY: {"display_name": "Monthly Plan", "price": 9.99, "duration_days": 30},
    PlanType.QUARTERLY: {"display_name": "Quarterly Plan", "price": 24.99, "duration_days": 90},
    PlanType.YEARLY: {"display_name": "Yearly Plan", "price": 99.99, "duration_days": 365},
}


class SubscriptionAccessInfo(BaseModel):
    """Point-in-time view of a user's subscription. Never cached."""
    status: SubscriptionStatus = Field(..., description="Current subscription status")
    plan_type: Optional[str] = Field(None, description="Plan code, if any")
    days_remaining: int = Field(default=0, ge=0, description="Whole days until expiry")
    has_access: bool = Field(..., description="Whether premium features are available")
    expiry_date: Optional[datetime] = Field(None, description="Subscription expiry")
    message: Optional[str] = Field(None, description="Provider explanation")


class UserProfile(BaseModel):
    """Premium fields of a user profile."""
    user_id: str
    is_premium: bool = False
    premium_plan_type: Optional[str] = None
    premium_expiry: Optional[datetime] = None


@dataclass(frozen=True)
class PremiumRequirement:
    """Per-route gate configuration."""
    message: str = DEFAULT_PREMIUM_MESSAGE
    feature: str = ""
    allow_read_only: bool = False


class GateOutcome(str, Enum):
    """Result of a gate check."""
    PROCEED = "proceed"
    PROCEED_WITH_WARNING = "proceed_with_warning"
    DENY = "deny"


@dataclass
class GateDecision:
    """Outcome of one intercepted call; lives only for the request."""
    outcome: GateOutcome
    warning: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def proceed(cls) -> "GateDecision":
        return cls(GateOutcome.PROCEED)

    @classmethod
    def proceed_with_warning(cls, warning: Dict[str, Any]) -> "GateDecision":
        return cls(GateOutcome.PROCEED_WITH_WARNING, warning=warning)

    @classmethod
    def deny(cls, payload: Dict[str, Any]) -> "GateDecision":
        return cls(GateOutcome.DENY, payload=payload)
