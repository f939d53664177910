"""
Unit tests for the premium subscription gate.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from service_tasks.app.subscriptions.gate import SubscriptionGate, available_plans, resolve_message
from service_tasks.app.subscriptions.models import (
    GateOutcome,
    PremiumRequirement,
    SubscriptionAccessInfo,
    SubscriptionStatus,
)
from shared.errors import SubscriptionLookupError
from shared.test_helpers import DummyMetrics


def access(status=SubscriptionStatus.ACTIVE, has_access=True, plan_type="monthly", days_remaining=20):
    return SubscriptionAccessInfo(
        status=status,
        has_access=has_access,
        plan_type=plan_type,
        days_remaining=days_remaining,
    )


class TestSubscriptionGate:
    """Gate behaviour on a small gated app."""

    @pytest.fixture
    def provider(self):
        provider = AsyncMock()
        provider.check_access.return_value = access()
        return provider

    @pytest.fixture
    def metrics(self):
        return DummyMetrics()

    @pytest.fixture
    def gate(self, provider, metrics):
        return SubscriptionGate(
            provider,
            metrics=metrics,
            user_resolver=lambda request: request.headers.get("X-User"),
        )

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def client(self, gate, calls):
        app = FastAPI()

        @app.api_route("/items", methods=["GET", "HEAD"])
        @gate.requires_premium(feature="item-viewing", allow_read_only=True)
        async def list_items(request: Request):
            calls.append("list")
            return {"success": True, "data": []}

        @app.post("/items")
        @gate.requires_premium(feature="item-creation")
        async def create_item(request: Request):
            calls.append("create")
            return {"success": True}

        @app.get("/raw")
        @gate.requires_premium(feature="raw-viewing", allow_read_only=True)
        async def raw_items(request: Request):
            calls.append("raw")
            return ["a", "b"]

        @app.post("/custom")
        @gate.requires_premium(message="Reports are a Premium feature", feature="reports")
        async def custom(request: Request):
            calls.append("custom")
            return {"success": True}

        return TestClient(app)

    def test_has_access_runs_handler_once_without_warning(self, client, calls):
        response = client.get("/items", headers={"X-User": "u1"})

        assert response.status_code == 200
        assert "subscriptionWarning" not in response.json()
        assert calls == ["list"]

    def test_write_without_access_is_denied(self, client, provider, calls):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )

        response = client.post("/items", headers={"X-User": "u1"})

        assert response.status_code == 402
        body = response.json()
        assert body["success"] is False
        assert body["requiresUpgrade"] is True
        assert "expired" in body["message"]
        assert body["subscriptionStatus"] == "EXPIRED"
        assert body["planType"] == "monthly"
        assert body["daysRemaining"] == 0
        assert body["feature"] == "item-creation"
        assert body["upgradeUrl"] == "/api/payments/checkout"
        assert set(body["availablePlans"]) == {"monthly", "quarterly", "yearly"}
        assert calls == []

    def test_denial_without_plan_reports_none(self, client, provider):
        provider.check_access.return_value = access(
            SubscriptionStatus.CANCELLED, has_access=False, plan_type=None, days_remaining=0
        )

        body = client.post("/items", headers={"X-User": "u1"}).json()

        assert body["planType"] == "none"
        assert body["message"] == "Premium subscription required to access this feature."

    def test_read_without_access_gets_warning(self, client, provider, calls):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )

        response = client.get("/items", headers={"X-User": "u1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        warning = body["subscriptionWarning"]
        assert warning["showUpgradeBanner"] is True
        assert warning["status"] == "EXPIRED"
        assert warning["planType"] == "monthly"
        assert warning["feature"] == "item-viewing"
        assert calls == ["list"]

    def test_head_without_access_is_read_only(self, client, provider, calls, metrics):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )

        response = client.head("/items", headers={"X-User": "u1"})

        assert response.status_code == 200
        assert calls == ["list"]
        assert metrics.gate_decisions == [("item-viewing", GateOutcome.PROCEED_WITH_WARNING.value)]

    @pytest.mark.asyncio
    async def test_head_is_treated_as_a_read(self, gate, provider):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )
        request = MagicMock(spec=Request)
        request.method = "HEAD"
        request.headers = {"X-User": "u1"}

        read_only = await gate.evaluate(request, PremiumRequirement(feature="reports", allow_read_only=True))
        write_only = await gate.evaluate(request, PremiumRequirement(feature="reports"))

        assert read_only.outcome is GateOutcome.PROCEED_WITH_WARNING
        assert read_only.warning["feature"] == "reports"
        assert write_only.outcome is GateOutcome.DENY

    def test_trial_warning_mentions_days_left(self, client, provider):
        provider.check_access.return_value = access(
            SubscriptionStatus.TRIAL, has_access=False, plan_type="trial", days_remaining=2
        )

        warning = client.get("/items", headers={"X-User": "u1"}).json()["subscriptionWarning"]

        assert "2" in warning["message"]
        assert warning["status"] == "TRIAL"

    def test_provider_failure_fails_open(self, client, provider, calls):
        provider.check_access.side_effect = SubscriptionLookupError("down")

        response = client.post("/items", headers={"X-User": "u1"})

        assert response.status_code == 200
        assert calls == ["create"]

    def test_anonymous_request_proceeds(self, client, provider, calls):
        response = client.post("/items")

        assert response.status_code == 200
        assert calls == ["create"]
        provider.check_access.assert_not_called()

    def test_custom_message_overrides_status_message(self, client, provider):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )

        body = client.post("/custom", headers={"X-User": "u1"}).json()

        assert body["message"] == "Reports are a Premium feature"

    def test_non_dict_result_is_returned_unchanged(self, client, provider, calls):
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )

        response = client.get("/raw", headers={"X-User": "u1"})

        assert response.json() == ["a", "b"]
        assert calls == ["raw"]

    def test_access_is_checked_on_every_call(self, client, provider):
        client.get("/items", headers={"X-User": "u1"})
        client.get("/items", headers={"X-User": "u1"})

        assert provider.check_access.await_count == 2

    def test_decisions_are_counted(self, client, provider, metrics):
        client.get("/items", headers={"X-User": "u1"})
        provider.check_access.return_value = access(
            SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0
        )
        client.get("/items", headers={"X-User": "u1"})
        client.post("/items", headers={"X-User": "u1"})

        assert metrics.gate_decisions == [
            ("item-viewing", GateOutcome.PROCEED.value),
            ("item-viewing", GateOutcome.PROCEED_WITH_WARNING.value),
            ("item-creation", GateOutcome.DENY.value),
        ]


class TestResolveMessage:
    """Status-specific upgrade messages."""

    def test_trial_with_days_left(self):
        message = resolve_message(
            PremiumRequirement(), access(SubscriptionStatus.TRIAL, has_access=False, days_remaining=5)
        )

        assert message.startswith("You have 5 days left in your trial.")

    def test_trial_with_no_days_left(self):
        message = resolve_message(
            PremiumRequirement(), access(SubscriptionStatus.TRIAL, has_access=False, days_remaining=0)
        )

        assert "14-day trial has expired" in message

    def test_expired(self):
        message = resolve_message(
            PremiumRequirement(), access(SubscriptionStatus.EXPIRED, has_access=False, days_remaining=0)
        )

        assert message.startswith("Your subscription has expired.")

    def test_past_due(self):
        message = resolve_message(
            PremiumRequirement(), access(SubscriptionStatus.PAST_DUE, has_access=False)
        )

        assert message == "Premium subscription required to access this feature."

    def test_available_plans(self):
        plans = available_plans()

        assert plans["monthly"] == {"price": 9.99, "duration": "30 days"}
        assert plans["quarterly"] == {"price": 24.99, "duration": "90 days"}
        assert plans["yearly"] == {"price": 99.99, "duration": "365 days"}
