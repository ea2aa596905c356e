"""
Route guard component unit tests.

Tests for the pure route decision and the asynchronous guard state machine.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from uhub.components.route_guard import (
    CheckRouteInput,
    GuardState,
    RouteGuard,
    evaluate,
    run_check,
)
from uhub.domain.policy import AccessResolver
from uhub.rules.loader import load_rules

RULES_PATH = Path(__file__).resolve().parents[4] / "rules.yaml"

# --- Mock Implementations ---


class MockRoleSource:
    """Answers with ``role`` after ``delay`` seconds, or raises ``error``."""

    def __init__(self, role: str | None = None) -> None:
        self.role = role
        self.delay = 0.0
        self.error: Exception | None = None
        self.calls = 0

    async def resolve_role(self) -> str | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.role


class MockNavigator:
    def __init__(self) -> None:
        self.redirects: list[str] = []

    def redirect(self, path: str) -> None:
        self.redirects.append(path)


# --- Fixtures ---


@pytest.fixture(scope="module")
def resolver() -> AccessResolver:
    return AccessResolver(load_rules(RULES_PATH))


@pytest.fixture
def source() -> MockRoleSource:
    return MockRoleSource()


@pytest.fixture
def navigator() -> MockNavigator:
    return MockNavigator()


@pytest.fixture
def guard(
    resolver: AccessResolver, source: MockRoleSource, navigator: MockNavigator
) -> RouteGuard:
    return RouteGuard(resolver, source, navigator)


# --- Pure decision ---


class TestEvaluate:
    def test_granted(self, resolver: AccessResolver) -> None:
        decision = evaluate(resolver, "hr_manager", "/payroll")
        assert decision.allowed is True
        assert decision.redirect_to is None

    def test_forbidden_redirects_to_landing(self, resolver: AccessResolver) -> None:
        decision = evaluate(resolver, "employee", "/payroll")
        assert decision.allowed is False
        assert decision.reason == "forbidden"
        assert decision.redirect_to == "/tasks"

    def test_unknown_route_redirects_to_landing(self, resolver: AccessResolver) -> None:
        decision = evaluate(resolver, "finance", "/nowhere")
        assert decision.allowed is False
        assert decision.reason == "unknown route"
        assert decision.redirect_to == "/payments/calendar"

    @pytest.mark.parametrize("role", [None, "", "superuser"])
    def test_no_usable_role_goes_to_login(self, resolver: AccessResolver, role: str | None) -> None:
        decision = evaluate(resolver, role, "/home")
        assert decision.allowed is False
        assert decision.redirect_to == "/login"

    def test_login_page_is_always_open(self, resolver: AccessResolver) -> None:
        assert evaluate(resolver, None, "/login").allowed is True
        assert evaluate(resolver, "superuser", "/login").allowed is True

    def test_every_landing_page_is_allowed_for_its_role(self, resolver: AccessResolver) -> None:
        for role in resolver.catalog.roles():
            landing = resolver.landing_page(role.name)
            assert evaluate(resolver, role.name, landing).allowed is True

    def test_run_check(self, resolver: AccessResolver) -> None:
        decision = run_check(CheckRouteInput(target="/admin/settings", role="admin"), resolver)
        assert decision.allowed is True


# --- State machine ---


class TestRouteGuard:
    def test_starts_checking(self, guard: RouteGuard) -> None:
        assert guard.state == GuardState.CHECKING
        assert guard.transitions == []

    def test_authorized(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "admin"

        decision = asyncio.run(guard.navigate("/admin"))

        assert decision is not None and decision.allowed
        assert guard.state == GuardState.AUTHORIZED
        assert navigator.redirects == []
        assert [(t.from_state, t.to_state) for t in guard.transitions] == [
            (GuardState.CHECKING, GuardState.AUTHORIZED)
        ]

    def test_denied_redirects_once(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "employee"

        decision = asyncio.run(guard.navigate("/payroll"))

        assert decision is not None and not decision.allowed
        assert guard.state == GuardState.REDIRECTING
        assert navigator.redirects == ["/tasks"]
        assert [t.to_state for t in guard.transitions] == [
            GuardState.DENIED,
            GuardState.REDIRECTING,
        ]

    def test_employee_on_admin_dashboard_redirects_once(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "employee"

        decision = asyncio.run(guard.navigate("/admin"))

        assert decision is not None and decision.reason == "forbidden"
        assert navigator.redirects == ["/tasks"]
        assert [(t.from_state, t.to_state) for t in guard.transitions] == [
            (GuardState.CHECKING, GuardState.DENIED),
            (GuardState.DENIED, GuardState.REDIRECTING),
        ]
        assert guard.state == GuardState.REDIRECTING

    def test_signed_out_goes_to_login(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        asyncio.run(guard.navigate("/dashboard"))
        assert navigator.redirects == ["/login"]

    def test_resolution_error_treated_as_signed_out(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "admin"
        source.error = RuntimeError("profile store unreachable")

        decision = asyncio.run(guard.navigate("/admin"))

        assert decision is not None and decision.reason == "no principal"
        assert navigator.redirects == ["/login"]

    def test_redirect_target_is_then_authorized(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "cs_manager"

        async def flow() -> None:
            await guard.navigate("/admin")
            await guard.navigate(navigator.redirects[-1])

        asyncio.run(flow())

        assert navigator.redirects == ["/cspa"]
        assert guard.state == GuardState.AUTHORIZED
        assert guard.generation == 2

    def test_newer_navigation_supersedes_pending_one(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "admin"
        source.delay = 10.0

        async def flow() -> tuple[object, object]:
            first = asyncio.create_task(guard.navigate("/admin"))
            await asyncio.sleep(0.01)
            source.role = "employee"
            source.delay = 0.0
            second = await guard.navigate("/payroll")
            return await first, second

        first, second = asyncio.run(flow())

        assert first is None
        assert second is not None and second.target == "/payroll"
        assert guard.decision is second
        assert navigator.redirects == ["/tasks"]
        assert source.calls == 2

    def test_outer_cancellation_propagates(
        self, guard: RouteGuard, source: MockRoleSource
    ) -> None:
        source.delay = 10.0

        async def flow() -> None:
            task = asyncio.create_task(guard.navigate("/home"))
            await asyncio.sleep(0.01)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(flow())

    def test_principal_change_reevaluates_current_target(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "admin"

        async def flow() -> None:
            await guard.navigate("/admin/settings")
            source.role = "viewer"
            await guard.principal_changed()

        asyncio.run(flow())

        assert guard.state == GuardState.REDIRECTING
        assert navigator.redirects == ["/dashboard"]
        assert [t.to_state for t in guard.transitions] == [
            GuardState.AUTHORIZED,
            GuardState.CHECKING,
            GuardState.DENIED,
            GuardState.REDIRECTING,
        ]

    def test_sign_out_sends_to_login(
        self, guard: RouteGuard, source: MockRoleSource, navigator: MockNavigator
    ) -> None:
        source.role = "manager"

        async def flow() -> None:
            await guard.navigate("/dashboard")
            source.role = None
            await guard.principal_changed()

        asyncio.run(flow())

        assert navigator.redirects == ["/login"]

    def test_principal_change_before_any_navigation(self, guard: RouteGuard) -> None:
        assert asyncio.run(guard.principal_changed()) is None
        assert guard.state == GuardState.CHECKING
        assert guard.generation == 1
