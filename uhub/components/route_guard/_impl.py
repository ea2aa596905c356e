"""
RouteGuard - per-navigation authorization.

Role resolution is asynchronous and may be overtaken by a newer
navigation. Each navigation gets a generation number; a result that comes
back for an older generation is dropped, and its resolution task is
cancelled.
"""

from __future__ import annotations

import asyncio
import logging

from uhub.domain.policy import AccessResolver

from .models import GuardDecision, GuardState, Transition
from .ports import NavigatorPort, RoleSourcePort

logger = logging.getLogger(__name__)


def evaluate(resolver: AccessResolver, role: str | None, target: str) -> GuardDecision:
    """Pure decision for one (role, target) pair."""
    if target == resolver.unauthenticated_entry:
        return GuardDecision(target=target, role=role, allowed=True, reason="public")

    if not role or not resolver.catalog.is_known(role):
        redirect = resolver.unauthenticated_entry
        reason = "no principal" if not role else "unknown role"
        return GuardDecision(
            target=target, role=role, allowed=False, reason=reason, redirect_to=redirect
        )

    item = resolver.find_item(target)
    if item is not None and resolver.can_access(role, item):
        return GuardDecision(target=target, role=role, allowed=True, reason="granted")

    landing = resolver.landing_page(role)
    return GuardDecision(
        target=target,
        role=role,
        allowed=False,
        reason="unknown route" if item is None else "forbidden",
        # Never redirect a page to itself
        redirect_to=landing if landing != target else None,
    )


class RouteGuard:
    def __init__(
        self,
        resolver: AccessResolver,
        role_source: RoleSourcePort,
        navigator: NavigatorPort,
    ):
        self.resolver = resolver
        self.role_source = role_source
        self.navigator = navigator

        self.state = GuardState.CHECKING
        self.generation = 0
        self.target: str | None = None
        self.decision: GuardDecision | None = None
        self.transitions: list[Transition] = []

        self._redirected = False
        self._pending: asyncio.Task[str | None] | None = None

    def _enter(self, state: GuardState, generation: int) -> None:
        if state == self.state:
            return
        self.transitions.append(Transition(generation, self.state, state))
        logger.debug("guard[%d] %s -> %s", generation, self.state, state)
        self.state = state

    async def navigate(self, target: str) -> GuardDecision | None:
        """
        Evaluate ``target`` for the current principal.

        Returns the decision, or None if a newer navigation superseded
        this one before its role resolved.
        """
        self.generation += 1
        generation = self.generation
        self.target = target
        self.decision = None
        self._redirected = False

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._enter(GuardState.CHECKING, generation)

        task = asyncio.ensure_future(self.role_source.resolve_role())
        self._pending = task
        try:
            role = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if generation != self.generation and not (current and current.cancelling()):
                return None
            raise
        except Exception:
            logger.warning("Role resolution failed; treating as signed out", exc_info=True)
            role = None

        if generation != self.generation:
            logger.debug("guard[%d] stale result discarded", generation)
            return None

        decision = evaluate(self.resolver, role, target)
        self.decision = decision
        if decision.allowed:
            self._enter(GuardState.AUTHORIZED, generation)
        else:
            self._enter(GuardState.DENIED, generation)
            if decision.redirect_to is not None:
                self._redirect(decision.redirect_to, generation)
        return decision

    def _redirect(self, path: str, generation: int) -> None:
        if self._redirected:
            return
        self._redirected = True
        self._enter(GuardState.REDIRECTING, generation)
        self.navigator.redirect(path)

    async def principal_changed(self) -> GuardDecision | None:
        """Sign-in, sign-out or role change: start over for the current target."""
        if self.target is None:
            self.generation += 1
            self._enter(GuardState.CHECKING, self.generation)
            return None
        return await self.navigate(self.target)
