import logging
from collections.abc import Mapping

from uhub.domain.entities import Feature, NavigationItem, QuickAction, Role, RoleDefinition
from uhub.rules.models import WILDCARD, RoleRule, Rules

logger = logging.getLogger(__name__)


class RoleCatalog:
    """Static role table. Unknown names are never mapped to a default role."""

    def __init__(self, roles: Mapping[Role, RoleRule]):
        self._roles: dict[str, RoleDefinition] = {
            str(name): RoleDefinition(
                name=name, level=rule.level, label=rule.label, description=rule.description
            )
            for name, rule in roles.items()
        }

    @classmethod
    def from_rules(cls, rules: Rules) -> "RoleCatalog":
        return cls(rules.roles)

    def get_role(self, name: str | None) -> RoleDefinition | None:
        if not name:
            return None
        return self._roles.get(str(name))

    def is_known(self, name: str | None) -> bool:
        return self.get_role(name) is not None

    def level_of(self, name: str | None) -> int | None:
        role = self.get_role(name)
        return role.level if role else None

    def has_minimum_level(self, name: str | None, required_level: int) -> bool:
        # Lower level means more privilege
        level = self.level_of(name)
        if level is None:
            return False
        return level <= required_level

    def roles(self) -> list[RoleDefinition]:
        return sorted(self._roles.values(), key=lambda r: (r.level, r.name.value))


class AccessResolver:
    """
    Role -> feature / navigation resolution.

    Every query is a pure function of the rules tables and its arguments.
    Anything unknown (role, feature, path) resolves to "no access".
    """

    def __init__(self, rules: Rules, catalog: RoleCatalog | None = None):
        self.rules = rules
        self.catalog = catalog or RoleCatalog.from_rules(rules)
        self._features: dict[str, frozenset[str]] = {
            str(feature): frozenset(str(r) for r in allowed)
            for feature, allowed in rules.features.items()
        }
        self._navigation = list(rules.navigation)
        self._by_path = {item.path: item for item in self._navigation}
        self._by_key = {item.key: item for item in self._navigation}

    # --- Features ---

    def has_feature_access(self, role: str | None, feature: str | None) -> bool:
        if not role or not feature:
            return False
        if not self.catalog.is_known(role):
            return False

        allowed = self._features.get(str(feature))
        if allowed is None:
            logger.debug("No access rule for feature %r; denying", feature)
            return False

        return WILDCARD in allowed or str(role) in allowed

    def features_for(self, role: str | None) -> list[Feature]:
        return sorted(
            (f for f in Feature if self.has_feature_access(role, f)), key=lambda f: f.value
        )

    # --- Levels ---

    def has_role_level(self, role: str | None, min_level: int) -> bool:
        return self.catalog.has_minimum_level(role, min_level)

    # --- Navigation ---

    def can_access(self, role: str | None, item: NavigationItem) -> bool:
        if item.feature is not None:
            return self.has_feature_access(role, item.feature)
        if item.role is not None:
            return self.catalog.is_known(role) and str(role) == str(item.role)
        if item.min_level is not None:
            return self.has_role_level(role, item.min_level)
        return False

    def visible_navigation(self, role: str | None) -> list[NavigationItem]:
        return [item for item in self._navigation if self.can_access(role, item)]

    def navigation(self) -> list[NavigationItem]:
        return list(self._navigation)

    def find_item(self, path_or_key: str) -> NavigationItem | None:
        return self._by_path.get(path_or_key) or self._by_key.get(path_or_key)

    # --- Landing & quick actions ---

    @property
    def unauthenticated_entry(self) -> str:
        return self.rules.landing.unauthenticated

    def landing_page(self, role: str | None) -> str:
        if not self.catalog.is_known(role):
            return self.unauthenticated_entry
        return self.rules.landing.roles[Role(str(role))]

    def quick_actions(self, role: str | None) -> list[QuickAction]:
        if not self.catalog.is_known(role):
            return []
        return list(self.rules.quick_actions.get(Role(str(role)), []))

    # --- Startup checks ---

    def verify(self) -> None:
        """
        Cross-table checks that need gating semantics.
        Raises ValueError listing every problem found.
        """
        problems: list[str] = []

        for role, path in self.rules.landing.roles.items():
            item = self._by_path.get(path)
            if item is None:
                problems.append(f"landing page {path!r} for {role.value} is not a navigation item")
            elif not self.can_access(role, item):
                problems.append(f"landing page {path!r} is not visible to {role.value}")

        if self.rules.landing.unauthenticated in self._by_path:
            problems.append("unauthenticated entry must not be a gated navigation item")

        for role, actions in self.rules.quick_actions.items():
            for action in actions:
                item = self._by_path.get(action.path)
                if item is not None and not self.can_access(role, item):
                    problems.append(
                        f"quick action {action.label!r} for {role.value} targets "
                        f"{action.path!r}, which that role cannot open"
                    )

        if problems:
            raise ValueError("Access matrix is inconsistent: " + "; ".join(problems))
