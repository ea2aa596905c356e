"""
RoleCatalog and AccessResolver against the shipped rules.yaml.
"""

import pytest

from uhub.domain.entities import Feature, NavigationItem, Role
from uhub.domain.policy import AccessResolver, RoleCatalog
from uhub.rules.models import WILDCARD, Rules


class TestRoleCatalog:
    def test_levels_follow_hierarchy(self, resolver: AccessResolver) -> None:
        catalog = resolver.catalog
        assert catalog.level_of("admin") == 1
        assert catalog.level_of("employee") == 3
        assert catalog.level_of("viewer") == 6

    def test_unknown_role_is_not_found(self, resolver: AccessResolver) -> None:
        catalog = resolver.catalog
        assert catalog.get_role("superuser") is None
        assert catalog.level_of("superuser") is None
        assert catalog.is_known(None) is False
        assert catalog.is_known("") is False

    def test_minimum_level_is_lower_or_equal(self, resolver: AccessResolver) -> None:
        catalog = resolver.catalog
        assert catalog.has_minimum_level("admin", 3) is True
        assert catalog.has_minimum_level("employee", 3) is True
        assert catalog.has_minimum_level("manager", 3) is False

    def test_unknown_role_never_meets_a_level(self, resolver: AccessResolver) -> None:
        assert resolver.catalog.has_minimum_level("superuser", 99) is False

    def test_roles_sorted_by_level_then_name(self, resolver: AccessResolver) -> None:
        names = [r.name for r in resolver.catalog.roles()]
        assert names[0] == Role.ADMIN
        assert names[1:4] == [Role.DATA_OPERATOR, Role.FINANCE, Role.IT_MANAGEMENT]
        assert names[-1] == Role.VIEWER

    def test_from_rules_matches_table(self, rules: Rules) -> None:
        catalog = RoleCatalog.from_rules(rules)
        assert {r.name for r in catalog.roles()} == set(Role)


class TestFeatureAccess:
    def test_matches_rule_table_for_every_pair(
        self, rules: Rules, resolver: AccessResolver
    ) -> None:
        for feature, allowed in rules.features.items():
            for role in Role:
                expected = WILDCARD in allowed or role in allowed
                assert resolver.has_feature_access(role.value, feature.value) is expected, (
                    role,
                    feature,
                )

    @pytest.mark.parametrize("feature", ["test_invitations", "rbac_test", "", "ADMIN_DASHBOARD"])
    def test_unregistered_feature_is_denied(self, resolver: AccessResolver, feature: str) -> None:
        for role in Role:
            assert resolver.has_feature_access(role.value, feature) is False

    def test_unknown_role_denied_even_for_wildcard(self, resolver: AccessResolver) -> None:
        # home is granted to "*"
        assert resolver.has_feature_access("employee", "home") is True
        assert resolver.has_feature_access("superuser", "home") is False
        assert resolver.has_feature_access(None, "home") is False

    def test_features_for_role(self, resolver: AccessResolver) -> None:
        hr = resolver.features_for("hr_manager")
        assert Feature.PAYROLL in hr
        assert Feature.ADMIN_DASHBOARD not in hr
        assert resolver.features_for("superuser") == []


class TestNavigation:
    def test_visible_navigation_keeps_declaration_order(
        self, rules: Rules, resolver: AccessResolver
    ) -> None:
        declared = [item.key for item in rules.navigation]
        visible = [item.key for item in resolver.visible_navigation("admin")]
        assert visible == [k for k in declared if k in visible]

    def test_admin_sees_admin_screens(self, resolver: AccessResolver) -> None:
        keys = {item.key for item in resolver.visible_navigation("admin")}
        assert {"admin", "users", "invitations", "settings"} <= keys

    def test_employee_does_not_see_admin_screens(self, resolver: AccessResolver) -> None:
        keys = {item.key for item in resolver.visible_navigation("employee")}
        assert "admin" not in keys
        assert "settings" not in keys
        assert {"home", "tasks", "it_requests"} <= keys

    def test_role_gated_item(self, resolver: AccessResolver) -> None:
        settings = resolver.find_item("/admin/settings")
        assert settings is not None and settings.role == Role.ADMIN
        assert resolver.can_access("admin", settings) is True
        assert resolver.can_access("it_management", settings) is False

    def test_level_gated_item(self, resolver: AccessResolver) -> None:
        team = resolver.find_item("team")
        assert team is not None and team.min_level == 5
        assert resolver.can_access("hr_manager", team) is True
        assert resolver.can_access("viewer", team) is False

    def test_unknown_role_sees_nothing(self, resolver: AccessResolver) -> None:
        assert resolver.visible_navigation("superuser") == []
        assert resolver.visible_navigation(None) == []

    def test_item_requires_exactly_one_gate(self) -> None:
        with pytest.raises(ValueError):
            NavigationItem(key="x", path="/x", label="X")
        with pytest.raises(ValueError):
            NavigationItem(key="x", path="/x", label="X", feature=Feature.HOME, min_level=2)


class TestLandingAndQuickActions:
    @pytest.mark.parametrize(
        "role,path",
        [
            ("manager", "/dashboard"),
            ("driver_management", "/drivers"),
            ("hr_manager", "/attendance"),
            ("cs_manager", "/cspa"),
            ("employee", "/tasks"),
            ("viewer", "/dashboard"),
        ],
    )
    def test_landing_pages(self, resolver: AccessResolver, role: str, path: str) -> None:
        assert resolver.landing_page(role) == path

    def test_unknown_role_lands_on_login(self, resolver: AccessResolver) -> None:
        assert resolver.landing_page("superuser") == "/login"
        assert resolver.landing_page(None) == resolver.unauthenticated_entry

    def test_every_role_can_open_its_landing_page(self, resolver: AccessResolver) -> None:
        for role in Role:
            item = resolver.find_item(resolver.landing_page(role.value))
            assert item is not None
            assert resolver.can_access(role.value, item)

    def test_quick_actions(self, resolver: AccessResolver) -> None:
        labels = [a.label for a in resolver.quick_actions("admin")]
        assert "Invite User" in labels
        assert resolver.quick_actions("finance") == []
        assert resolver.quick_actions("superuser") == []
