"""
Structure lint tests.
Verify that the component skeleton exists and follows conventions.
"""

import importlib
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
COMPONENTS = ["invitations", "provisioning", "role_admin", "route_guard"]
COMPONENT_FILES = ["__init__.py", "component.py", "models.py", "ports.py", "_impl.py"]


class TestProjectStructure:
    def test_core_directories_exist(self) -> None:
        for name in ["domain", "rules", "ports", "adapters", "components", "api", "app_shell"]:
            assert (PROJECT_ROOT / "uhub" / name).is_dir(), name

    def test_rules_file_exists(self) -> None:
        assert (PROJECT_ROOT / "rules.yaml").is_file()

    def test_migrations_ship_with_package(self) -> None:
        migrations = list((PROJECT_ROOT / "uhub" / "migrations").glob("*.sql"))
        assert migrations, "at least one migration must exist"
        for path in migrations:
            assert "-- Up" in path.read_text()

    def test_tests_structure_exists(self) -> None:
        for name in ["unit", "integration", "api"]:
            assert (PROJECT_ROOT / "tests" / name).is_dir(), name


class TestComponentLayout:
    @pytest.mark.parametrize("component", COMPONENTS)
    def test_component_files(self, component: str) -> None:
        base = PROJECT_ROOT / "uhub" / "components" / component
        for filename in COMPONENT_FILES:
            assert (base / filename).is_file(), f"{component}/{filename}"
        assert (base / "tests").is_dir(), f"{component} has no tests"

    @pytest.mark.parametrize("component", COMPONENTS)
    def test_component_exports_entry_points(self, component: str) -> None:
        module = importlib.import_module(f"uhub.components.{component}")
        exported = getattr(module, "__all__", [])
        assert any(name.startswith("run_") for name in exported)
        for name in exported:
            assert hasattr(module, name), f"{component} exports missing {name}"
