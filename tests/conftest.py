import os
from pathlib import Path

import pytest

from tests.fakes import FakeHasher, MockClock
from uhub.adapters.sqlite.migrator import SQLiteMigrator
from uhub.domain.policy import AccessResolver
from uhub.rules.loader import load_rules
from uhub.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture(scope="session")
def rules() -> Rules:
    # Load the REAL rules from the project root
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def resolver(rules: Rules) -> AccessResolver:
    return AccessResolver(rules)


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def hasher() -> FakeHasher:
    return FakeHasher()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Migrated SQLite database in a temp directory."""
    path = os.path.join(str(tmp_path), "uhub.db")
    SQLiteMigrator(path).run_migrations()
    return path
