import logging
from typing import TYPE_CHECKING

from uhub.adapters.sqlite.migrator import SQLiteMigrator
from uhub.rules.loader import load_rules
from uhub.rules.models import Rules

if TYPE_CHECKING:
    from uhub.api.deps import Settings

logger = logging.getLogger(__name__)


def validate_startup(settings: "Settings") -> Rules:
    """
    Validate operational requirements before startup.

    Loads and checks the rules file, prepares the data directory and applies
    pending migrations. Raises on any problem; callers decide how to exit.
    """
    rules = load_rules(settings.rules_path)
    logger.info(
        "Rules %s loaded from %s (%d roles, %d features, %d navigation items)",
        rules.project.rules_version,
        settings.rules_path,
        len(rules.roles),
        len(rules.features),
        len(rules.navigation),
    )

    if settings.identity_url and not settings.identity_service_key:
        raise ValueError("UHUB_IDENTITY_URL is set but UHUB_IDENTITY_SERVICE_KEY is missing")

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    db_paths = [settings.db_path]
    if not settings.identity_url:
        db_paths.append(settings.identity_db_path)
    for db_path in db_paths:
        applied = SQLiteMigrator(db_path).run_migrations()
        if applied:
            logger.info("Applied %d migrations to %s", len(applied), db_path)

    return rules
