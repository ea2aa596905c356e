import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"
DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    """
    Applies ``NNN_name.sql`` files in filename order, once each.

    Only the part of a file above ``-- Down`` is executed. Applied files are
    recorded in ``_migrations``.
    """

    def __init__(self, db_path: str, migrations_dir: Path = MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        return conn

    def pending(self) -> list[Path]:
        conn = self._connect()
        try:
            done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        finally:
            conn.close()
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        applied: list[str] = []
        conn = self._connect()
        try:
            for path in self.pending():
                logger.info("Applying migration %s to %s", path.name, self.db_path)
                up_script = path.read_text().split(DOWN_MARKER, 1)[0]
                try:
                    conn.executescript(up_script)
                    conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (path.name,))
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise RuntimeError(f"Migration {path.name} failed: {e}") from e
                applied.append(path.name)
        finally:
            conn.close()
        return applied
