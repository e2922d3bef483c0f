"""
Forward-only SQL migrations for the store database.

Each `NNNN_name.sql` file holds an Up script, optionally followed by a
`-- Down` section that is never run here. A script and its `_migrations`
row are committed together, so a failing file leaves nothing behind.
"""

import hashlib
import logging
import os
import sqlite3
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


@dataclass(frozen=True)
class Migration:
    filename: str
    up_sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.up_sql.encode("utf-8")).hexdigest()


def read_migration(path: str) -> Migration:
    with open(path, encoding="utf-8") as f:
        up_sql, _, _ = f.read().partition(DOWN_MARKER)
    return Migration(filename=os.path.basename(path), up_sql=up_sql)


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = migrations_dir

    def _connect(self) -> sqlite3.Connection:
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "filename TEXT UNIQUE NOT NULL, "
            "checksum TEXT, "
            "applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        )
        conn.commit()
        return conn

    def discover(self) -> list[Migration]:
        names = sorted(n for n in os.listdir(self.migrations_dir) if n.endswith(".sql"))
        return [read_migration(os.path.join(self.migrations_dir, n)) for n in names]

    def _recorded(self, conn: sqlite3.Connection) -> dict[str, str | None]:
        rows = conn.execute("SELECT filename, checksum FROM _migrations").fetchall()
        return {filename: checksum for filename, checksum in rows}

    def applied(self) -> dict[str, str | None]:
        """Checksum of every recorded migration, keyed by filename."""
        conn = self._connect()
        try:
            return self._recorded(conn)
        finally:
            conn.close()

    def pending(self) -> list[Migration]:
        recorded = self.applied()
        return [m for m in self.discover() if m.filename not in recorded]

    def run_migrations(self) -> list[str]:
        """Apply every pending migration in filename order and return their names."""
        conn = self._connect()
        applied_now: list[str] = []
        try:
            recorded = self._recorded(conn)
            for migration in self.discover():
                if migration.filename in recorded:
                    stored = recorded[migration.filename]
                    if stored is not None and stored != migration.checksum:
                        logger.warning(
                            "Migration %s was edited after it was applied", migration.filename
                        )
                    continue
                logger.info("Applying migration: %s", migration.filename)
                self._apply(conn, migration)
                applied_now.append(migration.filename)
        finally:
            conn.close()

        logger.info("%d migration(s) applied to %s", len(applied_now), self.db_path)
        return applied_now

    def _apply(self, conn: sqlite3.Connection, migration: Migration) -> None:
        # executescript commits anything open first; BEGIN keeps the script and
        # its bookkeeping row in one transaction
        try:
            conn.executescript(f"BEGIN;\n{migration.up_sql}")
            conn.execute(
                "INSERT INTO _migrations (filename, checksum) VALUES (?, ?)",
                (migration.filename, migration.checksum),
            )
            conn.commit()
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise RuntimeError(f"Migration {migration.filename} failed: {e}") from e
