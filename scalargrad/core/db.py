"""
scalargrad Database Infrastructure

Connection management, schema initialization and migrations for the
network snapshot store.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Callable

logger = logging.getLogger(__name__)


def _apply_pragmas(db: sqlite3.Connection):
    """Apply standard SQLite pragmas for safety and concurrency."""
    db.execute("PRAGMA journal_mode=WAL")
    db.execute("PRAGMA busy_timeout=5000")
    db.execute("PRAGMA foreign_keys=ON")


def _get_db_path():
    """Get the configured database path."""
    import scalargrad
    return scalargrad.get_config().db_path


def get_db() -> sqlite3.Connection:
    """Open a connection to the configured database."""
    db = sqlite3.connect(str(_get_db_path()))
    db.row_factory = sqlite3.Row
    _apply_pragmas(db)
    return db


@contextmanager
def _db():
    """Context manager for database connections, closed on exit."""
    db = get_db()
    try:
        yield db
    finally:
        db.close()


def _ensure_migration_table(db: sqlite3.Connection):
    """Create the schema_migrations tracking table if it doesn't exist."""
    db.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            description TEXT NOT NULL,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    db.commit()


def run_migration(db: sqlite3.Connection, version: int, description: str, migrate_fn: Callable[[sqlite3.Connection], None]):
    """
    Run a schema migration if it hasn't been applied yet.

    Checks schema_migrations for the version. If not present, runs migrate_fn
    inside a transaction and records the version. If already applied, skips silently.
    """
    existing = db.execute(
        "SELECT version FROM schema_migrations WHERE version = ?", (version,)
    ).fetchone()
    if existing:
        return

    logger.info(f"Running migration {version}: {description}")
    try:
        migrate_fn(db)
        db.execute(
            "INSERT INTO schema_migrations (version, description) VALUES (?, ?)",
            (version, description)
        )
        db.commit()
        logger.info(f"Migration {version} applied successfully")
    except Exception:
        db.rollback()
        logger.error(f"Migration {version} failed, rolled back", exc_info=True)
        raise


def _migration_1_training_runs(db: sqlite3.Connection):
    db.execute("""
        CREATE TABLE IF NOT EXISTS training_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            network_id TEXT NOT NULL,
            epochs INTEGER NOT NULL,
            first_loss REAL,
            final_loss REAL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (network_id) REFERENCES networks(id) ON DELETE CASCADE
        )
    """)
    db.execute("CREATE INDEX IF NOT EXISTS idx_training_runs_network ON training_runs(network_id)")


def init_db():
    """Initialize database schema."""
    with _db() as db:
        db.execute("""
            CREATE TABLE IF NOT EXISTS networks (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL DEFAULT '',
                architecture TEXT NOT NULL,
                weights TEXT NOT NULL,
                trained_epochs INTEGER NOT NULL DEFAULT 0,
                last_loss REAL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        db.commit()

        _ensure_migration_table(db)
        run_migration(db, 1, "training run history", _migration_1_training_runs)
