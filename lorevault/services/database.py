"""SQLite database helpers for the vault schema."""

from __future__ import annotations

from pathlib import Path
import sqlite3
from typing import Iterable

from .config import DEFAULT_DB_PATH

DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS folders (
        id TEXT PRIMARY KEY,
        campaign_id TEXT NOT NULL,
        name TEXT NOT NULL,
        parent_folder_id TEXT,
        shared INTEGER NOT NULL DEFAULT 0,
        deleted_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_folders_campaign ON folders(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_folder_id)",
    """
    CREATE TABLE IF NOT EXISTS docs (
        id TEXT PRIMARY KEY,
        campaign_id TEXT NOT NULL,
        folder_id TEXT,
        title TEXT NOT NULL,
        body TEXT NOT NULL DEFAULT '',
        shared INTEGER NOT NULL DEFAULT 0,
        sort_index INTEGER NOT NULL DEFAULT 0,
        kind TEXT NOT NULL DEFAULT 'normal',
        updated_at TEXT NOT NULL,
        deleted_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_docs_campaign ON docs(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_docs_folder ON docs(campaign_id, folder_id)",
    "CREATE INDEX IF NOT EXISTS idx_docs_title ON docs(campaign_id, title)",
    """
    CREATE TABLE IF NOT EXISTS edges (
        campaign_id TEXT NOT NULL,
        from_doc_id TEXT NOT NULL,
        to_doc_id TEXT NOT NULL,
        link_text TEXT NOT NULL,
        edge_type TEXT NOT NULL DEFAULT 'wikilink',
        weight INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (from_doc_id, to_doc_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_edges_to ON edges(to_doc_id)",
    "CREATE INDEX IF NOT EXISTS idx_edges_campaign ON edges(campaign_id)",
    """
    CREATE TABLE IF NOT EXISTS tags (
        doc_id TEXT NOT NULL,
        namespace TEXT NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (doc_id, namespace, value)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tags_namespace_value ON tags(namespace, value)",
    """
    CREATE TABLE IF NOT EXISTS npc_profiles (
        doc_id TEXT PRIMARY KEY,
        creature_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS map_pins (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        map_id TEXT NOT NULL,
        doc_id TEXT NOT NULL,
        x REAL NOT NULL,
        y REAL NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_map_pins_doc ON map_pins(doc_id)",
    "CREATE INDEX IF NOT EXISTS idx_map_pins_map ON map_pins(map_id)",
    """
    CREATE TABLE IF NOT EXISTS campaign_seeds (
        campaign_id TEXT PRIMARY KEY,
        seeded_at TEXT NOT NULL
    )
    """,
)


class DatabaseService:
    """Manage SQLite connections and schema initialization."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Return a sqlite3 connection with the proper data directory created."""
        self._ensure_directory()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self, statements: Iterable[str] | None = None) -> Path:
        """Create all schema artifacts required by the vault store."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in statements or DDL_STATEMENTS:
                    conn.execute(statement)
        finally:
            conn.close()
        return self.db_path


def init_database(db_path: str | Path | None = None) -> Path:
    """Create the schema at ``db_path`` (or the default location)."""
    return DatabaseService(db_path).initialize()


__all__ = ["DatabaseService", "init_database", "DDL_STATEMENTS"]
