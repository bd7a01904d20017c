"""SQLite-backed implementation of the vault store."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
import logging
import sqlite3
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..models.vault import (
    DocKind,
    Document,
    Edge,
    EdgeType,
    Folder,
    MapPin,
    NpcProfile,
    TagRow,
)
from .database import DatabaseService
from .errors import StoreError
from .store import VaultStore

logger = logging.getLogger(__name__)

DOC_COLUMNS: tuple[str, ...] = (
    "id",
    "campaign_id",
    "folder_id",
    "title",
    "body",
    "shared",
    "sort_index",
    "kind",
    "updated_at",
    "deleted_at",
)
FOLDER_COLUMNS: tuple[str, ...] = (
    "id",
    "campaign_id",
    "name",
    "parent_folder_id",
    "shared",
    "deleted_at",
)
EDGE_COLUMNS: tuple[str, ...] = (
    "campaign_id",
    "from_doc_id",
    "to_doc_id",
    "link_text",
    "edge_type",
    "weight",
)
DOC_UPDATABLE = frozenset(DOC_COLUMNS) - {"id", "campaign_id"}
FOLDER_UPDATABLE = frozenset(FOLDER_COLUMNS) - {"id", "campaign_id"}

# Stays well under SQLITE_MAX_VARIABLE_NUMBER on old builds.
MAX_BATCH = 400


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _chunks(ids: Sequence[str]) -> Iterator[List[str]]:
    unique = list(dict.fromkeys(ids))
    for start in range(0, len(unique), MAX_BATCH):
        yield unique[start : start + MAX_BATCH]


def _deleted_clause(deleted: Optional[bool]) -> str:
    if deleted is None:
        return ""
    return " AND deleted_at IS NOT NULL" if deleted else " AND deleted_at IS NULL"


def _row_to_doc(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        campaign_id=row["campaign_id"],
        folder_id=row["folder_id"],
        title=row["title"],
        body=row["body"],
        shared=bool(row["shared"]),
        sort_index=row["sort_index"],
        kind=DocKind(row["kind"]),
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=row["id"],
        campaign_id=row["campaign_id"],
        name=row["name"],
        parent_folder_id=row["parent_folder_id"],
        shared=bool(row["shared"]),
        deleted_at=row["deleted_at"],
    )


def _row_to_edge(row: sqlite3.Row) -> Edge:
    return Edge(
        campaign_id=row["campaign_id"],
        from_doc_id=row["from_doc_id"],
        to_doc_id=row["to_doc_id"],
        link_text=row["link_text"],
        edge_type=EdgeType(row["edge_type"]),
        weight=row["weight"],
    )


def _row_to_pin(row: sqlite3.Row) -> MapPin:
    return MapPin(
        id=row["id"],
        map_id=row["map_id"],
        doc_id=row["doc_id"],
        x=row["x"],
        y=row["y"],
        created_at=row["created_at"],
    )


class SQLiteVaultStore(VaultStore):
    """VaultStore over a single SQLite database file."""

    def __init__(self, db_service: DatabaseService | None = None) -> None:
        self.db_service = db_service or DatabaseService()

    @contextmanager
    def _transaction(self, operation: str, **context: Any) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and map sqlite errors to StoreError."""
        try:
            conn = self.db_service.connect()
        except sqlite3.Error as exc:
            raise self._store_error(operation, exc, context) from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise self._store_error(operation, exc, context) from exc
        finally:
            conn.close()

    @staticmethod
    def _store_error(operation: str, exc: Exception, context: Dict[str, Any]) -> StoreError:
        logger.error(
            "Vault store operation failed",
            extra={"operation": operation, "error": str(exc), **context},
        )
        return StoreError(f"{operation} failed: {exc}", {"operation": operation, **context})

    def _update_row(
        self,
        table: str,
        allowed: frozenset[str],
        row_id: str,
        changes: Dict[str, Any],
    ) -> bool:
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update {table} columns: {sorted(unknown)}")
        with self._transaction(f"update_{table}", row_id=row_id) as conn:
            if not changes:
                row = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)).fetchone()
                return row is not None
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cursor = conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*[_to_db(value) for value in changes.values()], row_id),
            )
            return cursor.rowcount > 0

    def _batch(self, operation: str, statement: str, ids: Sequence[str], *leading: Any) -> int:
        """Run ``statement`` (with one IN list) over ``ids`` in chunks inside one transaction."""
        if not ids:
            return 0
        affected = 0
        with self._transaction(operation, count=len(ids)) as conn:
            for chunk in _chunks(ids):
                cursor = conn.execute(
                    statement.format(ids=_placeholders(len(chunk))),
                    (*leading, *chunk),
                )
                affected += cursor.rowcount
        return affected

    def _select_in(self, operation: str, statement: str, ids: Sequence[str]) -> List[sqlite3.Row]:
        if not ids:
            return []
        rows: List[sqlite3.Row] = []
        with self._transaction(operation, count=len(ids)) as conn:
            for chunk in _chunks(ids):
                rows.extend(
                    conn.execute(statement.format(ids=_placeholders(len(chunk))), chunk).fetchall()
                )
        return rows

    # Documents

    def insert_doc(self, doc: Document) -> None:
        with self._transaction("insert_doc", doc_id=doc.id) as conn:
            conn.execute(
                f"INSERT INTO docs ({', '.join(DOC_COLUMNS)}) VALUES ({_placeholders(len(DOC_COLUMNS))})",
                tuple(_to_db(getattr(doc, column)) for column in DOC_COLUMNS),
            )

    def get_doc(self, doc_id: str) -> Optional[Document]:
        with self._transaction("get_doc", doc_id=doc_id) as conn:
            row = conn.execute("SELECT * FROM docs WHERE id = ?", (doc_id,)).fetchone()
        return _row_to_doc(row) if row is not None else None

    def get_docs(self, doc_ids: Sequence[str]) -> List[Document]:
        rows = self._select_in("get_docs", "SELECT * FROM docs WHERE id IN ({ids})", doc_ids)
        return [_row_to_doc(row) for row in rows]

    def update_doc(self, doc_id: str, **changes: Any) -> bool:
        return self._update_row("docs", DOC_UPDATABLE, doc_id, changes)

    def list_docs(self, campaign_id: str, *, deleted: Optional[bool] = False) -> List[Document]:
        with self._transaction("list_docs", campaign_id=campaign_id) as conn:
            rows = conn.execute(
                "SELECT * FROM docs WHERE campaign_id = ?"
                + _deleted_clause(deleted)
                + " ORDER BY sort_index, title",
                (campaign_id,),
            ).fetchall()
        return [_row_to_doc(row) for row in rows]

    def list_docs_in_folders(self, folder_ids: Sequence[str]) -> List[Document]:
        rows = self._select_in(
            "list_docs_in_folders",
            "SELECT * FROM docs WHERE folder_id IN ({ids}) ORDER BY sort_index, title",
            folder_ids,
        )
        return [_row_to_doc(row) for row in rows]

    def find_docs_by_title(self, campaign_id: str, title: str) -> List[Document]:
        with self._transaction("find_docs_by_title", campaign_id=campaign_id) as conn:
            rows = conn.execute(
                """
                SELECT * FROM docs
                WHERE campaign_id = ? AND title = ? AND deleted_at IS NULL
                ORDER BY updated_at DESC, id
                """,
                (campaign_id, title),
            ).fetchall()
        return [_row_to_doc(row) for row in rows]

    def next_sort_index(self, campaign_id: str, folder_id: Optional[str]) -> int:
        with self._transaction("next_sort_index", campaign_id=campaign_id) as conn:
            row = conn.execute(
                """
                SELECT COALESCE(MAX(sort_index), 0) + 1 AS next_index
                FROM docs
                WHERE campaign_id = ? AND folder_id IS ? AND deleted_at IS NULL
                """,
                (campaign_id, folder_id),
            ).fetchone()
        return int(row["next_index"])

    def mark_docs_deleted(self, doc_ids: Sequence[str], deleted_at: Optional[datetime]) -> int:
        return self._batch(
            "mark_docs_deleted",
            "UPDATE docs SET deleted_at = ? WHERE id IN ({ids})",
            doc_ids,
            _to_db(deleted_at),
        )

    def delete_docs(self, doc_ids: Sequence[str]) -> int:
        return self._batch("delete_docs", "DELETE FROM docs WHERE id IN ({ids})", doc_ids)

    # Folders

    def insert_folder(self, folder: Folder) -> None:
        with self._transaction("insert_folder", folder_id=folder.id) as conn:
            conn.execute(
                f"INSERT INTO folders ({', '.join(FOLDER_COLUMNS)}) VALUES ({_placeholders(len(FOLDER_COLUMNS))})",
                tuple(_to_db(getattr(folder, column)) for column in FOLDER_COLUMNS),
            )

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        with self._transaction("get_folder", folder_id=folder_id) as conn:
            row = conn.execute("SELECT * FROM folders WHERE id = ?", (folder_id,)).fetchone()
        return _row_to_folder(row) if row is not None else None

    def update_folder(self, folder_id: str, **changes: Any) -> bool:
        return self._update_row("folders", FOLDER_UPDATABLE, folder_id, changes)

    def list_folders(self, campaign_id: str, *, deleted: Optional[bool] = False) -> List[Folder]:
        with self._transaction("list_folders", campaign_id=campaign_id) as conn:
            rows = conn.execute(
                "SELECT * FROM folders WHERE campaign_id = ?"
                + _deleted_clause(deleted)
                + " ORDER BY name, id",
                (campaign_id,),
            ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def mark_folders_deleted(self, folder_ids: Sequence[str], deleted_at: Optional[datetime]) -> int:
        return self._batch(
            "mark_folders_deleted",
            "UPDATE folders SET deleted_at = ? WHERE id IN ({ids})",
            folder_ids,
            _to_db(deleted_at),
        )

    def delete_folders(self, folder_ids: Sequence[str]) -> int:
        return self._batch("delete_folders", "DELETE FROM folders WHERE id IN ({ids})", folder_ids)

    # Edges and tags

    def replace_edges(self, from_doc_id: str, edges: Sequence[Edge]) -> Tuple[int, int]:
        desired: Dict[str, Edge] = {}
        for edge in edges:
            if edge.from_doc_id != from_doc_id:
                raise ValueError(f"Edge source {edge.from_doc_id} does not match {from_doc_id}")
            desired[edge.to_doc_id] = edge

        with self._transaction("replace_edges", doc_id=from_doc_id) as conn:
            rows = conn.execute(
                "SELECT * FROM edges WHERE from_doc_id = ?", (from_doc_id,)
            ).fetchall()
            current = {row["to_doc_id"]: _row_to_edge(row) for row in rows}
            stale = [target for target, edge in current.items() if desired.get(target) != edge]
            fresh = [edge for target, edge in desired.items() if current.get(target) != edge]
            conn.executemany(
                "DELETE FROM edges WHERE from_doc_id = ? AND to_doc_id = ?",
                [(from_doc_id, target) for target in stale],
            )
            conn.executemany(
                f"INSERT INTO edges ({', '.join(EDGE_COLUMNS)}) VALUES ({_placeholders(len(EDGE_COLUMNS))})",
                [tuple(_to_db(getattr(edge, column)) for column in EDGE_COLUMNS) for edge in fresh],
            )
        return len(fresh), len(stale)

    def list_edges_from(self, doc_id: str) -> List[Edge]:
        with self._transaction("list_edges_from", doc_id=doc_id) as conn:
            rows = conn.execute(
                "SELECT * FROM edges WHERE from_doc_id = ? ORDER BY to_doc_id", (doc_id,)
            ).fetchall()
        return [_row_to_edge(row) for row in rows]

    def list_edges_to(self, doc_id: str) -> List[Edge]:
        with self._transaction("list_edges_to", doc_id=doc_id) as conn:
            rows = conn.execute(
                "SELECT * FROM edges WHERE to_doc_id = ? ORDER BY from_doc_id", (doc_id,)
            ).fetchall()
        return [_row_to_edge(row) for row in rows]

    def list_edges(self, campaign_id: str) -> List[Edge]:
        with self._transaction("list_edges", campaign_id=campaign_id) as conn:
            rows = conn.execute(
                "SELECT * FROM edges WHERE campaign_id = ? ORDER BY from_doc_id, to_doc_id",
                (campaign_id,),
            ).fetchall()
        return [_row_to_edge(row) for row in rows]

    def delete_edges_touching(self, doc_ids: Sequence[str]) -> int:
        if not doc_ids:
            return 0
        affected = 0
        with self._transaction("delete_edges_touching", count=len(doc_ids)) as conn:
            for chunk in _chunks(doc_ids):
                marks = _placeholders(len(chunk))
                cursor = conn.execute(
                    f"DELETE FROM edges WHERE from_doc_id IN ({marks}) OR to_doc_id IN ({marks})",
                    (*chunk, *chunk),
                )
                affected += cursor.rowcount
        return affected

    def replace_tags(self, doc_id: str, tags: Sequence[TagRow]) -> Tuple[int, int]:
        desired: Dict[Tuple[str, str], TagRow] = {}
        for tag in tags:
            if tag.doc_id != doc_id:
                raise ValueError(f"Tag owner {tag.doc_id} does not match {doc_id}")
            desired[(tag.namespace, tag.value)] = tag

        with self._transaction("replace_tags", doc_id=doc_id) as conn:
            rows = conn.execute(
                "SELECT namespace, value FROM tags WHERE doc_id = ?", (doc_id,)
            ).fetchall()
            current = {(row["namespace"], row["value"]) for row in rows}
            stale = [key for key in current if key not in desired]
            fresh = [key for key in desired if key not in current]
            conn.executemany(
                "DELETE FROM tags WHERE doc_id = ? AND namespace = ? AND value = ?",
                [(doc_id, namespace, value) for namespace, value in stale],
            )
            conn.executemany(
                "INSERT INTO tags (doc_id, namespace, value) VALUES (?, ?, ?)",
                [(doc_id, namespace, value) for namespace, value in fresh],
            )
        return len(fresh), len(stale)

    def list_tags(self, doc_id: str) -> List[TagRow]:
        with self._transaction("list_tags", doc_id=doc_id) as conn:
            rows = conn.execute(
                "SELECT * FROM tags WHERE doc_id = ? ORDER BY namespace, value", (doc_id,)
            ).fetchall()
        return [TagRow(doc_id=row["doc_id"], namespace=row["namespace"], value=row["value"]) for row in rows]

    def list_docs_with_tag(self, campaign_id: str, namespace: str, value: str) -> List[Document]:
        with self._transaction("list_docs_with_tag", campaign_id=campaign_id) as conn:
            rows = conn.execute(
                """
                SELECT d.*
                FROM docs d
                JOIN tags t ON t.doc_id = d.id
                WHERE d.campaign_id = ?
                  AND t.namespace = ?
                  AND t.value = ?
                  AND d.deleted_at IS NULL
                ORDER BY d.title, d.id
                """,
                (campaign_id, namespace, value),
            ).fetchall()
        return [_row_to_doc(row) for row in rows]

    def delete_tags_for(self, doc_ids: Sequence[str]) -> int:
        return self._batch("delete_tags_for", "DELETE FROM tags WHERE doc_id IN ({ids})", doc_ids)

    # Cross-references

    def upsert_npc_profile(self, profile: NpcProfile) -> None:
        with self._transaction("upsert_npc_profile", doc_id=profile.doc_id) as conn:
            conn.execute(
                """
                INSERT INTO npc_profiles (doc_id, creature_id, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(doc_id) DO UPDATE SET
                    creature_id = excluded.creature_id,
                    updated_at = excluded.updated_at
                """,
                (
                    profile.doc_id,
                    profile.creature_id,
                    _to_db(profile.created_at),
                    _to_db(profile.updated_at),
                ),
            )

    def get_npc_profile(self, doc_id: str) -> Optional[NpcProfile]:
        with self._transaction("get_npc_profile", doc_id=doc_id) as conn:
            row = conn.execute("SELECT * FROM npc_profiles WHERE doc_id = ?", (doc_id,)).fetchone()
        if row is None:
            return None
        return NpcProfile(
            doc_id=row["doc_id"],
            creature_id=row["creature_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def add_map_pin(self, pin: MapPin) -> MapPin:
        with self._transaction("add_map_pin", doc_id=pin.doc_id) as conn:
            cursor = conn.execute(
                "INSERT INTO map_pins (map_id, doc_id, x, y, created_at) VALUES (?, ?, ?, ?, ?)",
                (pin.map_id, pin.doc_id, pin.x, pin.y, _to_db(pin.created_at)),
            )
        return pin.model_copy(update={"id": cursor.lastrowid})

    def list_map_pins(self, *, map_id: Optional[str] = None, doc_id: Optional[str] = None) -> List[MapPin]:
        clauses: List[str] = []
        params: List[Any] = []
        if map_id is not None:
            clauses.append("map_id = ?")
            params.append(map_id)
        if doc_id is not None:
            clauses.append("doc_id = ?")
            params.append(doc_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._transaction("list_map_pins") as conn:
            rows = conn.execute(f"SELECT * FROM map_pins{where} ORDER BY id", params).fetchall()
        return [_row_to_pin(row) for row in rows]

    def delete_cross_references(self, doc_ids: Sequence[str]) -> int:
        if not doc_ids:
            return 0
        affected = 0
        with self._transaction("delete_cross_references", count=len(doc_ids)) as conn:
            for chunk in _chunks(doc_ids):
                marks = _placeholders(len(chunk))
                affected += conn.execute(
                    f"DELETE FROM npc_profiles WHERE doc_id IN ({marks})", chunk
                ).rowcount
                affected += conn.execute(
                    f"DELETE FROM map_pins WHERE doc_id IN ({marks})", chunk
                ).rowcount
        return affected

    # Campaign setup

    def claim_campaign_seed(self, campaign_id: str) -> bool:
        with self._transaction("claim_campaign_seed", campaign_id=campaign_id) as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO campaign_seeds (campaign_id, seeded_at) VALUES (?, ?)",
                (campaign_id, _utcnow_iso()),
            )
            return cursor.rowcount > 0

    def release_campaign_seed(self, campaign_id: str) -> None:
        with self._transaction("release_campaign_seed", campaign_id=campaign_id) as conn:
            conn.execute("DELETE FROM campaign_seeds WHERE campaign_id = ?", (campaign_id,))


__all__ = ["SQLiteVaultStore"]
