"""Document and folder operations, including trash/restore/purge cascades."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional, Sequence

from ..models.vault import (
    UNTITLED_DOC_TITLE,
    CascadeResult,
    Document,
    Folder,
    MapPin,
    NpcProfile,
    SaveResult,
)
from .config import AppConfig, get_config
from .database import DatabaseService
from .errors import NotFoundError, VaultValidationError
from .folder_index import FolderIndexService
from .folder_tree import FolderTree
from .ids import generate_document_id, generate_folder_id
from .indexer import IndexerService
from .sqlite_store import SQLiteVaultStore
from .store import VaultStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VaultService:
    """Record-level operations over one store, keeping indexes in step."""

    def __init__(
        self,
        store: VaultStore,
        *,
        config: AppConfig | None = None,
        indexer: IndexerService | None = None,
        folder_index: FolderIndexService | None = None,
    ) -> None:
        self.store = store
        self.config = config or get_config()
        self.indexer = indexer or IndexerService(store, config=self.config)
        self.folder_index = folder_index or FolderIndexService(store, self.indexer)

    def _refresh_indexes(self, campaign_id: str) -> None:
        if self.config.auto_update_indexes:
            self.folder_index.update_all_folder_indexes(campaign_id)

    def _require_doc(self, doc_id: str) -> Document:
        doc = self.store.get_doc(doc_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {doc_id}", {"doc_id": doc_id})
        return doc

    def _require_folder(self, folder_id: str) -> Folder:
        folder = self.store.get_folder(folder_id)
        if folder is None:
            raise NotFoundError(f"Folder not found: {folder_id}", {"folder_id": folder_id})
        return folder

    def _require_active_folder(self, folder_id: str, campaign_id: str) -> Folder:
        folder = self._require_folder(folder_id)
        if folder.campaign_id != campaign_id:
            raise VaultValidationError(
                "Folder belongs to another campaign",
                {"folder_id": folder_id, "campaign_id": campaign_id},
            )
        if folder.is_deleted:
            raise VaultValidationError("Folder is in the trash", {"folder_id": folder_id})
        return folder

    # Reads

    def get_doc(self, doc_id: str) -> Optional[Document]:
        return self.store.get_doc(doc_id)

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        return self.store.get_folder(folder_id)

    def list_docs(self, campaign_id: str) -> List[Document]:
        return self.store.list_docs(campaign_id)

    def list_folders(self, campaign_id: str) -> List[Folder]:
        return self.store.list_folders(campaign_id)

    def list_trashed_docs(self, campaign_id: str) -> List[Document]:
        return self.store.list_docs(campaign_id, deleted=True)

    def list_trashed_folders(self, campaign_id: str) -> List[Folder]:
        return self.store.list_folders(campaign_id, deleted=True)

    def get_doc_by_title(self, campaign_id: str, title: str) -> Optional[Document]:
        matches = self.store.find_docs_by_title(campaign_id, title)
        return matches[0] if matches else None

    def search_docs_by_title(self, campaign_id: str, query: str) -> List[Document]:
        """Case-insensitive substring match over active document titles."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [doc for doc in self.store.list_docs(campaign_id) if needle in doc.title.lower()]

    # Documents

    def create_doc(
        self, campaign_id: str, title: str, folder_id: Optional[str] = None
    ) -> Document:
        if folder_id is not None:
            self._require_active_folder(folder_id, campaign_id)
        doc = Document(
            id=generate_document_id(),
            folder_id=folder_id,
            title=(title or "").strip() or UNTITLED_DOC_TITLE,
            body="",
            campaign_id=campaign_id,
            sort_index=self.store.next_sort_index(campaign_id, folder_id),
            updated_at=_utcnow(),
        )
        self.store.insert_doc(doc)
        logger.info(
            "Document created",
            extra={"doc_id": doc.id, "campaign_id": campaign_id, "folder_id": folder_id},
        )
        self._refresh_indexes(campaign_id)
        return doc

    def rename_doc(self, doc_id: str, title: str) -> Document:
        doc = self._require_doc(doc_id)
        new_title = (title or "").strip() or UNTITLED_DOC_TITLE
        self.store.update_doc(doc_id, title=new_title)
        logger.info("Document renamed", extra={"doc_id": doc_id, "campaign_id": doc.campaign_id})
        self._refresh_indexes(doc.campaign_id)
        return doc.model_copy(update={"title": new_title})

    def move_doc(
        self, doc_id: str, folder_id: Optional[str], sort_index: Optional[int] = None
    ) -> Document:
        doc = self._require_doc(doc_id)
        if folder_id is not None:
            self._require_active_folder(folder_id, doc.campaign_id)
        next_sort = (
            sort_index
            if sort_index is not None
            else self.store.next_sort_index(doc.campaign_id, folder_id)
        )
        self.store.update_doc(doc_id, folder_id=folder_id, sort_index=next_sort)
        logger.info(
            "Document moved",
            extra={"doc_id": doc_id, "folder_id": folder_id, "sort_index": next_sort},
        )
        self._refresh_indexes(doc.campaign_id)
        return doc.model_copy(update={"folder_id": folder_id, "sort_index": next_sort})

    def set_doc_sort_order(
        self, campaign_id: str, folder_id: Optional[str], ordered_doc_ids: Sequence[str]
    ) -> None:
        """Place ``ordered_doc_ids`` in ``folder_id`` with sort indexes 1..n."""
        if folder_id is not None:
            self._require_active_folder(folder_id, campaign_id)
        for position, doc_id in enumerate(ordered_doc_ids, start=1):
            self.store.update_doc(doc_id, sort_index=position, folder_id=folder_id)
        self._refresh_indexes(campaign_id)

    def save_doc_content(
        self, doc_id: str, body: str, *, create_missing: bool = True
    ) -> SaveResult:
        return self.indexer.save_doc_content(doc_id, body, create_missing=create_missing)

    def trash_doc(self, doc_id: str) -> CascadeResult:
        doc = self._require_doc(doc_id)
        self.store.mark_docs_deleted([doc_id], _utcnow())
        logger.info("Document trashed", extra={"doc_id": doc_id, "campaign_id": doc.campaign_id})
        self._refresh_indexes(doc.campaign_id)
        return CascadeResult(doc_ids=[doc_id])

    def restore_doc(self, doc_id: str) -> Document:
        """Clear ``deleted_at``; documents whose folder is gone or trashed move to the root."""
        doc = self._require_doc(doc_id)
        folder_id = doc.folder_id
        if folder_id is not None:
            folder = self.store.get_folder(folder_id)
            if folder is None or folder.is_deleted:
                folder_id = None
        sort_index = self.store.next_sort_index(doc.campaign_id, folder_id)
        self.store.update_doc(doc_id, deleted_at=None, folder_id=folder_id, sort_index=sort_index)
        logger.info(
            "Document restored",
            extra={"doc_id": doc_id, "folder_id": folder_id, "demoted": folder_id != doc.folder_id},
        )
        self._refresh_indexes(doc.campaign_id)
        return doc.model_copy(
            update={"deleted_at": None, "folder_id": folder_id, "sort_index": sort_index}
        )

    def purge_doc(self, doc_id: str) -> CascadeResult:
        doc = self.store.get_doc(doc_id)
        if doc is None:
            logger.debug("Document already purged", extra={"doc_id": doc_id})
            return CascadeResult()
        self._purge_doc_rows([doc_id])
        logger.info("Document purged", extra={"doc_id": doc_id, "campaign_id": doc.campaign_id})
        self._refresh_indexes(doc.campaign_id)
        return CascadeResult(doc_ids=[doc_id])

    def _purge_doc_rows(self, doc_ids: List[str]) -> None:
        # Referencing rows go first so nothing is left pointing at a missing document.
        if not doc_ids:
            return
        self.store.delete_edges_touching(doc_ids)
        self.store.delete_tags_for(doc_ids)
        self.store.delete_cross_references(doc_ids)
        self.store.delete_docs(doc_ids)

    # Folders

    def create_folder(
        self,
        campaign_id: str,
        name: str,
        parent_folder_id: Optional[str] = None,
        *,
        create_index_doc: bool = True,
    ) -> Folder:
        cleaned = (name or "").strip()
        if not cleaned:
            raise VaultValidationError("Folder name cannot be empty", {"campaign_id": campaign_id})
        if parent_folder_id is not None:
            self._require_active_folder(parent_folder_id, campaign_id)

        folder = Folder(
            id=generate_folder_id(),
            name=cleaned,
            parent_folder_id=parent_folder_id,
            campaign_id=campaign_id,
        )
        self.store.insert_folder(folder)
        logger.info(
            "Folder created",
            extra={"folder_id": folder.id, "campaign_id": campaign_id, "parent_folder_id": parent_folder_id},
        )
        if create_index_doc:
            self.folder_index.ensure_index_doc(folder)
        self._refresh_indexes(campaign_id)
        return folder

    def rename_folder(self, folder_id: str, name: str) -> Folder:
        folder = self._require_folder(folder_id)
        cleaned = (name or "").strip()
        if not cleaned:
            raise VaultValidationError("Folder name cannot be empty", {"folder_id": folder_id})
        self.store.update_folder(folder_id, name=cleaned)
        logger.info("Folder renamed", extra={"folder_id": folder_id, "campaign_id": folder.campaign_id})
        self.folder_index.sync_folder_rename(folder_id)
        self._refresh_indexes(folder.campaign_id)
        return folder.model_copy(update={"name": cleaned})

    def move_folder(self, folder_id: str, parent_folder_id: Optional[str]) -> Folder:
        folder = self._require_folder(folder_id)
        if parent_folder_id is not None:
            self._require_active_folder(parent_folder_id, folder.campaign_id)
            tree = FolderTree(self.store.list_folders(folder.campaign_id, deleted=None))
            if tree.is_within(parent_folder_id, folder_id):
                raise VaultValidationError(
                    "Cannot move a folder inside itself",
                    {"folder_id": folder_id, "parent_folder_id": parent_folder_id},
                )
        self.store.update_folder(folder_id, parent_folder_id=parent_folder_id)
        logger.info(
            "Folder moved",
            extra={"folder_id": folder_id, "parent_folder_id": parent_folder_id},
        )
        self._refresh_indexes(folder.campaign_id)
        return folder.model_copy(update={"parent_folder_id": parent_folder_id})

    def _subtree(self, folder_id: str) -> tuple[Folder, FolderTree, List[str]]:
        folder = self._require_folder(folder_id)
        tree = FolderTree(self.store.list_folders(folder.campaign_id, deleted=None))
        return folder, tree, tree.subtree_ids(folder_id)

    def trash_folder(self, folder_id: str) -> CascadeResult:
        """Soft-delete a folder, its descendants and every document inside them."""
        folder, _, folder_ids = self._subtree(folder_id)
        now = _utcnow()
        docs = self.store.list_docs_in_folders(folder_ids)
        doc_ids = [doc.id for doc in docs]

        self.store.mark_folders_deleted(folder_ids, now)
        self.store.mark_docs_deleted(doc_ids, now)
        logger.info(
            "Folder tree trashed",
            extra={"folder_id": folder_id, "folder_count": len(folder_ids), "doc_count": len(doc_ids)},
        )
        self._refresh_indexes(folder.campaign_id)
        return CascadeResult(folder_ids=folder_ids, doc_ids=doc_ids)

    def restore_folder(self, folder_id: str) -> CascadeResult:
        """
        Restore a folder subtree and its documents.

        A folder whose parent is missing or still in the trash is re-attached
        to the campaign root; parents inside the restored subtree count as active.
        """
        folder, tree, folder_ids = self._subtree(folder_id)
        restored = set(folder_ids)
        reparented: List[str] = []
        for current_id in folder_ids:
            current = tree.get(current_id)
            if current is None or current.parent_folder_id is None:
                continue
            parent = tree.get(current.parent_folder_id)
            if parent is None or (parent.id not in restored and parent.is_deleted):
                reparented.append(current_id)

        self.store.mark_folders_deleted(folder_ids, None)
        for current_id in reparented:
            self.store.update_folder(current_id, parent_folder_id=None)

        docs = self.store.list_docs_in_folders(folder_ids)
        doc_ids = [doc.id for doc in docs]
        self.store.mark_docs_deleted(doc_ids, None)
        logger.info(
            "Folder tree restored",
            extra={
                "folder_id": folder_id,
                "folder_count": len(folder_ids),
                "doc_count": len(doc_ids),
                "reparented": len(reparented),
            },
        )
        self._refresh_indexes(folder.campaign_id)
        return CascadeResult(folder_ids=folder_ids, doc_ids=doc_ids, reparented_folder_ids=reparented)

    def purge_folder(self, folder_id: str) -> CascadeResult:
        """Permanently delete a folder subtree, its documents and every row referencing them."""
        if self.store.get_folder(folder_id) is None:
            logger.debug("Folder already purged", extra={"folder_id": folder_id})
            return CascadeResult()
        folder, _, folder_ids = self._subtree(folder_id)
        doc_ids = [doc.id for doc in self.store.list_docs_in_folders(folder_ids)]

        self._purge_doc_rows(doc_ids)
        self.store.delete_folders(folder_ids)
        logger.info(
            "Folder tree purged",
            extra={"folder_id": folder_id, "folder_count": len(folder_ids), "doc_count": len(doc_ids)},
        )
        self._refresh_indexes(folder.campaign_id)
        return CascadeResult(folder_ids=folder_ids, doc_ids=doc_ids)

    # Cross-references

    def set_npc_profile(self, doc_id: str, creature_id: Optional[str]) -> NpcProfile:
        self._require_doc(doc_id)
        now = _utcnow()
        existing = self.store.get_npc_profile(doc_id)
        profile = NpcProfile(
            doc_id=doc_id,
            creature_id=creature_id,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.store.upsert_npc_profile(profile)
        return profile

    def get_npc_profile(self, doc_id: str) -> Optional[NpcProfile]:
        return self.store.get_npc_profile(doc_id)

    def add_map_pin(self, map_id: str, doc_id: str, x: float, y: float) -> MapPin:
        self._require_doc(doc_id)
        return self.store.add_map_pin(
            MapPin(map_id=map_id, doc_id=doc_id, x=x, y=y, created_at=_utcnow())
        )

    def list_map_pins(self, map_id: str) -> List[MapPin]:
        return self.store.list_map_pins(map_id=map_id)


def build_vault_service(config: AppConfig | None = None) -> VaultService:
    """Wire a VaultService over the configured SQLite database, creating the schema."""
    config = config or get_config()
    db_service = DatabaseService(config.db_path)
    db_service.initialize()
    return VaultService(SQLiteVaultStore(db_service), config=config)


__all__ = ["VaultService", "build_vault_service"]
