"""
Abstract persistence interface for vault records.

Every method is a single independent call against the backing store.
Implementations raise StoreError when the backend fails; lookups return
None or an empty list only when there is genuinely no data.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from ..models.vault import Document, Edge, Folder, MapPin, NpcProfile, TagRow


class VaultStore(ABC):
    """Typed CRUD over documents, folders, edges, tags and cross-references."""

    # ═══════════════════════════════════════════════════════════
    # DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def insert_doc(self, doc: Document) -> None:
        """Insert a new document row."""

    @abstractmethod
    def get_doc(self, doc_id: str) -> Optional[Document]:
        """Return a document by id regardless of its deleted state."""

    @abstractmethod
    def get_docs(self, doc_ids: Sequence[str]) -> List[Document]:
        """Return every existing document among ``doc_ids``."""

    @abstractmethod
    def update_doc(self, doc_id: str, **changes: Any) -> bool:
        """
        Update columns of one document.

        Returns:
            True if the document existed
        """

    @abstractmethod
    def list_docs(self, campaign_id: str, *, deleted: Optional[bool] = False) -> List[Document]:
        """
        List documents of a campaign.

        Args:
            deleted: False for active only, True for trashed only, None for all
        """

    @abstractmethod
    def list_docs_in_folders(self, folder_ids: Sequence[str]) -> List[Document]:
        """Return documents (any state) whose folder is in ``folder_ids``."""

    @abstractmethod
    def find_docs_by_title(self, campaign_id: str, title: str) -> List[Document]:
        """Active documents with exactly ``title``, most recently updated first."""

    @abstractmethod
    def next_sort_index(self, campaign_id: str, folder_id: Optional[str]) -> int:
        """One past the highest sort index of active documents in a folder."""

    @abstractmethod
    def mark_docs_deleted(self, doc_ids: Sequence[str], deleted_at: Optional[datetime]) -> int:
        """Set (or clear with None) ``deleted_at`` on a batch of documents."""

    @abstractmethod
    def delete_docs(self, doc_ids: Sequence[str]) -> int:
        """Hard-delete document rows."""

    # ═══════════════════════════════════════════════════════════
    # FOLDERS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def insert_folder(self, folder: Folder) -> None:
        """Insert a new folder row."""

    @abstractmethod
    def get_folder(self, folder_id: str) -> Optional[Folder]:
        """Return a folder by id regardless of its deleted state."""

    @abstractmethod
    def update_folder(self, folder_id: str, **changes: Any) -> bool:
        """Update columns of one folder; True if it existed."""

    @abstractmethod
    def list_folders(self, campaign_id: str, *, deleted: Optional[bool] = False) -> List[Folder]:
        """List folders of a campaign (same ``deleted`` filter as list_docs)."""

    @abstractmethod
    def mark_folders_deleted(self, folder_ids: Sequence[str], deleted_at: Optional[datetime]) -> int:
        """Set (or clear with None) ``deleted_at`` on a batch of folders."""

    @abstractmethod
    def delete_folders(self, folder_ids: Sequence[str]) -> int:
        """Hard-delete folder rows."""

    # ═══════════════════════════════════════════════════════════
    # EDGES AND TAGS (derived rows)
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def replace_edges(self, from_doc_id: str, edges: Sequence[Edge]) -> Tuple[int, int]:
        """
        Make the outbound edge set of ``from_doc_id`` equal to ``edges``.

        Returns:
            (inserted, deleted) row counts
        """

    @abstractmethod
    def list_edges_from(self, doc_id: str) -> List[Edge]:
        """Outbound edges of a document."""

    @abstractmethod
    def list_edges_to(self, doc_id: str) -> List[Edge]:
        """Inbound edges of a document."""

    @abstractmethod
    def list_edges(self, campaign_id: str) -> List[Edge]:
        """Every edge of a campaign."""

    @abstractmethod
    def delete_edges_touching(self, doc_ids: Sequence[str]) -> int:
        """Delete edges where either endpoint is in ``doc_ids``."""

    @abstractmethod
    def replace_tags(self, doc_id: str, tags: Sequence[TagRow]) -> Tuple[int, int]:
        """Make the tag set of ``doc_id`` equal to ``tags``; returns (inserted, deleted)."""

    @abstractmethod
    def list_tags(self, doc_id: str) -> List[TagRow]:
        """Tags of one document ordered by namespace, value."""

    @abstractmethod
    def list_docs_with_tag(self, campaign_id: str, namespace: str, value: str) -> List[Document]:
        """Active documents of a campaign carrying ``namespace:value``."""

    @abstractmethod
    def delete_tags_for(self, doc_ids: Sequence[str]) -> int:
        """Delete every tag row of the given documents."""

    # ═══════════════════════════════════════════════════════════
    # CROSS-REFERENCES
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def upsert_npc_profile(self, profile: NpcProfile) -> None:
        """Insert or update the NPC profile attached to a document."""

    @abstractmethod
    def get_npc_profile(self, doc_id: str) -> Optional[NpcProfile]:
        """NPC profile of a document, if any."""

    @abstractmethod
    def add_map_pin(self, pin: MapPin) -> MapPin:
        """Insert a map pin and return it with its assigned id."""

    @abstractmethod
    def list_map_pins(self, *, map_id: Optional[str] = None, doc_id: Optional[str] = None) -> List[MapPin]:
        """Map pins filtered by map and/or document."""

    @abstractmethod
    def delete_cross_references(self, doc_ids: Sequence[str]) -> int:
        """Delete NPC profiles and map pins pointing at ``doc_ids``."""

    # ═══════════════════════════════════════════════════════════
    # CAMPAIGN SETUP
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def claim_campaign_seed(self, campaign_id: str) -> bool:
        """
        Atomically record that a campaign is being seeded.

        Returns:
            True for the first caller only
        """

    @abstractmethod
    def release_campaign_seed(self, campaign_id: str) -> None:
        """Drop a seed claim so a failed seed can be retried."""


__all__ = ["VaultStore"]
