"""Synthesize one index page per folder listing its transitive contents."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import logging
import re
from typing import Dict, List, NamedTuple, Optional, Sequence

from ..models.vault import DocKind, Document, Folder
from .errors import NotFoundError
from .folder_tree import FolderTree
from .ids import generate_document_id
from .indexer import IndexerService, canonical_index_doc
from .link_parser import DOC_PREFIX, FOLDER_PREFIX, REF_PREFIX
from .store import VaultStore

logger = logging.getLogger(__name__)

INDEX_START = "<!-- WB:INDEX_START -->"
INDEX_END = "<!-- WB:INDEX_END -->"
INDEX_REGION_PATTERN = re.compile(re.escape(INDEX_START) + r"[\s\S]*?" + re.escape(INDEX_END))
EMPTY_INDEX_LINE = "- (No pages yet)"
INDEX_INTRO = "> A living index of pages within this chapter."

_RESERVED_PREFIXES = (DOC_PREFIX, FOLDER_PREFIX, REF_PREFIX)


class IndexEntry(NamedTuple):
    """A page listed in a folder index."""

    title: str
    doc_id: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def index_title(folder_name: str) -> str:
    return f"{folder_name} Index"


def _title_is_linkable(title: str) -> bool:
    """True when ``[[title]]`` parses back to a title link for exactly ``title``."""
    if not title or title != title.strip():
        return False
    if "|" in title or "]" in title or "[[" in title:
        return False
    return not title.startswith(_RESERVED_PREFIXES)


def render_index_link(entry: IndexEntry) -> str:
    """
    Wiki-link for one listed page.

    Titles that would not survive the link grammar are linked by id, with
    the title (minus closing brackets) kept as the label.
    """
    if _title_is_linkable(entry.title):
        return f"[[{entry.title}]]"
    label = entry.title.replace("]", "").strip() or entry.doc_id
    return f"[[{DOC_PREFIX}{entry.doc_id}|{label}]]"


def render_index_section(entries: Sequence[IndexEntry]) -> str:
    if not entries:
        return EMPTY_INDEX_LINE
    return "\n".join(f"- {render_index_link(entry)}" for entry in entries)


def build_index_body(existing_body: str, folder_name: str, entries: Sequence[IndexEntry]) -> str:
    """
    Splice the rendered list into the managed region of ``existing_body``.

    Text outside the sentinels is left untouched. A body without both
    sentinels is replaced by a fresh heading, intro and region.
    """
    region = f"{INDEX_START}\n{render_index_section(entries)}\n{INDEX_END}"
    if INDEX_START in existing_body and INDEX_END in existing_body:
        return INDEX_REGION_PATTERN.sub(lambda _match: region, existing_body, count=1)
    return f"# {index_title(folder_name)}\n\n{INDEX_INTRO}\n\n{region}"


def extract_index_region(body: str) -> Optional[str]:
    """Content between the sentinels, or None when the body has no managed region."""
    match = INDEX_REGION_PATTERN.search(body or "")
    if not match:
        return None
    return match.group(0)[len(INDEX_START) : -len(INDEX_END)].strip("\n")


class FolderIndexService:
    """Maintain the auto-generated index document of every active folder."""

    def __init__(self, store: VaultStore, indexer: IndexerService) -> None:
        self.store = store
        self.indexer = indexer

    def ensure_index_doc(self, folder: Folder) -> Document:
        """Return the folder's canonical index document, creating it when missing."""
        existing = canonical_index_doc(self.store.list_docs_in_folders([folder.id]))
        if existing is not None:
            return existing
        return self._create_index_doc(folder)

    def _create_index_doc(self, folder: Folder) -> Document:
        doc = Document(
            id=generate_document_id(),
            folder_id=folder.id,
            title=index_title(folder.name),
            body=build_index_body("", folder.name, []),
            campaign_id=folder.campaign_id,
            shared=folder.shared,
            sort_index=self.store.next_sort_index(folder.campaign_id, folder.id),
            updated_at=_utcnow(),
            kind=DocKind.INDEX,
        )
        self.store.insert_doc(doc)
        logger.info(
            "Created folder index document",
            extra={"doc_id": doc.id, "folder_id": folder.id, "campaign_id": folder.campaign_id},
        )
        return doc

    @staticmethod
    def _listed_entries(
        folder_id: str, tree: FolderTree, docs_by_folder: Dict[str, List[Document]]
    ) -> List[IndexEntry]:
        docs = [
            doc
            for subtree_id in tree.subtree_ids(folder_id)
            for doc in docs_by_folder.get(subtree_id, [])
            if not doc.is_index
        ]
        docs.sort(key=lambda doc: (doc.sort_index, doc.title))
        return [IndexEntry(title=doc.title, doc_id=doc.id) for doc in docs]

    def _load(self, campaign_id: str) -> tuple[List[Folder], FolderTree, Dict[str, List[Document]]]:
        folders = self.store.list_folders(campaign_id)
        docs_by_folder: Dict[str, List[Document]] = defaultdict(list)
        for doc in self.store.list_docs(campaign_id):
            if doc.folder_id is not None:
                docs_by_folder[doc.folder_id].append(doc)
        return folders, FolderTree(folders), docs_by_folder

    def _retitle_if_changed(self, index_doc: Document, folder: Folder) -> Document:
        title = index_title(folder.name)
        if index_doc.title == title:
            return index_doc
        self.store.update_doc(index_doc.id, title=title)
        logger.info(
            "Retitled folder index document",
            extra={"doc_id": index_doc.id, "folder_id": folder.id, "title": title},
        )
        return index_doc.model_copy(update={"title": title})

    def _write_if_changed(
        self, index_doc: Document, folder: Folder, entries: List[IndexEntry]
    ) -> bool:
        next_body = build_index_body(index_doc.body, folder.name, entries)
        if next_body == index_doc.body:
            return False
        self.indexer.save_doc_content(index_doc.id, next_body)
        return True

    def update_all_folder_indexes(self, campaign_id: str) -> int:
        """
        Recompute every active folder's index title and region from one load of the campaign.

        Returns the number of index documents written; a second call with no
        structural change in between writes nothing.
        """
        folders, tree, docs_by_folder = self._load(campaign_id)
        writes = 0

        for folder in folders:
            index_doc = canonical_index_doc(docs_by_folder.get(folder.id, []))
            if index_doc is None:
                index_doc = self._create_index_doc(folder)
            retitled = self._retitle_if_changed(index_doc, folder)
            entries = self._listed_entries(folder.id, tree, docs_by_folder)
            if self._write_if_changed(retitled, folder, entries) or retitled is not index_doc:
                writes += 1

        if writes:
            logger.info(
                "Folder indexes updated",
                extra={"campaign_id": campaign_id, "folder_count": len(folders), "writes": writes},
            )
        else:
            logger.debug("Folder indexes unchanged", extra={"campaign_id": campaign_id})
        return writes

    def sync_folder_rename(self, folder_id: str) -> List[Document]:
        """
        Retitle a folder's index documents after a rename.

        An active folder also gets its region refreshed (and an index document
        when it has none). A trashed folder only has its existing index
        documents retitled, so they come back correct on restore.
        """
        folder = self.store.get_folder(folder_id)
        if folder is None:
            raise NotFoundError(f"Folder not found: {folder_id}", {"folder_id": folder_id})

        if folder.is_deleted:
            index_docs = [doc for doc in self.store.list_docs_in_folders([folder.id]) if doc.is_index]
            return [self._retitle_if_changed(doc, folder) for doc in index_docs]

        index_doc = self._retitle_if_changed(self.ensure_index_doc(folder), folder)
        _, tree, docs_by_folder = self._load(folder.campaign_id)
        self._write_if_changed(index_doc, folder, self._listed_entries(folder.id, tree, docs_by_folder))
        return [self.store.get_doc(index_doc.id) or index_doc]


__all__ = [
    "FolderIndexService",
    "IndexEntry",
    "INDEX_START",
    "INDEX_END",
    "build_index_body",
    "extract_index_region",
    "index_title",
    "render_index_link",
    "render_index_section",
]
