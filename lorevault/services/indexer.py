"""Derive the link graph and tag index from document bodies."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
import logging
import time
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.graph import ROOT_GROUP, GraphData, GraphLink, GraphNode
from ..models.links import LinkKind, ParsedLink
from ..models.tags import TagValidationOptions
from ..models.vault import (
    Backlink,
    Document,
    Edge,
    EdgeType,
    SaveResult,
    TagRow,
)
from .config import AppConfig, get_config
from .errors import NotFoundError
from .ids import generate_document_id
from .link_parser import parse_links
from .store import VaultStore
from .tag_parser import normalize_namespace, normalize_tags, normalize_value, parse_tags_from_markdown
from .tag_validator import TagVocabulary, get_vocabulary, validate_tags

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canonical_index_doc(docs: Iterable[Document]) -> Optional[Document]:
    """Most recently updated active index document, or None."""
    candidates = [doc for doc in docs if doc.is_index and not doc.is_deleted]
    if not candidates:
        return None
    return max(candidates, key=lambda doc: (doc.updated_at, doc.id))


class IndexerService:
    """Keep Edge and Tag rows an exact function of each document's body."""

    def __init__(
        self,
        store: VaultStore,
        *,
        vocabulary: TagVocabulary | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or get_config()
        self.vocabulary = vocabulary if vocabulary is not None else get_vocabulary(self.config.vocabulary_path)

    def save_doc_content(
        self, doc_id: str, body: str, *, create_missing: bool = True
    ) -> SaveResult:
        """
        Persist ``body`` and rebuild the document's edges and tags from it.

        Title links with no matching document create an empty stub at the
        campaign root unless ``create_missing`` is False, in which case they
        are reported in ``SaveResult.dangling``. Body, edges and tags are
        written by separate store calls.
        """
        start_time = time.time()

        doc = self.store.get_doc(doc_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {doc_id}", {"doc_id": doc_id})

        body = body or ""
        updated_at = _utcnow()
        self.store.update_doc(doc_id, body=body, updated_at=updated_at)

        links = parse_links(body)
        resolved, created, dangling = self._resolve_links(doc, links, create_missing)
        edges = self._build_edges(doc, resolved)
        edges_added, edges_removed = self.store.replace_edges(doc_id, edges)

        tags = normalize_tags(parse_tags_from_markdown(body))
        tag_rows = [TagRow(doc_id=doc_id, namespace=tag.namespace, value=tag.value) for tag in tags]
        tags_added, tags_removed = self.store.replace_tags(doc_id, tag_rows)

        issues = validate_tags(
            tags,
            self.vocabulary,
            TagValidationOptions(strict_namespaces=self.config.strict_namespaces),
        )

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Document content saved",
            extra={
                "doc_id": doc_id,
                "campaign_id": doc.campaign_id,
                "links_count": len(links),
                "edges_added": edges_added,
                "edges_removed": edges_removed,
                "tags_count": len(tag_rows),
                "stubs_created": len(created),
                "tag_issues": len(issues),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )

        return SaveResult(
            doc_id=doc_id,
            updated_at=updated_at,
            edges=edges,
            tags=tag_rows,
            created=created,
            dangling=dangling,
            issues=issues,
            edges_added=edges_added,
            edges_removed=edges_removed,
            tags_added=tags_added,
            tags_removed=tags_removed,
        )

    def preview_missing_targets(self, doc_id: str, body: str) -> List[str]:
        """Titles that saving ``body`` would auto-create as stub documents."""
        doc = self.store.get_doc(doc_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {doc_id}", {"doc_id": doc_id})
        return [
            link.target_title
            for link in parse_links(body)
            if link.kind is LinkKind.TITLE
            and not self.store.find_docs_by_title(doc.campaign_id, link.target_title)
        ]

    def _resolve_links(
        self, doc: Document, links: List[ParsedLink], create_missing: bool
    ) -> Tuple[List[Tuple[ParsedLink, Document]], List[Document], List[str]]:
        resolved: List[Tuple[ParsedLink, Document]] = []
        created: List[Document] = []
        dangling: List[str] = []
        folders = None

        for link in links:
            if link.kind is LinkKind.REF:
                continue

            if link.kind is LinkKind.DOC:
                target = self.store.get_doc(link.doc_id or "")
                if target is None or target.campaign_id != doc.campaign_id:
                    dangling.append(link.target_title)
                    continue
                resolved.append((link, target))
                continue

            if link.kind is LinkKind.FOLDER:
                if folders is None:
                    folders = self.store.list_folders(doc.campaign_id)
                wanted = (link.folder_name or "").lower()
                folder = next((f for f in folders if f.name.lower() == wanted), None)
                index_doc = (
                    canonical_index_doc(self.store.list_docs_in_folders([folder.id]))
                    if folder is not None
                    else None
                )
                if index_doc is None:
                    dangling.append(link.target_title)
                    continue
                resolved.append((link, index_doc))
                continue

            matches = self.store.find_docs_by_title(doc.campaign_id, link.target_title)
            if matches:
                resolved.append((link, matches[0]))
            elif create_missing:
                stub = self._create_stub(doc.campaign_id, link.target_title)
                created.append(stub)
                resolved.append((link, stub))
            else:
                dangling.append(link.target_title)

        return resolved, created, dangling

    def _create_stub(self, campaign_id: str, title: str) -> Document:
        stub = Document(
            id=generate_document_id(),
            folder_id=None,
            title=title,
            body="",
            campaign_id=campaign_id,
            sort_index=self.store.next_sort_index(campaign_id, None),
            updated_at=_utcnow(),
        )
        self.store.insert_doc(stub)
        logger.info(
            "Created stub document for dangling link",
            extra={"doc_id": stub.id, "campaign_id": campaign_id, "title": title},
        )
        return stub

    @staticmethod
    def _build_edges(doc: Document, resolved: List[Tuple[ParsedLink, Document]]) -> List[Edge]:
        # Two link forms can name the same document; keep one edge per target.
        edges: Dict[str, Edge] = {}
        for link, target in resolved:
            existing = edges.get(target.id)
            if existing is not None:
                edges[target.id] = existing.model_copy(
                    update={
                        "link_text": link.link_text,
                        "weight": existing.weight + link.occurrences,
                    }
                )
                continue
            edges[target.id] = Edge(
                campaign_id=doc.campaign_id,
                from_doc_id=doc.id,
                to_doc_id=target.id,
                link_text=link.link_text,
                edge_type=EdgeType.FOLDER if link.kind is LinkKind.FOLDER else EdgeType.WIKILINK,
                weight=link.occurrences,
            )
        return list(edges.values())

    def list_backlinks(self, doc_id: str) -> List[Backlink]:
        """Inbound edges whose source document is still active."""
        edges = self.store.list_edges_to(doc_id)
        sources = {doc.id: doc for doc in self.store.get_docs([edge.from_doc_id for edge in edges])}
        backlinks: List[Backlink] = []
        for edge in edges:
            source = sources.get(edge.from_doc_id)
            if source is None or source.is_deleted:
                continue
            backlinks.append(Backlink(edge=edge, source=source))
        return sorted(backlinks, key=lambda item: item.source.updated_at, reverse=True)

    def list_outgoing(self, doc_id: str) -> List[Edge]:
        return self.store.list_edges_from(doc_id)

    def list_tags_for_doc(self, doc_id: str) -> List[TagRow]:
        return self.store.list_tags(doc_id)

    def list_docs_with_tag(self, namespace: str, value: str, campaign_id: str) -> List[Document]:
        """Active documents of ``campaign_id`` tagged ``namespace:value`` (inputs are normalized)."""
        return self.store.list_docs_with_tag(
            campaign_id, normalize_namespace(namespace), normalize_value(value)
        )

    def get_graph_data(self, campaign_id: str) -> GraphData:
        """Nodes for active documents and links between them."""
        docs = self.store.list_docs(campaign_id)
        folders = {folder.id: folder.name for folder in self.store.list_folders(campaign_id)}
        active_ids = {doc.id for doc in docs}
        edges = [
            edge
            for edge in self.store.list_edges(campaign_id)
            if edge.from_doc_id in active_ids and edge.to_doc_id in active_ids
        ]
        inbound = Counter(edge.to_doc_id for edge in edges)

        nodes = [
            GraphNode(
                id=doc.id,
                label=doc.title,
                folder_id=doc.folder_id,
                group=folders.get(doc.folder_id or "", ROOT_GROUP),
                kind=doc.kind,
                val=1 + inbound.get(doc.id, 0),
            )
            for doc in docs
        ]
        links = [
            GraphLink(
                source=edge.from_doc_id,
                target=edge.to_doc_id,
                edge_type=edge.edge_type,
                weight=edge.weight,
            )
            for edge in edges
        ]
        return GraphData(nodes=nodes, links=links)


__all__ = ["IndexerService", "canonical_index_doc"]
