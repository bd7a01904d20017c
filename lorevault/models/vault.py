"""Vault record models: folders, documents and the rows derived from them."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .tags import TagValidationIssue

UNTITLED_DOC_TITLE = "Untitled Page"


class DocKind(str, Enum):
    """Discriminant separating user pages from synthesized folder indexes."""

    NORMAL = "normal"
    INDEX = "index"


class EdgeType(str, Enum):
    WIKILINK = "wikilink"
    FOLDER = "folder"


class Folder(BaseModel):
    """Folder node; parent pointers form a tree within a campaign."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "fld_3f2a9c1d4b7e",
                "name": "Factions",
                "parent_folder_id": None,
                "campaign_id": "greenwood",
                "shared": False,
                "deleted_at": None,
            }
        }
    )

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=256)
    parent_folder_id: Optional[str] = None
    campaign_id: str = Field(..., min_length=1)
    shared: bool = False
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Document(BaseModel):
    """Markdown page; the body is the source of truth for tags and links."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "doc_91c0e4a2b3d5",
                "folder_id": "fld_3f2a9c1d4b7e",
                "title": "The Emerald Circle",
                "body": "@type:faction led by [[Mira Thorne]].",
                "campaign_id": "greenwood",
                "shared": False,
                "sort_index": 3,
                "updated_at": "2025-01-15T14:30:00+00:00",
                "deleted_at": None,
                "kind": "normal",
            }
        }
    )

    id: str = Field(..., min_length=1)
    folder_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    body: str = ""
    campaign_id: str = Field(..., min_length=1)
    shared: bool = False
    sort_index: int = 0
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    kind: DocKind = DocKind.NORMAL

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_index(self) -> bool:
        return self.kind is DocKind.INDEX


class Edge(BaseModel):
    """Directed link derived from one document body."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    from_doc_id: str
    to_doc_id: str
    link_text: str
    edge_type: EdgeType = EdgeType.WIKILINK
    weight: int = Field(1, ge=1, description="Occurrences of the target in the body")


class TagRow(BaseModel):
    """Stored tag for a document, replaced on every save."""

    model_config = ConfigDict(frozen=True)

    doc_id: str
    namespace: str
    value: str


class NpcProfile(BaseModel):
    """Cross-reference from a document to a creature stat block."""

    doc_id: str
    creature_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MapPin(BaseModel):
    """Cross-reference placing a document on a world map."""

    id: Optional[int] = None
    map_id: str
    doc_id: str
    x: float
    y: float
    created_at: datetime


class Backlink(BaseModel):
    edge: Edge
    source: Document


class SaveResult(BaseModel):
    """Outcome of a content save, including side effects on other records."""

    doc_id: str
    updated_at: datetime
    edges: List[Edge] = Field(default_factory=list)
    tags: List[TagRow] = Field(default_factory=list)
    created: List[Document] = Field(
        default_factory=list, description="Stub documents created for dangling links"
    )
    dangling: List[str] = Field(
        default_factory=list, description="Link targets that resolved to nothing"
    )
    issues: List[TagValidationIssue] = Field(default_factory=list)
    edges_added: int = 0
    edges_removed: int = 0
    tags_added: int = 0
    tags_removed: int = 0


class CascadeResult(BaseModel):
    """Records touched by a folder or document cascade."""

    folder_ids: List[str] = Field(default_factory=list)
    doc_ids: List[str] = Field(default_factory=list)
    reparented_folder_ids: List[str] = Field(default_factory=list)


__all__ = [
    "UNTITLED_DOC_TITLE",
    "DocKind",
    "EdgeType",
    "Folder",
    "Document",
    "Edge",
    "TagRow",
    "NpcProfile",
    "MapPin",
    "Backlink",
    "SaveResult",
    "CascadeResult",
]
