"""Pydantic models for vault records, tags and links."""

from .graph import GraphData, GraphLink, GraphNode
from .links import LinkKind, ParsedLink
from .tags import (
    IssueCode,
    NamespaceKind,
    ParsedTag,
    TagHealthIssue,
    TagHealthReport,
    TagMigrationSuggestion,
    TagNamespaceSpec,
    TagValidationIssue,
    TagValidationOptions,
)
from .vault import (
    Backlink,
    CascadeResult,
    Document,
    DocKind,
    Edge,
    EdgeType,
    Folder,
    MapPin,
    NpcProfile,
    SaveResult,
    TagRow,
)

__all__ = [
    "Document",
    "DocKind",
    "Folder",
    "Edge",
    "EdgeType",
    "TagRow",
    "NpcProfile",
    "MapPin",
    "Backlink",
    "SaveResult",
    "CascadeResult",
    "ParsedTag",
    "NamespaceKind",
    "TagNamespaceSpec",
    "IssueCode",
    "TagValidationIssue",
    "TagValidationOptions",
    "TagHealthIssue",
    "TagHealthReport",
    "TagMigrationSuggestion",
    "LinkKind",
    "ParsedLink",
    "GraphData",
    "GraphNode",
    "GraphLink",
]
