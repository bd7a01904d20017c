"""Link-graph payload for one campaign."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .vault import DocKind, EdgeType

ROOT_GROUP = "root"


class GraphNode(BaseModel):
    """An active document, sized by how many pages link to it."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = Field(..., description="Document title")
    folder_id: Optional[str] = None
    group: str = Field(ROOT_GROUP, description="Folder name, or 'root' for unfiled pages")
    kind: DocKind = DocKind.NORMAL
    val: int = Field(1, ge=1, description="1 + inbound edge count")


class GraphLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    edge_type: EdgeType = EdgeType.WIKILINK
    weight: int = Field(1, ge=1)


class GraphData(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    links: List[GraphLink] = Field(default_factory=list)

    def neighbors(self, doc_id: str) -> List[str]:
        """Ids linked to or from ``doc_id``, in link order."""
        seen: List[str] = []
        for link in self.links:
            if link.source == doc_id:
                other = link.target
            elif link.target == doc_id:
                other = link.source
            else:
                continue
            if other not in seen:
                seen.append(other)
        return seen


__all__ = ["GraphNode", "GraphLink", "GraphData", "ROOT_GROUP"]
