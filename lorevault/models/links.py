"""Wiki-link models."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class LinkKind(str, Enum):
    DOC = "doc"
    FOLDER = "folder"
    REF = "ref"
    TITLE = "title"


class ParsedLink(BaseModel):
    """One unique `[[target|label]]` reference found in a body."""

    model_config = ConfigDict(frozen=True)

    target_title: str = Field(..., description="Target text inside the brackets")
    link_text: str
    kind: LinkKind = LinkKind.TITLE
    doc_id: Optional[str] = None
    folder_name: Optional[str] = None
    ref_slug: Optional[str] = None
    ref_id: Optional[str] = None
    occurrences: int = Field(1, ge=1)

    @property
    def identity(self) -> Tuple[LinkKind, str]:
        if self.kind is LinkKind.DOC:
            return (self.kind, self.doc_id or "")
        if self.kind is LinkKind.FOLDER:
            return (self.kind, (self.folder_name or "").lower())
        if self.kind is LinkKind.REF:
            return (self.kind, f"{self.ref_slug}:{self.ref_id}")
        return (self.kind, self.target_title)


__all__ = ["LinkKind", "ParsedLink"]
