"""Tag parsing, vocabulary and validation models."""

from __future__ import annotations

from enum import Enum
import re
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TagSource = Literal["frontmatter", "inline"]
TagPrefix = Literal["@", "#"]
IssueSeverity = Literal["error", "warn"]


class ParsedTag(BaseModel):
    """A namespaced tag extracted from markdown."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    raw: str = Field(..., description="Text as written in the document")
    source: TagSource
    prefix: Optional[TagPrefix] = None

    @property
    def key(self) -> str:
        return f"{self.namespace}:{self.value}"


class NamespaceKind(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    SEMI = "semi"


class TagNamespaceSpec(BaseModel):
    """Vocabulary entry describing what values a namespace accepts."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    kind: NamespaceKind
    values: Optional[List[str]] = None
    pattern: Optional[str] = None
    description: str = ""
    used_by: List[str] = Field(default_factory=list)

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid pattern {value!r}: {exc}") from exc
        return value


class IssueCode(str, Enum):
    UNKNOWN_NAMESPACE = "unknown-namespace"
    PATTERN_MISMATCH = "pattern-mismatch"
    INVALID_VALUE = "invalid-value"
    UNREGISTERED_VALUE = "unregistered-value"


class TagValidationIssue(BaseModel):
    severity: IssueSeverity
    code: IssueCode
    message: str
    tag: str


class TagValidationOptions(BaseModel):
    strict_namespaces: bool = False
    custom_values: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Per-caller additions for semi-open namespaces",
    )


class TagHealthIssue(TagValidationIssue):
    doc_id: str
    title: str


class TagMigrationSuggestion(BaseModel):
    doc_id: str
    title: str
    raw: str
    normalized: str


class TagHealthReport(BaseModel):
    total_tags: int = Field(0, ge=0)
    namespaces: Dict[str, int] = Field(default_factory=dict)
    invalid_tags: List[TagHealthIssue] = Field(default_factory=list)
    migrations: List[TagMigrationSuggestion] = Field(default_factory=list)


__all__ = [
    "TagSource",
    "TagPrefix",
    "IssueSeverity",
    "ParsedTag",
    "NamespaceKind",
    "TagNamespaceSpec",
    "IssueCode",
    "TagValidationIssue",
    "TagValidationOptions",
    "TagHealthIssue",
    "TagMigrationSuggestion",
    "TagHealthReport",
]
