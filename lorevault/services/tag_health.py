"""Vault-wide tag health report."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..models.tags import (
    ParsedTag,
    TagHealthIssue,
    TagHealthReport,
    TagMigrationSuggestion,
    TagValidationOptions,
)
from ..models.vault import Document
from .tag_parser import normalize_tags, parse_tags_from_markdown
from .tag_validator import TagVocabulary, validate_tags


def canonical_label(tag: ParsedTag) -> str:
    """How the tag should be written once normalized."""
    if tag.source == "frontmatter" and not tag.prefix:
        return f"{tag.namespace}:{tag.value}"
    prefix = tag.prefix or ("#" if tag.raw.startswith("#") else "@")
    return f"{prefix}{tag.namespace}:{tag.value}"


def build_tag_health_report(
    docs: Iterable[Document],
    vocabulary: Optional[TagVocabulary] = None,
    options: Optional[TagValidationOptions] = None,
) -> TagHealthReport:
    """Count tags per namespace, collect validation issues and suggest rewrites."""
    namespaces: Dict[str, int] = {}
    invalid_tags: List[TagHealthIssue] = []
    migrations: List[TagMigrationSuggestion] = []
    total_tags = 0

    for doc in docs:
        normalized = normalize_tags(parse_tags_from_markdown(doc.body))
        total_tags += len(normalized)

        for tag in normalized:
            namespaces[tag.namespace] = namespaces.get(tag.namespace, 0) + 1
            label = canonical_label(tag)
            if tag.raw and label != tag.raw.strip():
                migrations.append(
                    TagMigrationSuggestion(
                        doc_id=doc.id, title=doc.title, raw=tag.raw, normalized=label
                    )
                )

        for issue in validate_tags(normalized, vocabulary, options):
            invalid_tags.append(
                TagHealthIssue(**issue.model_dump(), doc_id=doc.id, title=doc.title)
            )

    return TagHealthReport(
        total_tags=total_tags,
        namespaces=namespaces,
        invalid_tags=invalid_tags,
        migrations=migrations,
    )


__all__ = ["build_tag_health_report", "canonical_label"]
