"""Validate normalized tags against the namespace vocabulary."""

from __future__ import annotations

from functools import lru_cache
import logging
from pathlib import Path
import re
from typing import Dict, Iterable, Iterator, List, Optional, Pattern, Sequence

from pydantic import ValidationError
import yaml

from ..models.tags import (
    IssueCode,
    NamespaceKind,
    ParsedTag,
    TagNamespaceSpec,
    TagValidationIssue,
    TagValidationOptions,
)
from .config import DEFAULT_VOCABULARY_PATH
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class TagVocabulary:
    """Namespace lookup built from TagNamespaceSpec entries."""

    def __init__(self, specs: Iterable[TagNamespaceSpec]) -> None:
        self._by_namespace: Dict[str, TagNamespaceSpec] = {}
        for spec in specs:
            self._by_namespace[spec.namespace] = spec

    def get(self, namespace: str) -> Optional[TagNamespaceSpec]:
        return self._by_namespace.get(namespace)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._by_namespace

    def __iter__(self) -> Iterator[TagNamespaceSpec]:
        return iter(self._by_namespace.values())

    def __len__(self) -> int:
        return len(self._by_namespace)

    @property
    def namespaces(self) -> List[str]:
        return sorted(self._by_namespace)


def load_vocabulary(path: str | Path) -> TagVocabulary:
    """
    Load a vocabulary YAML file.

    The file holds a top-level ``namespaces`` list; each entry is validated
    as a TagNamespaceSpec. Raises ConfigurationError on unreadable or
    malformed data.
    """
    vocabulary_path = Path(path)
    try:
        data = yaml.safe_load(vocabulary_path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read tag vocabulary: {vocabulary_path}", {"path": str(vocabulary_path)}
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Invalid YAML in tag vocabulary: {exc}", {"path": str(vocabulary_path)}
        ) from exc

    entries = data.get("namespaces") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(
            "Tag vocabulary must define a 'namespaces' list", {"path": str(vocabulary_path)}
        )

    try:
        specs = [TagNamespaceSpec.model_validate(entry) for entry in entries]
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid namespace entry in tag vocabulary: {exc}", {"path": str(vocabulary_path)}
        ) from exc

    logger.debug(
        "Loaded tag vocabulary",
        extra={"path": str(vocabulary_path), "namespace_count": len(specs)},
    )
    return TagVocabulary(specs)


@lru_cache(maxsize=8)
def _cached_vocabulary(path: str) -> TagVocabulary:
    return load_vocabulary(path)


def get_vocabulary(path: str | Path | None = None) -> TagVocabulary:
    """Return the (cached) vocabulary at ``path``, defaulting to the packaged file."""
    return _cached_vocabulary(str(Path(path or DEFAULT_VOCABULARY_PATH).resolve()))


@lru_cache(maxsize=64)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def _format_tag(tag: ParsedTag) -> str:
    if tag.raw:
        return tag.raw
    return f"@{tag.namespace}:{tag.value}"


def validate_tags(
    tags: Sequence[ParsedTag],
    vocabulary: Optional[TagVocabulary] = None,
    options: Optional[TagValidationOptions] = None,
) -> List[TagValidationIssue]:
    """
    Check tags against the vocabulary.

    Issues are emitted in the order of ``tags``. A declared pattern is checked
    for every kind and does not stop the closed/semi value check, so a
    malformed value in a closed namespace reports both problems.
    """
    if vocabulary is None:
        vocabulary = get_vocabulary()
    options = options or TagValidationOptions()
    issues: List[TagValidationIssue] = []

    for tag in tags:
        spec = vocabulary.get(tag.namespace)
        label = _format_tag(tag)

        if spec is None:
            issues.append(
                TagValidationIssue(
                    severity="error" if options.strict_namespaces else "warn",
                    code=IssueCode.UNKNOWN_NAMESPACE,
                    message=f'Unknown namespace "{tag.namespace}".',
                    tag=label,
                )
            )
            continue

        if spec.pattern and not _compile(spec.pattern).search(tag.value):
            issues.append(
                TagValidationIssue(
                    severity="error",
                    code=IssueCode.PATTERN_MISMATCH,
                    message=f'Value "{tag.value}" does not match {spec.pattern}.',
                    tag=label,
                )
            )

        if spec.kind is NamespaceKind.CLOSED:
            if tag.value not in set(spec.values or []):
                issues.append(
                    TagValidationIssue(
                        severity="error",
                        code=IssueCode.INVALID_VALUE,
                        message=f'Value "{tag.value}" is not allowed for "{spec.namespace}".',
                        tag=label,
                    )
                )
        elif spec.kind is NamespaceKind.SEMI:
            allowed = set(spec.values or []) | set(options.custom_values.get(spec.namespace, []))
            if tag.value not in allowed:
                issues.append(
                    TagValidationIssue(
                        severity="warn",
                        code=IssueCode.UNREGISTERED_VALUE,
                        message=f'Value "{tag.value}" is not registered for "{spec.namespace}".',
                        tag=label,
                    )
                )

    return issues


__all__ = ["TagVocabulary", "load_vocabulary", "get_vocabulary", "validate_tags"]
