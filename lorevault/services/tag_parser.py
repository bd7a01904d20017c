"""Extract and normalize namespaced tags from markdown."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from ..models.tags import ParsedTag, TagPrefix

FRONTMATTER_PATTERN = re.compile(r"^---\n([\s\S]*?)\n---\n?")
TAGS_KEY_PATTERN = re.compile(r"^\s*tags\s*:\s*(.*)$")
LIST_ITEM_PATTERN = re.compile(r"^\s*-\s*(.+)$")
KEY_LINE_PATTERN = re.compile(r"^\s*\w")
INLINE_TAG_PATTERN = re.compile(r"([@#])([a-zA-Z][\w-]*):", re.ASCII)
TAG_STRING_PATTERN = re.compile(r"^([@#])?([a-zA-Z][\w-]*):(.+)$", re.ASCII)
SURROUNDING_QUOTES_PATTERN = re.compile(r"^['\"]|['\"]$")
TRAILING_PUNCTUATION_PATTERN = re.compile(r"[.,;:!?]+$")
WHITESPACE_PATTERN = re.compile(r"\s")


def slugify(text: str | None) -> str:
    """Lowercase, drop quotes and collapse anything non-alphanumeric into single hyphens."""
    if not text:
        return ""
    slug = text.strip().lower()
    slug = re.sub(r"['\"]", "", slug)
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    return slug.strip("-")


def normalize_namespace(namespace: str | None) -> str:
    if not namespace:
        return ""
    cleaned = namespace.strip().lower()
    cleaned = re.sub(r"['\"]", "", cleaned)
    cleaned = re.sub(r"[^a-z0-9_-]+", "-", cleaned)
    cleaned = re.sub(r"-+", "-", cleaned)
    return cleaned.strip("-")


def normalize_value(value: str | None) -> str:
    return slugify(value)


def parse_frontmatter_tags(markdown: str) -> List[str]:
    """
    Return the raw tag strings declared under ``tags:`` in a leading frontmatter block.

    Supports the flow form ``tags: [a, b]`` and a block list of ``- item`` lines;
    the block list ends at the first line that starts another key.
    """
    match = FRONTMATTER_PATTERN.match(markdown or "")
    if not match:
        return []

    tags: List[str] = []
    in_tags = False
    for line in match.group(1).split("\n"):
        if not in_tags:
            tag_line = TAGS_KEY_PATTERN.match(line)
            if not tag_line:
                continue
            inline = tag_line.group(1).strip()
            if inline.startswith("[") and inline.endswith("]"):
                tags.extend(item.strip() for item in inline[1:-1].split(",") if item.strip())
                break
            in_tags = True
            continue

        list_item = LIST_ITEM_PATTERN.match(line)
        if list_item:
            tags.append(list_item.group(1).strip())
            continue
        if KEY_LINE_PATTERN.match(line):
            break

    return tags


def _parse_tag_string(raw: str) -> Optional[ParsedTag]:
    trimmed = SURROUNDING_QUOTES_PATTERN.sub("", raw.strip())
    if not trimmed:
        return None
    match = TAG_STRING_PATTERN.match(trimmed)
    if not match:
        return None
    namespace = normalize_namespace(match.group(2))
    value = normalize_value(match.group(3))
    if not namespace or not value:
        return None
    prefix: Optional[TagPrefix] = match.group(1)  # type: ignore[assignment]
    return ParsedTag(
        namespace=namespace,
        value=value,
        raw=trimmed,
        source="frontmatter",
        prefix=prefix,
    )


def parse_inline_tags(markdown: str) -> List[ParsedTag]:
    """Extract ``@namespace:value`` and ``#namespace:value`` annotations from text."""
    text = markdown or ""
    matches = list(INLINE_TAG_PATTERN.finditer(text))
    tags: List[ParsedTag] = []

    for index, match in enumerate(matches):
        next_match = matches[index + 1] if index + 1 < len(matches) else None
        value_end = next_match.start() if next_match else len(text)
        raw_value = text[match.end() : value_end].strip()
        # Another tag follows: only the first word belongs to this one.
        if next_match and WHITESPACE_PATTERN.search(raw_value):
            raw_value = raw_value.split()[0]
        raw_value = TRAILING_PUNCTUATION_PATTERN.sub("", raw_value)

        namespace = normalize_namespace(match.group(2))
        value = normalize_value(raw_value)
        if not namespace or not value:
            continue
        prefix: TagPrefix = match.group(1)  # type: ignore[assignment]
        tags.append(
            ParsedTag(
                namespace=namespace,
                value=value,
                raw=f"{prefix}{match.group(2)}:{raw_value}",
                source="inline",
                prefix=prefix,
            )
        )

    return tags


def parse_tags_from_markdown(markdown: str) -> List[ParsedTag]:
    """Parse frontmatter tags followed by inline tags, in document order."""
    tags: List[ParsedTag] = []
    for raw in parse_frontmatter_tags(markdown):
        parsed = _parse_tag_string(raw)
        if parsed is not None:
            tags.append(parsed)
    tags.extend(parse_inline_tags(markdown))
    return tags


def normalize_tags(tags: Iterable[ParsedTag]) -> List[ParsedTag]:
    """Drop repeated ``namespace:value`` keys (first one wins) and sort by namespace, value."""
    unique: Dict[str, ParsedTag] = {}
    for tag in tags:
        unique.setdefault(tag.key, tag)
    return sorted(unique.values(), key=lambda tag: (tag.namespace, tag.value))


__all__ = [
    "slugify",
    "normalize_namespace",
    "normalize_value",
    "parse_frontmatter_tags",
    "parse_inline_tags",
    "parse_tags_from_markdown",
    "normalize_tags",
]
