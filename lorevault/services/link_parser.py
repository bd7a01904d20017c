"""Wiki-link extraction."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from ..models.links import LinkKind, ParsedLink

WIKILINK_PATTERN = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")

DOC_PREFIX = "doc:"
FOLDER_PREFIX = "folder:"
REF_PREFIX = "ref:"


def _classify(target: str, link_text: str) -> Optional[ParsedLink]:
    if target.startswith(DOC_PREFIX):
        doc_id = target[len(DOC_PREFIX) :].strip()
        if not doc_id:
            return None
        return ParsedLink(target_title=target, link_text=link_text, kind=LinkKind.DOC, doc_id=doc_id)

    if target.startswith(FOLDER_PREFIX):
        folder_name = target[len(FOLDER_PREFIX) :].strip()
        if not folder_name:
            return None
        return ParsedLink(
            target_title=target, link_text=link_text, kind=LinkKind.FOLDER, folder_name=folder_name
        )

    if target.startswith(REF_PREFIX):
        slug, _, entry_id = target[len(REF_PREFIX) :].partition(":")
        if not slug.strip() or not entry_id.strip():
            return None
        return ParsedLink(
            target_title=target,
            link_text=link_text,
            kind=LinkKind.REF,
            ref_slug=slug.strip(),
            ref_id=entry_id.strip(),
        )

    return ParsedLink(target_title=target, link_text=link_text)


def parse_links(markdown: str) -> List[ParsedLink]:
    """
    Extract unique ``[[target]]`` / ``[[target|label]]`` links in first-seen order.

    Repeated targets collapse into one entry whose link text is taken from
    the last occurrence and whose ``occurrences`` counts the repeats.
    """
    links: Dict[Tuple[LinkKind, str], ParsedLink] = {}
    for match in WIKILINK_PATTERN.finditer(markdown or ""):
        target = match.group(1).strip()
        if not target:
            continue
        link_text = (match.group(2) or "").strip() or target
        link = _classify(target, link_text)
        if link is None:
            continue
        existing = links.get(link.identity)
        if existing is None:
            links[link.identity] = link
        else:
            links[link.identity] = existing.model_copy(
                update={"link_text": link_text, "occurrences": existing.occurrences + 1}
            )
    return list(links.values())


__all__ = ["parse_links", "WIKILINK_PATTERN"]
