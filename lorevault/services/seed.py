"""Seed a new campaign with starter folders and a welcome page."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..models.vault import SaveResult
from .errors import LoreVaultError
from .vault import VaultService

logger = logging.getLogger(__name__)

STARTER_FOLDERS: List[str] = [
    "Factions",
    "Religions",
    "Magic & Cosmology",
    "History & Ages",
    "Places",
    "Lore",
    "People",
]

# (child, parent)
STARTER_SUBFOLDERS: List[Tuple[str, str]] = [
    ("Regions", "Places"),
    ("Notable Figures", "People"),
    ("Myths & Legends", "Lore"),
]

WELCOME_DOC_TITLE = "Welcome"
WELCOME_DOC_BODY = """Worldbuilder is a spellbook of systems, not a list of records. Start with the forces that shape everything, then let people and places emerge.

Begin with [[folder:Factions]], [[folder:Religions]], [[folder:Regions]], [[folder:Magic & Cosmology]], and [[folder:History & Ages]].

Tags capture context like @ecosystem:coastal or @creature:undead."""


def _has_user_content(vault: VaultService, campaign_id: str) -> bool:
    """Any page besides folder indexes and an empty leftover welcome page."""
    for doc in vault.store.list_docs(campaign_id, deleted=None):
        if doc.is_index:
            continue
        if doc.title == WELCOME_DOC_TITLE and not doc.body:
            continue
        return True
    return False


def _ensure_folder(
    vault: VaultService, campaign_id: str, name: str, parent_folder_id: Optional[str] = None
) -> str:
    for folder in vault.list_folders(campaign_id):
        if folder.name == name and folder.parent_folder_id == parent_folder_id:
            return folder.id
    return vault.create_folder(campaign_id, name, parent_folder_id).id


def _seed_content(vault: VaultService, campaign_id: str) -> Tuple[Dict[str, str], SaveResult]:
    folder_ids: Dict[str, str] = {}
    for name in STARTER_FOLDERS:
        folder_ids[name] = _ensure_folder(vault, campaign_id, name)
    for name, parent in STARTER_SUBFOLDERS:
        folder_ids[name] = _ensure_folder(vault, campaign_id, name, folder_ids[parent])

    welcome = vault.get_doc_by_title(campaign_id, WELCOME_DOC_TITLE)
    if welcome is None or welcome.is_index:
        welcome = vault.create_doc(campaign_id, WELCOME_DOC_TITLE)
    return folder_ids, vault.save_doc_content(welcome.id, WELCOME_DOC_BODY)


def seed_campaign_if_needed(vault: VaultService, campaign_id: str) -> bool:
    """
    Create the starter structure the first time a campaign is opened.

    The claim is recorded atomically in the store, so concurrent or repeated
    calls seed at most once. A campaign that already holds documents is
    left alone. If seeding fails the claim is released and the error is
    re-raised; the next call picks up whatever the failed run left behind.

    Returns:
        True when the starter folders and welcome page were created.
    """
    if not vault.store.claim_campaign_seed(campaign_id):
        logger.debug("Campaign already seeded", extra={"campaign_id": campaign_id})
        return False

    if _has_user_content(vault, campaign_id):
        logger.info(
            "Campaign has documents, skipping starter content",
            extra={"campaign_id": campaign_id},
        )
        return False

    logger.info("Seeding campaign", extra={"campaign_id": campaign_id})

    try:
        folder_ids, result = _seed_content(vault, campaign_id)
    except LoreVaultError as exc:
        vault.store.release_campaign_seed(campaign_id)
        logger.error(
            "Campaign seeding failed, claim released",
            extra={"campaign_id": campaign_id, "error": str(exc)},
        )
        raise

    logger.info(
        "Campaign seeded",
        extra={
            "campaign_id": campaign_id,
            "folder_count": len(folder_ids),
            "welcome_doc_id": result.doc_id,
            "welcome_links": len(result.edges),
        },
    )
    return True


__all__ = ["seed_campaign_if_needed", "STARTER_FOLDERS", "STARTER_SUBFOLDERS", "WELCOME_DOC_TITLE"]
