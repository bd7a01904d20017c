from pathlib import Path
from typing import List

import pytest

from lorevault.models.vault import Document
from lorevault.services.config import AppConfig
from lorevault.services.database import DatabaseService
from lorevault.services.folder_index import (
    INDEX_END,
    INDEX_START,
    IndexEntry,
    build_index_body,
    extract_index_region,
    render_index_link,
)
from lorevault.services.sqlite_store import SQLiteVaultStore
from lorevault.services.vault import VaultService

CAMPAIGN = "greenwood"


def _vault(tmp_path: Path, auto_update: bool) -> VaultService:
    config = AppConfig(db_path=tmp_path / "vault.db", auto_update_indexes=auto_update)
    db_service = DatabaseService(config.db_path)
    db_service.initialize()
    return VaultService(SQLiteVaultStore(db_service), config=config)


@pytest.fixture()
def manual_vault(tmp_path: Path) -> VaultService:
    return _vault(tmp_path, auto_update=False)


@pytest.fixture()
def auto_vault(tmp_path: Path) -> VaultService:
    return _vault(tmp_path, auto_update=True)


def _index_docs(vault: VaultService, folder_id: str) -> List[Document]:
    return [doc for doc in vault.store.list_docs_in_folders([folder_id]) if doc.is_index]


def test_build_index_body_for_new_page() -> None:
    body = build_index_body(
        "", "Places", [IndexEntry("Harbor", "doc_1"), IndexEntry("Shore", "doc_2")]
    )

    assert body.startswith("# Places Index\n")
    assert f"{INDEX_START}\n- [[Harbor]]\n- [[Shore]]\n{INDEX_END}" in body


def test_build_index_body_preserves_text_outside_region() -> None:
    existing = f"Intro written by hand.\n\n{INDEX_START}\n- [[Old]]\n{INDEX_END}\n\nFooter notes."

    body = build_index_body(existing, "Places", [])

    assert body == f"Intro written by hand.\n\n{INDEX_START}\n- (No pages yet)\n{INDEX_END}\n\nFooter notes."


def test_extract_index_region() -> None:
    body = build_index_body("", "Lore", [IndexEntry("Myth", "doc_1")])

    assert extract_index_region(body) == "- [[Myth]]"
    assert extract_index_region("no region here") is None


def test_create_folder_creates_single_index_doc(manual_vault: VaultService) -> None:
    folder = manual_vault.create_folder(CAMPAIGN, "Factions")

    index_docs = _index_docs(manual_vault, folder.id)
    assert len(index_docs) == 1
    assert index_docs[0].title == "Factions Index"
    assert extract_index_region(index_docs[0].body) == "- (No pages yet)"


def test_update_all_lists_subtree_and_second_pass_writes_nothing(
    manual_vault: VaultService,
) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")
    regions = manual_vault.create_folder(CAMPAIGN, "Regions", places.id)
    manual_vault.create_doc(CAMPAIGN, "Harbor", places.id)
    manual_vault.create_doc(CAMPAIGN, "Shore", regions.id)

    first = manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)
    second = manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)

    assert first == 2
    assert second == 0
    places_index = _index_docs(manual_vault, places.id)[0]
    regions_index = _index_docs(manual_vault, regions.id)[0]
    assert extract_index_region(places_index.body) == "- [[Harbor]]\n- [[Shore]]"
    assert extract_index_region(regions_index.body) == "- [[Shore]]"


def test_index_links_become_edges(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")
    harbor = manual_vault.create_doc(CAMPAIGN, "Harbor", places.id)

    manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)

    backlinks = manual_vault.indexer.list_backlinks(harbor.id)
    assert [backlink.source.id for backlink in backlinks] == [_index_docs(manual_vault, places.id)[0].id]


def test_update_keeps_hand_written_text(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")
    index_doc = _index_docs(manual_vault, places.id)[0]
    manual_vault.save_doc_content(
        index_doc.id, f"Where the story happens.\n\n{INDEX_START}\n{INDEX_END}\n\nSee also the map."
    )
    manual_vault.create_doc(CAMPAIGN, "Harbor", places.id)

    manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)

    body = manual_vault.get_doc(index_doc.id).body
    assert body.startswith("Where the story happens.")
    assert body.endswith("See also the map.")
    assert extract_index_region(body) == "- [[Harbor]]"


def test_missing_index_doc_is_recreated(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places", create_index_doc=False)

    writes = manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)

    assert writes == 0
    assert len(_index_docs(manual_vault, places.id)) == 1


def test_rename_folder_retitles_index_doc(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")

    manual_vault.rename_folder(places.id, "Lands")

    index_docs = _index_docs(manual_vault, places.id)
    assert [doc.title for doc in index_docs] == ["Lands Index"]


def test_structural_changes_refresh_indexes_automatically(auto_vault: VaultService) -> None:
    places = auto_vault.create_folder(CAMPAIGN, "Places")
    people = auto_vault.create_folder(CAMPAIGN, "People")
    harbor = auto_vault.create_doc(CAMPAIGN, "Harbor", places.id)

    places_index = _index_docs(auto_vault, places.id)[0]
    assert extract_index_region(places_index.body) == "- [[Harbor]]"

    auto_vault.move_doc(harbor.id, people.id)

    assert extract_index_region(auto_vault.get_doc(places_index.id).body) == "- (No pages yet)"
    people_index = _index_docs(auto_vault, people.id)[0]
    assert extract_index_region(people_index.body) == "- [[Harbor]]"


def test_titles_with_link_syntax_are_linked_by_id(auto_vault: VaultService) -> None:
    places = auto_vault.create_folder(CAMPAIGN, "Places")
    sword = auto_vault.create_doc(CAMPAIGN, "Sword | Shield", places.id)
    ledger = auto_vault.create_doc(CAMPAIGN, "folder:Ledger", places.id)

    region = extract_index_region(_index_docs(auto_vault, places.id)[0].body)

    assert region == (
        f"- [[doc:{sword.id}|Sword | Shield]]\n- [[doc:{ledger.id}|folder:Ledger]]"
    )
    titles = sorted(doc.title for doc in auto_vault.list_docs(CAMPAIGN))
    assert titles == ["Places Index", "Sword | Shield", "folder:Ledger"]
    assert len(auto_vault.indexer.list_backlinks(sword.id)) == 1
    assert len(auto_vault.indexer.list_backlinks(ledger.id)) == 1


def test_render_index_link_strips_closing_brackets_from_label() -> None:
    assert render_index_link(IndexEntry("Map [Old]", "doc_9")) == "[[doc:doc_9|Map [Old]]"
    assert render_index_link(IndexEntry("Harbor", "doc_1")) == "[[Harbor]]"


def test_rename_trashed_folder_retitles_index_on_restore(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")
    manual_vault.trash_folder(places.id)

    manual_vault.rename_folder(places.id, "Lands")
    manual_vault.restore_folder(places.id)

    assert [doc.title for doc in _index_docs(manual_vault, places.id)] == ["Lands Index"]
    assert manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN) == 0


def test_update_all_repairs_stale_index_title(manual_vault: VaultService) -> None:
    places = manual_vault.create_folder(CAMPAIGN, "Places")
    manual_vault.store.update_folder(places.id, name="Lands")

    writes = manual_vault.folder_index.update_all_folder_indexes(CAMPAIGN)

    assert writes == 1
    assert [doc.title for doc in _index_docs(manual_vault, places.id)] == ["Lands Index"]
