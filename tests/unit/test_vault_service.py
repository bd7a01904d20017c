from pathlib import Path

import pytest

from lorevault.models.vault import UNTITLED_DOC_TITLE
from lorevault.services.config import AppConfig
from lorevault.services.database import DatabaseService
from lorevault.services.errors import NotFoundError, VaultValidationError
from lorevault.services.sqlite_store import SQLiteVaultStore
from lorevault.services.vault import VaultService, build_vault_service

CAMPAIGN = "greenwood"


@pytest.fixture()
def vault_config(tmp_path: Path) -> AppConfig:
    return AppConfig(db_path=tmp_path / "vault.db")


@pytest.fixture()
def vault(vault_config: AppConfig) -> VaultService:
    db_service = DatabaseService(vault_config.db_path)
    db_service.initialize()
    return VaultService(SQLiteVaultStore(db_service), config=vault_config)


def _active_ids(vault: VaultService) -> set:
    return {doc.id for doc in vault.list_docs(CAMPAIGN)}


def test_create_doc_defaults_title_and_appends_sort_index(vault: VaultService) -> None:
    first = vault.create_doc(CAMPAIGN, "   ")
    second = vault.create_doc(CAMPAIGN, "Harbor")

    assert first.title == UNTITLED_DOC_TITLE
    assert second.sort_index == first.sort_index + 1
    assert vault.get_doc(second.id).title == "Harbor"


def test_create_doc_rejects_folder_from_other_campaign(vault: VaultService) -> None:
    foreign = vault.create_folder("elsewhere", "Places", create_index_doc=False)

    with pytest.raises(VaultValidationError):
        vault.create_doc(CAMPAIGN, "Harbor", foreign.id)


def test_create_folder_rejects_blank_name(vault: VaultService) -> None:
    with pytest.raises(VaultValidationError):
        vault.create_folder(CAMPAIGN, "  ")


def test_move_folder_rejects_cycles(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    regions = vault.create_folder(CAMPAIGN, "Regions", places.id)

    with pytest.raises(VaultValidationError):
        vault.move_folder(places.id, regions.id)
    with pytest.raises(VaultValidationError):
        vault.move_folder(places.id, places.id)

    moved = vault.move_folder(regions.id, None)
    assert moved.parent_folder_id is None


def test_rename_and_lookup_by_title(vault: VaultService) -> None:
    doc = vault.create_doc(CAMPAIGN, "Harbor")

    vault.rename_doc(doc.id, "Grey Harbor")

    assert vault.get_doc_by_title(CAMPAIGN, "Grey Harbor").id == doc.id
    assert vault.get_doc_by_title(CAMPAIGN, "Harbor") is None
    assert [d.id for d in vault.search_docs_by_title(CAMPAIGN, "grey")] == [doc.id]
    assert vault.search_docs_by_title(CAMPAIGN, "  ") == []


def test_rename_missing_doc_raises(vault: VaultService) -> None:
    with pytest.raises(NotFoundError):
        vault.rename_doc("doc_missing", "Anything")


def test_set_doc_sort_order(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places", create_index_doc=False)
    a = vault.create_doc(CAMPAIGN, "A", places.id)
    b = vault.create_doc(CAMPAIGN, "B", places.id)
    c = vault.create_doc(CAMPAIGN, "C", places.id)

    vault.set_doc_sort_order(CAMPAIGN, places.id, [c.id, a.id, b.id])

    ordered = sorted(
        (doc for doc in vault.list_docs(CAMPAIGN) if not doc.is_index),
        key=lambda doc: doc.sort_index,
    )
    assert [(doc.title, doc.sort_index) for doc in ordered] == [("C", 1), ("A", 2), ("B", 3)]


def test_trash_and_restore_folder_subtree(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    regions = vault.create_folder(CAMPAIGN, "Regions", places.id)
    harbor = vault.create_doc(CAMPAIGN, "Harbor", places.id)
    shore = vault.create_doc(CAMPAIGN, "Shore", regions.id)

    trashed = vault.trash_folder(places.id)

    assert trashed.folder_ids == [places.id, regions.id]
    assert {harbor.id, shore.id} <= set(trashed.doc_ids)
    assert vault.list_folders(CAMPAIGN) == []
    assert _active_ids(vault) == set()
    assert {f.id for f in vault.list_trashed_folders(CAMPAIGN)} == {places.id, regions.id}

    restored = vault.restore_folder(places.id)

    assert restored.reparented_folder_ids == []
    assert {harbor.id, shore.id} <= _active_ids(vault)
    assert vault.get_folder(regions.id).parent_folder_id == places.id
    assert vault.get_folder(places.id).deleted_at is None
    assert vault.list_trashed_docs(CAMPAIGN) == []


def test_restore_child_of_trashed_parent_moves_to_root(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    regions = vault.create_folder(CAMPAIGN, "Regions", places.id)
    shore = vault.create_doc(CAMPAIGN, "Shore", regions.id)
    vault.trash_folder(places.id)

    restored = vault.restore_folder(regions.id)

    assert restored.reparented_folder_ids == [regions.id]
    assert vault.get_folder(regions.id).parent_folder_id is None
    assert vault.get_folder(places.id).is_deleted
    assert shore.id in _active_ids(vault)


def test_restore_doc_demotes_to_root_when_folder_is_trashed(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    harbor = vault.create_doc(CAMPAIGN, "Harbor", places.id)
    loose = vault.create_doc(CAMPAIGN, "Loose Page")
    vault.trash_folder(places.id)

    restored = vault.restore_doc(harbor.id)

    assert restored.folder_id is None
    assert restored.deleted_at is None
    assert restored.sort_index == loose.sort_index + 1
    assert vault.get_doc(harbor.id).folder_id is None


def test_trash_and_restore_single_doc(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    harbor = vault.create_doc(CAMPAIGN, "Harbor", places.id)

    vault.trash_doc(harbor.id)
    assert harbor.id not in _active_ids(vault)

    restored = vault.restore_doc(harbor.id)
    assert restored.folder_id == places.id
    assert harbor.id in _active_ids(vault)


def test_purge_folder_removes_all_references(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    harbor = vault.create_doc(CAMPAIGN, "Harbor", places.id)
    outside = vault.create_doc(CAMPAIGN, "Fisher")
    vault.save_doc_content(harbor.id, "Home of [[Fisher]]. @type:location")
    vault.save_doc_content(outside.id, "Works at [[Harbor]]")
    vault.set_npc_profile(harbor.id, "creature-7")
    vault.add_map_pin("world", harbor.id, 10.5, 20.0)
    vault.trash_folder(places.id)

    result = vault.purge_folder(places.id)

    purged = set(result.doc_ids)
    assert harbor.id in purged
    store = vault.store
    assert all(
        edge.from_doc_id not in purged and edge.to_doc_id not in purged
        for edge in store.list_edges(CAMPAIGN)
    )
    assert store.list_tags(harbor.id) == []
    assert store.get_npc_profile(harbor.id) is None
    assert store.list_map_pins(doc_id=harbor.id) == []
    assert store.get_doc(harbor.id) is None
    assert store.get_folder(places.id) is None
    assert vault.get_doc(outside.id) is not None


def test_purge_is_idempotent(vault: VaultService) -> None:
    places = vault.create_folder(CAMPAIGN, "Places")
    doc = vault.create_doc(CAMPAIGN, "Harbor")

    vault.purge_folder(places.id)
    vault.purge_doc(doc.id)

    assert vault.purge_folder(places.id).folder_ids == []
    assert vault.purge_doc(doc.id).doc_ids == []


def test_npc_profile_keeps_creation_time(vault: VaultService) -> None:
    doc = vault.create_doc(CAMPAIGN, "Mira Thorne")

    first = vault.set_npc_profile(doc.id, "creature-1")
    second = vault.set_npc_profile(doc.id, "creature-2")

    stored = vault.get_npc_profile(doc.id)
    assert stored.creature_id == "creature-2"
    assert stored.created_at == first.created_at
    assert second.updated_at >= first.updated_at


def test_map_pins_are_listed_per_map(vault: VaultService) -> None:
    doc = vault.create_doc(CAMPAIGN, "Harbor")

    pin = vault.add_map_pin("world", doc.id, 1.0, 2.0)
    vault.add_map_pin("city", doc.id, 3.0, 4.0)

    assert pin.id is not None
    assert [(p.x, p.y) for p in vault.list_map_pins("world")] == [(1.0, 2.0)]


def test_build_vault_service_initializes_schema(vault_config: AppConfig) -> None:
    service = build_vault_service(vault_config)

    doc = service.create_doc(CAMPAIGN, "Harbor")

    assert service.get_doc(doc.id) is not None
    assert vault_config.db_path.exists()
