from pathlib import Path

import pytest

from lorevault.models.tags import IssueCode
from lorevault.models.vault import DocKind, EdgeType
from lorevault.services.config import AppConfig
from lorevault.services.database import DatabaseService
from lorevault.services.errors import NotFoundError
from lorevault.services.sqlite_store import SQLiteVaultStore
from lorevault.services.vault import VaultService

CAMPAIGN = "greenwood"


@pytest.fixture()
def vault(tmp_path: Path) -> VaultService:
    config = AppConfig(db_path=tmp_path / "vault.db")
    db_service = DatabaseService(config.db_path)
    db_service.initialize()
    return VaultService(SQLiteVaultStore(db_service), config=config)


def test_save_creates_stub_for_unknown_title_once(vault: VaultService) -> None:
    source = vault.create_doc(CAMPAIGN, "Source")

    first = vault.save_doc_content(source.id, "Rumors point to [[Unknown Page]].")
    second = vault.save_doc_content(source.id, "Rumors point to [[Unknown Page]].")

    stubs = vault.store.find_docs_by_title(CAMPAIGN, "Unknown Page")
    assert len(stubs) == 1
    assert [doc.id for doc in first.created] == [stubs[0].id]
    assert stubs[0].folder_id is None
    assert second.created == []
    assert second.edges_added == 0 and second.edges_removed == 0

    edges = vault.indexer.list_outgoing(source.id)
    assert len(edges) == 1
    assert edges[0].to_doc_id == stubs[0].id


def test_saving_same_body_twice_keeps_derived_rows(vault: VaultService) -> None:
    target = vault.create_doc(CAMPAIGN, "Mira Thorne")
    source = vault.create_doc(CAMPAIGN, "The Emerald Circle")
    body = "@type:faction led by [[Mira Thorne]] near #location:Old Mill"

    vault.save_doc_content(source.id, body)
    edges_before = vault.indexer.list_outgoing(source.id)
    tags_before = vault.indexer.list_tags_for_doc(source.id)

    result = vault.save_doc_content(source.id, body)

    assert vault.indexer.list_outgoing(source.id) == edges_before
    assert vault.indexer.list_tags_for_doc(source.id) == tags_before
    assert (result.tags_added, result.tags_removed) == (0, 0)
    assert [edge.to_doc_id for edge in edges_before] == [target.id]
    assert [(tag.namespace, tag.value) for tag in tags_before] == [
        ("location", "old-mill"),
        ("type", "faction"),
    ]


def test_save_replaces_removed_links_and_tags(vault: VaultService) -> None:
    vault.create_doc(CAMPAIGN, "Harbor")
    vault.create_doc(CAMPAIGN, "Lighthouse")
    source = vault.create_doc(CAMPAIGN, "Coast")

    vault.save_doc_content(source.id, "[[Harbor]] [[Lighthouse]] @status:active")
    result = vault.save_doc_content(source.id, "[[Harbor]] @status:archived")

    assert result.edges_removed == 1
    assert (result.tags_added, result.tags_removed) == (1, 1)
    assert len(vault.indexer.list_outgoing(source.id)) == 1
    assert [tag.value for tag in vault.indexer.list_tags_for_doc(source.id)] == ["archived"]


def test_create_missing_false_reports_dangling(vault: VaultService) -> None:
    source = vault.create_doc(CAMPAIGN, "Source")

    preview = vault.indexer.preview_missing_targets(source.id, "[[Nowhere]] and [[Source]]")
    result = vault.save_doc_content(source.id, "[[Nowhere]]", create_missing=False)

    assert preview == ["Nowhere"]
    assert result.dangling == ["Nowhere"]
    assert result.created == []
    assert vault.store.find_docs_by_title(CAMPAIGN, "Nowhere") == []
    assert vault.indexer.list_outgoing(source.id) == []


def test_repeated_links_merge_into_weighted_edge(vault: VaultService) -> None:
    target = vault.create_doc(CAMPAIGN, "Mira Thorne")
    source = vault.create_doc(CAMPAIGN, "Journal")

    result = vault.save_doc_content(
        source.id, f"[[Mira Thorne]] then [[doc:{target.id}|Mira]] and [[Mira Thorne]]"
    )

    assert len(result.edges) == 1
    assert result.edges[0].to_doc_id == target.id
    assert result.edges[0].weight == 3


def test_doc_link_to_other_campaign_is_dangling(vault: VaultService) -> None:
    foreign = vault.create_doc("elsewhere", "Foreign")
    source = vault.create_doc(CAMPAIGN, "Source")

    result = vault.save_doc_content(source.id, f"[[doc:{foreign.id}]]")

    assert result.edges == []
    assert result.dangling == [f"doc:{foreign.id}"]


def test_folder_link_points_at_index_document(vault: VaultService) -> None:
    folder = vault.create_folder(CAMPAIGN, "Factions")
    source = vault.create_doc(CAMPAIGN, "Overview")

    result = vault.save_doc_content(source.id, "See [[folder:factions]].")

    index_docs = [doc for doc in vault.store.list_docs_in_folders([folder.id]) if doc.is_index]
    assert len(result.edges) == 1
    assert result.edges[0].to_doc_id == index_docs[0].id
    assert result.edges[0].edge_type is EdgeType.FOLDER


def test_ref_links_do_not_create_edges(vault: VaultService) -> None:
    source = vault.create_doc(CAMPAIGN, "Encounter")

    result = vault.save_doc_content(source.id, "[[ref:bestiary:owlbear]]")

    assert result.edges == []
    assert result.created == []
    assert result.dangling == []


def test_save_reports_tag_issues(vault: VaultService) -> None:
    source = vault.create_doc(CAMPAIGN, "Peak")

    result = vault.save_doc_content(source.id, "@type:mountain")

    assert [issue.code for issue in result.issues] == [IssueCode.INVALID_VALUE]
    assert [(tag.namespace, tag.value) for tag in result.tags] == [("type", "mountain")]


def test_save_unknown_document_raises(vault: VaultService) -> None:
    with pytest.raises(NotFoundError):
        vault.save_doc_content("doc_missing", "body")


def test_backlinks_skip_trashed_sources(vault: VaultService) -> None:
    target = vault.create_doc(CAMPAIGN, "Harbor")
    alive = vault.create_doc(CAMPAIGN, "Fisher")
    gone = vault.create_doc(CAMPAIGN, "Smuggler")
    vault.save_doc_content(alive.id, "Works at [[Harbor]]")
    vault.save_doc_content(gone.id, "Hides at [[Harbor]]")

    vault.trash_doc(gone.id)

    backlinks = vault.indexer.list_backlinks(target.id)
    assert [backlink.source.id for backlink in backlinks] == [alive.id]


def test_list_docs_with_tag_normalizes_input(vault: VaultService) -> None:
    npc = vault.create_doc(CAMPAIGN, "Mira Thorne")
    other = vault.create_doc("elsewhere", "Mira's Twin")
    vault.save_doc_content(npc.id, "@type:npc")
    vault.save_doc_content(other.id, "@type:npc")

    docs = vault.indexer.list_docs_with_tag("Type", "NPC", CAMPAIGN)

    assert [doc.id for doc in docs] == [npc.id]


def test_graph_data_counts_inbound_links(vault: VaultService) -> None:
    hub = vault.create_doc(CAMPAIGN, "Hub")
    first = vault.create_doc(CAMPAIGN, "First")
    second = vault.create_doc(CAMPAIGN, "Second")
    vault.save_doc_content(first.id, "[[Hub]]")
    vault.save_doc_content(second.id, "[[Hub]] [[First]]")

    graph = vault.indexer.get_graph_data(CAMPAIGN)

    vals = {node.id: node.val for node in graph.nodes}
    assert vals == {hub.id: 3, first.id: 2, second.id: 1}
    assert len(graph.links) == 3
    assert {node.group for node in graph.nodes} == {"root"}
    assert {node.kind for node in graph.nodes} == {DocKind.NORMAL}
    assert {node.folder_id for node in graph.nodes} == {None}
    assert {link.edge_type for link in graph.links} == {EdgeType.WIKILINK}
    assert sorted(graph.neighbors(hub.id)) == sorted([first.id, second.id])
    assert sorted(graph.neighbors(first.id)) == sorted([hub.id, second.id])
