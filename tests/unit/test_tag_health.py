from datetime import datetime, timezone

from lorevault.models.tags import IssueCode
from lorevault.models.vault import Document
from lorevault.services.tag_health import build_tag_health_report


def _doc(doc_id: str, title: str, body: str) -> Document:
    return Document(
        id=doc_id,
        title=title,
        body=body,
        campaign_id="c1",
        updated_at=datetime.now(timezone.utc),
    )


def test_health_report_counts_issues_and_migrations() -> None:
    docs = [
        _doc(
            "doc_1",
            "Mira Thorne",
            "---\ntags:\n  - Type:NPC\n---\n@Status:Alive #terrain:Forest @bogus:x",
        ),
        _doc("doc_2", "Harbor", "@type:location"),
    ]

    report = build_tag_health_report(docs)

    assert report.total_tags == 5
    assert report.namespaces == {"bogus": 1, "status": 1, "terrain": 1, "type": 2}
    assert [(issue.doc_id, issue.code) for issue in report.invalid_tags] == [
        ("doc_1", IssueCode.UNKNOWN_NAMESPACE)
    ]
    assert [(m.raw, m.normalized) for m in report.migrations] == [
        ("@Status:Alive", "@status:alive"),
        ("#terrain:Forest", "#terrain:forest"),
        ("Type:NPC", "type:npc"),
    ]


def test_health_report_for_clean_vault() -> None:
    report = build_tag_health_report([_doc("doc_1", "Harbor", "@type:location")])

    assert report.total_tags == 1
    assert report.invalid_tags == []
    assert report.migrations == []
