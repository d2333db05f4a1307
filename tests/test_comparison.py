from conftest import source_record
from webflow_payload.models.record import TargetRecord
from webflow_payload.services.comparison import ComparisonResult, compare_collection, format_comparison


def target(target_id, collection, **fields):
    return TargetRecord.from_payload_doc({"id": target_id, **fields}, collection)


def test_projects_compare_by_sanitized_slug():
    sources = [
        source_record("p1", "projects", {"name": "Alpha", "slug": "Alpha_Project"}),
        source_record("p2", "projects", {"name": "Beta", "slug": "beta"}),
        source_record("p3", "projects", {"name": "Draft", "slug": "draft"}, is_draft=True),
    ]
    targets = [target(1, "projects", slug="alpha-project"), target(2, "projects", slug="gamma")]

    result = compare_collection("projects", sources, targets)

    assert result.webflow_active == 2
    assert result.payload_total == 2
    assert result.missing_in_payload == ["Beta"]
    assert result.extra_in_payload == ["gamma"]
    assert not result.in_sync


def test_posts_compare_by_any_link():
    sources = [
        source_record("s1", "posts", {"link": "https://youtu.be/abc"}),
        source_record("s2", "posts", {"link": "https://x.com/a/status/2"}),
    ]
    targets = [target(1, "posts", youtubeLink="https://youtu.be/abc")]

    result = compare_collection("posts", sources, targets)

    assert result.missing_in_payload == ["https://x.com/a/status/2"]
    assert result.extra_in_payload == []


def test_donors_compare_by_webflow_id():
    sources = [source_record("d1", "matching-donors", {"name": "Donor"})]
    targets = [target(4, "matching-donors", webflowId="d1", name="Renamed")]

    result = compare_collection("matching-donors", sources, targets)

    assert result.in_sync
    assert result.to_dict()["in_sync"] is True


def test_faq_questions_compare_case_insensitively():
    sources = [source_record("f1", "faqs", {"question": "How Do I Donate?"})]
    targets = [target(1, "faqs", question="how do i donate?")]
    assert compare_collection("faqs", sources, targets).in_sync


def test_format_comparison_truncates_long_lists():
    result = ComparisonResult(
        entity="contributors",
        webflow_active=3,
        payload_total=0,
        missing_in_payload=["a", "b", "c"],
    )
    output = format_comparison([result, ComparisonResult(entity="faqs")], limit=2)

    assert "contributors" in output
    assert "a" in output and "b" in output
    assert "and 1 more" in output
    assert "faqs" in output
