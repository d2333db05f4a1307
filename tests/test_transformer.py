from datetime import date

import pytest

from conftest import source_record
from webflow_payload.exceptions import RecordSkipped
from webflow_payload.mappings import default_mapping
from webflow_payload.models.migration import MigrationContext
from webflow_payload.models.schema import EntityMapping, FieldMapping, ProjectStatus, TransformType
from webflow_payload.services.transformer import (
    TransformEngine,
    classify_post_links,
    classify_status,
    normalize_status,
)


@pytest.fixture
def engine():
    return TransformEngine(today=lambda: date(2024, 6, 1))


@pytest.fixture
def mapping():
    return default_mapping()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Active", ProjectStatus.ACTIVE),
        ("live now", ProjectStatus.ACTIVE),
        ("completed", ProjectStatus.COMPLETED),
        ("Done!", ProjectStatus.COMPLETED),
        ("On hold", ProjectStatus.PAUSED),
        ("paused", ProjectStatus.PAUSED),
        ("ARCHIVED", ProjectStatus.ARCHIVED),
        ("Funding round", ProjectStatus.UNKNOWN),
        ("", ProjectStatus.UNKNOWN),
        (None, ProjectStatus.UNKNOWN),
    ],
)
def test_classify_status(raw, expected):
    assert classify_status(raw) == expected


def test_normalize_status_replaces_unknown_with_default():
    assert normalize_status("weird") == ProjectStatus.ACTIVE
    assert normalize_status("weird", default=None) is None
    assert normalize_status("archived", default=None) == ProjectStatus.ARCHIVED


@pytest.mark.parametrize(
    ("fields", "expected"),
    [
        ({"link": "https://x.com/a/status/1"}, {"x": "https://x.com/a/status/1", "youtube": None, "reddit": None}),
        ({"link": "https://twitter.com/a/status/1"}, {"x": "https://twitter.com/a/status/1", "youtube": None, "reddit": None}),
        ({"link": "https://youtu.be/abc"}, {"x": None, "youtube": "https://youtu.be/abc", "reddit": None}),
        ({"link": "https://www.reddit.com/r/x"}, {"x": None, "youtube": None, "reddit": "https://www.reddit.com/r/x"}),
        ({"link": "https://example.com/post"}, {"x": "https://example.com/post", "youtube": None, "reddit": None}),
        ({"youtube-link": "https://youtube.com/watch?v=1"}, {"x": None, "youtube": "https://youtube.com/watch?v=1", "reddit": None}),
        ({}, {"x": None, "youtube": None, "reddit": None}),
    ],
)
def test_classify_post_links(fields, expected):
    assert classify_post_links(fields) == expected


def test_unknown_domain_prefers_legacy_fields():
    fields = {"link": "https://example.com/p", "reddit-link": "https://old.example/r"}
    assert classify_post_links(fields) == {"x": None, "youtube": None, "reddit": "https://old.example/r"}


def test_project_transform(engine, mapping):
    context = MigrationContext()
    context.record_mapping("contributors", "c1", 11)
    context.record_mapping("contributors", "c2", 12)
    source = source_record("p1", "projects", {
        "name": "  Bitcoin Core  ",
        "slug": "Bitcoin Core!",
        "summary": "",
        "content": "Line one\nLine two",
        "status": "Active",
        "project-type": "Open Source",
        "total-paid": "1,250.50",
        "hidden": False,
        "bitcoin-contributors-2": ["c1", "missing"],
        "bitcoin-contributors": ["c1", "c2"],
        "hashtags": "btc, core",
    })

    record = engine.transform_record(source, mapping.get("projects"), context)

    assert record.is_valid
    assert record.data["name"] == "Bitcoin Core"
    assert record.data["slug"] == "bitcoin-core"
    assert record.data["summary"] == "Bitcoin Core"
    assert record.data["status"] == "active"
    assert record.data["projectType"] == "open-source"
    assert record.data["totalPaid"] == 1250.5
    assert record.data["serviceFeesCollected"] == 0
    assert record.data["recurring"] is False
    assert record.data["bitcoinContributors"] == [11, 12]
    assert "litecoinContributors" not in record.data
    assert record.data["hashtags"] == [{"tag": "btc"}, {"tag": "core"}]
    assert len(record.data["content"]["root"]["children"]) == 2
    assert any("missing" in w for w in record.warnings)


def test_unrecognized_status_defaults_to_active_with_warning(engine, mapping):
    source = source_record("p1", "projects", {"name": "P", "status": "Funding round"})
    record = engine.transform_record(source, mapping.get("projects"), MigrationContext())
    assert record.data["status"] == "active"
    assert any("unrecognized status" in w for w in record.warnings)


def test_blank_status_defaults_silently(engine, mapping):
    source = source_record("p1", "projects", {"name": "P"})
    record = engine.transform_record(source, mapping.get("projects"), MigrationContext())
    assert record.data["status"] == "active"
    assert not any("status" in w for w in record.warnings)


def test_unrecognized_status_skips_when_fail_closed(engine, mapping):
    source = source_record("p1", "projects", {"name": "P", "status": "Funding round"})
    context = MigrationContext(default_unknown_status_to_active=False)
    with pytest.raises(RecordSkipped):
        engine.transform_record(source, mapping.get("projects"), context)


def test_slug_falls_back_to_name_then_id(engine, mapping):
    by_name = source_record("c1", "contributors", {"name": "Jane Doe"})
    assert engine.transform_record(by_name, mapping.get("contributors")).data["slug"] == "jane-doe"

    by_id = source_record("65ABC", "contributors", {})
    record = engine.transform_record(by_id, mapping.get("contributors"))
    assert record.data["slug"] == "65abc"
    assert record.data["name"] == "Unknown Contributor"


def test_empty_slug_skips_record(engine, mapping):
    source = source_record("!!!", "contributors", {"slug": "***"})
    with pytest.raises(RecordSkipped):
        engine.transform_record(source, mapping.get("contributors"))


def test_faq_without_resolvable_project_is_skipped(engine, mapping):
    source = source_record("f1", "faqs", {"question": "Why?", "project": "unknown-project"})
    with pytest.raises(RecordSkipped):
        engine.transform_record(source, mapping.get("faqs"), MigrationContext())


def test_faq_transform(engine, mapping):
    context = MigrationContext()
    context.record_mapping("projects", "p1", 7)
    source = source_record("f1", "faqs", {"name": "How do I donate?", "answer": "Click donate.", "project": "p1"})
    record = engine.transform_record(source, mapping.get("faqs"), context)
    assert record.data["question"] == "How do I donate?"
    assert record.data["project"] == 7
    assert record.data["order"] == 0
    assert record.data["answer"]["root"]["children"][0]["children"][0]["text"] == "Click donate."


def test_post_transform(engine, mapping):
    context = MigrationContext()
    context.record_mapping("projects", "p1", 7)
    source = source_record("s1", "posts", {"link": "https://youtu.be/xyz", "projects": ["p1", "p2"]})
    record = engine.transform_record(source, mapping.get("posts"), context)
    assert record.data == {"youtubeLink": "https://youtu.be/xyz", "projects": [7]}


def test_update_date_falls_back_to_created_on(engine, mapping):
    context = MigrationContext()
    context.record_mapping("projects", "p1", 7)
    source = source_record("u1", "updates", {"name": "Release", "project": "p1", "tags": ["a", " b "]})
    record = engine.transform_record(source, mapping.get("updates"), context)
    assert record.data["title"] == "Release"
    assert record.data["date"] == "2024-03-01"
    assert record.data["tags"] == [{"tag": "a"}, {"tag": "b"}]


def test_matching_donor_transform(engine, mapping):
    context = MigrationContext()
    context.record_mapping("projects", "p1", 7)
    context.record_mapping("contributors", "c1", 3)
    context.option_labels["matching-donors"] = {
        "matching-type": {"opt-1": "Per Project", "opt-2": "All Projects"},
        "status": {"st-1": "Active", "st-2": "Paused"},
    }
    source = source_record("d1", "matching-donors", {
        "name": "Generous Donor",
        "matching-type": "opt-1",
        "total-matching-amount": 5000,
        "supported-projects": ["p1"],
        "start-date": "2024-01-15T00:00:00.000Z",
        "status": "st-2",
        "contributor": "c1",
    })

    record = engine.transform_record(source, mapping.get("matching-donors"), context)

    assert record.data["webflowId"] == "d1"
    assert record.data["matchingType"] == "per-project"
    assert record.data["totalMatchingAmount"] == 5000
    assert record.data["supportedProjects"] == [7]
    assert record.data["startDate"] == "2024-01-15"
    assert record.data["endDate"] == "2025-06-01"
    assert record.data["multiplier"] == 1
    assert record.data["status"] == "inactive"
    assert record.data["contributor"] == 3


def test_invalid_date_warns_and_uses_fallback(engine, mapping):
    source = source_record("d1", "matching-donors", {"start-date": "not a date"})
    record = engine.transform_record(source, mapping.get("matching-donors"), MigrationContext())
    assert record.data["startDate"] == "2024-06-01"
    assert any("invalid date" in w for w in record.warnings)


def test_custom_transform(engine):
    engine.register_transform("shout", lambda value, config, record, ctx: str(value).upper())
    entity = EntityMapping(
        name="contributors",
        target_collection="contributors",
        field_mappings=[FieldMapping("name", "name", TransformType.CUSTOM, {"function": "shout"})],
    )
    record = engine.transform_record(source_record("c1", "contributors", {"name": "ada"}), entity)
    assert record.data == {"name": "ADA"}


def test_transform_errors_become_validation_errors(engine):
    def explode(value, config, record, ctx):
        raise KeyError("boom")

    engine.register_transform("explode", explode)
    entity = EntityMapping(
        name="contributors",
        target_collection="contributors",
        field_mappings=[
            FieldMapping("name", "name", TransformType.CUSTOM, {"function": "explode"}),
            FieldMapping("email", "email", TransformType.STRING),
        ],
    )
    record = engine.transform_record(source_record("c1", "contributors", {"name": "a", "email": " a@b.c "}), entity)
    assert not record.is_valid
    assert record.validation_errors[0].field == "name"
    assert record.data == {"email": "a@b.c"}
