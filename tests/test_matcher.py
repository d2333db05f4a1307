from conftest import source_record
from webflow_payload.models.record import TargetRecord
from webflow_payload.models.schema import MatchStrategy
from webflow_payload.services.matcher import ReconciliationMatcher, TargetIndex, reference_id


def target(target_id, collection="contributors", **fields):
    return TargetRecord.from_payload_doc({"id": target_id, **fields}, collection)


def test_slug_match_wins_over_name():
    index = TargetIndex("contributors", [
        target(1, slug="jane-doe", name="Someone Else"),
        target(2, slug="other", name="Jane Doe"),
    ])
    outcome = ReconciliationMatcher(index).match(source_record("c1", "contributors", {"name": "Jane Doe"}))
    assert outcome.record.id == 1
    assert outcome.strategy == "slug"


def test_name_match_is_case_insensitive():
    index = TargetIndex("contributors", [target(5, slug="jdoe", name="JANE DOE")])
    outcome = ReconciliationMatcher(index).match(
        source_record("c1", "contributors", {"name": "jane doe", "slug": "jane-d"})
    )
    assert outcome.record.id == 5
    assert outcome.strategy == "name"


def test_placeholder_names_never_match():
    index = TargetIndex("contributors", [target(5, slug="x", name="Unknown Contributor")])
    outcome = ReconciliationMatcher(index).match(
        source_record("c1", "contributors", {"name": "Unknown Contributor", "slug": "y"})
    )
    assert not outcome.matched


def test_legacy_raw_slug_and_id_matching():
    index = TargetIndex("projects", [
        target(8, "projects", slug="my_project"),
        target(9, "projects", slug="65f0abc"),
    ])
    matcher = ReconciliationMatcher(index)

    outcome = matcher.match(source_record("p1", "projects", {"slug": "My_Project"}))
    assert outcome.record.id == 8
    assert outcome.strategy == "legacy_slug"

    outcome = matcher.match(source_record("65F0ABC", "projects", {"slug": "brand-new"}))
    assert outcome.record.id == 9


def test_legacy_matching_can_be_disabled():
    index = TargetIndex("projects", [target(8, "projects", slug="my_project")])
    matcher = ReconciliationMatcher(index, legacy_slugs=False)
    assert not matcher.match(source_record("p1", "projects", {"slug": "My_Project"})).matched


def test_no_match_means_create():
    index = TargetIndex("contributors", [target(1, slug="someone")])
    assert ReconciliationMatcher(index).match(source_record("c1", "contributors", {"name": "Nobody"})).record is None


def test_index_add_replaces_previous_keys():
    index = TargetIndex("contributors", [target(1, slug="old-slug", name="Old")])
    index.add(target(1, slug="new-slug", name="New"))
    assert index.by_slug("old-slug") is None
    assert index.by_slug("new-slug").id == 1
    assert index.by_name("old") is None
    assert len(index) == 1


def test_index_sees_records_created_during_run():
    index = TargetIndex("contributors")
    matcher = ReconciliationMatcher(index)
    first = source_record("c1", "contributors", {"name": "Dup", "slug": "Dup!"})
    second = source_record("c2", "contributors", {"name": "Dup", "slug": "dup"})

    assert not matcher.match(first).matched
    index.add(target(-1, slug="dup", name="Dup"))
    assert matcher.match(second).record.id == -1


def test_fields_strategy_matches_populated_relationships():
    index = TargetIndex("faqs", [
        target(3, "faqs", question="How?", project={"id": 7, "name": "P"}),
        target(4, "faqs", question="How?", project=8),
    ], key_fields=["question", "project"])
    matcher = ReconciliationMatcher(index, MatchStrategy.FIELDS, ["question", "project"])
    source = source_record("f1", "faqs")

    assert matcher.match(source, {"question": "how?", "project": 7}).record.id == 3
    assert matcher.match(source, {"question": "How?", "project": 8}).strategy == "fields"
    assert not matcher.match(source, {"question": "How?", "project": 9}).matched
    assert not matcher.match(source, {"question": "How?"}).matched


def test_any_field_strategy_reports_matching_field():
    index = TargetIndex("posts", [
        target(1, "posts", xPostLink="https://x.com/a/1"),
        target(2, "posts", youtubeLink="https://youtu.be/v"),
    ], key_fields=["xPostLink", "youtubeLink", "redditLink"])
    matcher = ReconciliationMatcher(index, MatchStrategy.ANY_FIELD, ["xPostLink", "youtubeLink", "redditLink"])
    source = source_record("s1", "posts")

    outcome = matcher.match(source, {"youtubeLink": "https://youtu.be/v"})
    assert outcome.record.id == 2
    assert outcome.strategy == "youtubeLink"
    assert not matcher.match(source, {"redditLink": "https://reddit.com/r/1"}).matched


def test_reference_id():
    assert reference_id({"id": 4, "name": "x"}) == 4
    assert reference_id(4) == 4
    assert reference_id(None) is None
