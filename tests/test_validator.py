from webflow_payload.mappings import PAYLOAD_COLLECTIONS
from webflow_payload.models.record import TransformedRecord
from webflow_payload.services.richtext import text_to_lexical
from webflow_payload.services.validator import RecordValidator


def record(entity, **data):
    return TransformedRecord(id="x", entity=entity, target_collection=entity, data=data)


def errors_by_field(errors):
    return {e.field: e.error_type for e in errors}


def test_valid_project_passes():
    errors = RecordValidator().validate_record(
        record(
            "projects",
            name="P",
            slug="p",
            summary="S",
            status="active",
            content=text_to_lexical("x"),
            bitcoinContributors=[1, 2],
            hidden=False,
            totalPaid=0,
            hashtags=[{"tag": "a"}],
        ),
        PAYLOAD_COLLECTIONS["projects"],
    )
    assert errors == []


def test_required_fields_and_blank_strings():
    errors = RecordValidator().validate_record(
        record("projects", name="  ", slug="p", status="active"),
        PAYLOAD_COLLECTIONS["projects"],
    )
    assert errors_by_field(errors) == {"name": "required", "summary": "required"}


def test_select_options_are_enforced():
    errors = RecordValidator().validate_record(
        record("projects", name="P", slug="p", summary="S", status="someday", projectType="art"),
        PAYLOAD_COLLECTIONS["projects"],
    )
    assert errors_by_field(errors) == {"status": "enum", "projectType": "enum"}


def test_relationship_shapes():
    validator = RecordValidator()
    faq = PAYLOAD_COLLECTIONS["faqs"]
    answer = text_to_lexical("a")

    assert validator.validate_record(record("faqs", question="q", answer=answer, project=3), faq) == []
    assert errors_by_field(
        validator.validate_record(record("faqs", question="q", answer=answer, project=[3, 4]), faq)
    ) == {"project": "type"}
    assert errors_by_field(
        validator.validate_record(record("faqs", question="q", answer=answer, project={"id": 3}), faq)
    ) == {"project": "type"}


def test_empty_relationship_list_counts_as_missing():
    errors = RecordValidator().validate_record(record("posts", projects=[]), PAYLOAD_COLLECTIONS["posts"])
    assert errors_by_field(errors) == {"projects": "required"}


def test_type_checks():
    errors = RecordValidator().validate_record(
        record(
            "matching-donors",
            name="D",
            matchingType="all-projects",
            totalMatchingAmount="100",
            startDate="01/02/2024",
            endDate="2025-01-01",
            status="active",
            multiplier=True,
        ),
        PAYLOAD_COLLECTIONS["matching-donors"],
    )
    assert errors_by_field(errors) == {
        "totalMatchingAmount": "type",
        "startDate": "format",
        "multiplier": "type",
    }


def test_rich_text_must_have_root():
    errors = RecordValidator().validate_record(
        record("faqs", question="q", answer="plain text", project=1),
        PAYLOAD_COLLECTIONS["faqs"],
    )
    assert errors_by_field(errors) == {"answer": "format"}
