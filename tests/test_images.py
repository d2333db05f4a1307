from conftest import InMemoryLoader, source_record
from webflow_payload.exceptions import TargetWriteError
from webflow_payload.models.migration import MigrationContext, MigrationStep
from webflow_payload.models.record import TargetRecord
from webflow_payload.services.images import (
    IMAGE_FIELDS,
    ImageMigrator,
    content_type_for,
    filename_from_url,
    image_url,
)

PROFILE_PICTURE = IMAGE_FIELDS[0]


def contributor(item_id, url, **fields):
    return source_record(item_id, "contributors", {"name": "Alice", "profile-picture": {"url": url, **fields}})


def setup(loader, *pairs):
    context = MigrationContext()
    targets = {}
    for source_id, doc in pairs:
        context.record_mapping("contributors", source_id, doc["id"])
        targets[doc["id"]] = TargetRecord.from_payload_doc(dict(doc), "contributors")
    return context, targets


def test_image_helpers():
    assert image_url({"url": " https://cdn.test/a.png "}) == "https://cdn.test/a.png"
    assert image_url("https://cdn.test/b.png") == "https://cdn.test/b.png"
    assert image_url({"url": ""}) is None
    assert filename_from_url("https://cdn.test/x/My%2520Photo.PNG?v=2") == "My Photo.PNG"
    assert filename_from_url("https://cdn.test/") == "image"
    assert content_type_for("My Photo.PNG") == "image/png"
    assert content_type_for("photo") == "image/jpeg"


def test_uploads_and_links_image(loader):
    doc = loader.seed("contributors", name="Alice", slug="alice")
    context, targets = setup(loader, ("c1", doc))
    step = MigrationStep(entity="images")

    ImageMigrator(loader).migrate(
        PROFILE_PICTURE,
        [contributor("c1", "https://cdn.test/alice%20pic.png", alt="Alice smiling")],
        targets,
        context,
        step,
    )

    media = next(iter(loader.docs["media"].values()))
    assert media["filename"] == "alice pic.png"
    assert media["alt"] == "Alice smiling"
    assert media["mimeType"] == "image/png"
    assert loader.docs["contributors"][doc["id"]]["profilePicture"] == media["id"]
    assert loader.downloads == ["https://cdn.test/alice%20pic.png"]
    assert (step.records_fetched, step.records_updated) == (1, 1)


def test_reuses_existing_media_and_uploads_once(loader):
    existing = loader.seed("media", filename="shared.png", alt="x")
    first = loader.seed("contributors", name="A", slug="a")
    second = loader.seed("contributors", name="B", slug="b")
    third = loader.seed("contributors", name="C", slug="c")
    context, targets = setup(loader, ("c1", first), ("c2", second), ("c3", third))
    step = MigrationStep(entity="images")

    ImageMigrator(loader).migrate(
        PROFILE_PICTURE,
        [
            contributor("c1", "https://cdn.test/shared.png"),
            contributor("c2", "https://cdn.test/new.png"),
            contributor("c3", "https://cdn.test/other/new.png"),
        ],
        targets,
        context,
        step,
    )

    assert loader.docs["contributors"][first["id"]]["profilePicture"] == existing["id"]
    assert loader.downloads == ["https://cdn.test/new.png"]
    assert len(loader.docs["media"]) == 2
    assert (
        loader.docs["contributors"][second["id"]]["profilePicture"]
        == loader.docs["contributors"][third["id"]]["profilePicture"]
    )


def test_skips_targets_that_already_have_an_image(loader):
    doc = loader.seed("contributors", name="A", slug="a", profilePicture=9)
    context, targets = setup(loader, ("c1", doc))
    step = MigrationStep(entity="images")

    ImageMigrator(loader).migrate(PROFILE_PICTURE, [contributor("c1", "https://cdn.test/a.png")], targets, context, step)

    assert step.records_skipped == 1
    assert loader.downloads == []


def test_unmapped_and_imageless_records_are_ignored(loader):
    context = MigrationContext()
    step = MigrationStep(entity="images")
    sources = [
        contributor("c1", "https://cdn.test/a.png"),
        source_record("c2", "contributors", {"name": "No picture"}),
    ]

    ImageMigrator(loader).migrate(PROFILE_PICTURE, sources, {}, context, step)

    assert step.records_fetched == 0
    assert step.records_processed == 0


def test_forbidden_update_is_skipped_not_failed(loader):
    doc = loader.seed("contributors", name="A", slug="a")
    context, targets = setup(loader, ("c1", doc))
    loader.failures[("contributors", "update")] = TargetWriteError("Payload PATCH returned 403", status_code=403)
    step = MigrationStep(entity="images")

    ImageMigrator(loader).migrate(PROFILE_PICTURE, [contributor("c1", "https://cdn.test/a.png")], targets, context, step)

    assert step.records_skipped == 1
    assert step.records_failed == 0
    assert step.warnings[0].startswith("c1: forbidden")


def test_other_write_errors_fail_the_record(loader):
    doc = loader.seed("contributors", name="A", slug="a")
    context, targets = setup(loader, ("c1", doc))
    loader.failures[("contributors", "update")] = TargetWriteError("Payload PATCH returned 500", status_code=500)
    step = MigrationStep(entity="images")

    ImageMigrator(loader).migrate(PROFILE_PICTURE, [contributor("c1", "https://cdn.test/a.png")], targets, context, step)

    assert step.records_failed == 1
    assert step.errors[0]["record_id"] == "c1"


def test_dry_run_downloads_nothing():
    loader = InMemoryLoader(dry_run=True)
    context = MigrationContext(dry_run=True)
    context.record_mapping("contributors", "c1", -1)
    step = MigrationStep(entity="images")

    ImageMigrator(loader, dry_run=True).migrate(
        PROFILE_PICTURE, [contributor("c1", "https://cdn.test/a.png")], {}, context, step,
    )

    assert loader.downloads == []
    assert loader.writes == []
    assert step.records_updated == 1
