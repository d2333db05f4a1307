"""
Image migration.

Copies Webflow-hosted images into the Payload media collection and links
them to the contributor and project documents created earlier in the run.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import unquote, urlsplit

from ..exceptions import MigrationError, TargetWriteError
from ..loaders.base import BaseLoader
from ..models.migration import EntityType, MigrationContext, MigrationStep
from ..models.record import MigrationResult, RecordAction, SourceRecord, TargetRecord

logger = logging.getLogger(__name__)


@dataclass
class ImageField:
    """Where an image lives on the source item and on the target document."""
    entity: EntityType
    source_field: str
    target_field: str


IMAGE_FIELDS: List[ImageField] = [
    ImageField(EntityType.CONTRIBUTORS, "profile-picture", "profilePicture"),
    ImageField(EntityType.PROJECTS, "cover-image", "coverImage"),
]

CONTENT_TYPES = {
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}


def image_url(value: Any) -> Optional[str]:
    """URL of a Webflow image field, which may be a dict or a bare string."""
    if isinstance(value, dict):
        url = value.get("url")
    else:
        url = value
    if isinstance(url, str) and url.strip():
        return url.strip()
    return None


def filename_from_url(url: str) -> str:
    """
    Last path segment of ``url`` without its query string.

    Webflow CDN names are often percent-encoded more than once, so decoding
    is repeated (at most three times) until the name stops changing.
    """
    segment = urlsplit(url).path.rsplit("/", 1)[-1]
    for _ in range(3):
        decoded = unquote(segment)
        if decoded == segment:
            break
        segment = decoded
    segment = segment.replace("/", "_").replace("\\", "_")
    return segment or "image"


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(filename).suffix.lower(), "image/jpeg")


class ImageMigrator:
    """Uploads source images and attaches them to target documents."""

    def __init__(self, loader: BaseLoader, dry_run: bool = False):
        self.loader = loader
        self.dry_run = dry_run
        self._uploaded: Dict[str, Any] = {}  # filename -> media id, per run

    def migrate(
        self,
        image_field: ImageField,
        sources: Iterable[SourceRecord],
        targets: Dict[Any, TargetRecord],
        context: MigrationContext,
        step: MigrationStep,
    ) -> None:
        """
        Migrate one image field for every mapped source record.

        Args:
            image_field: Which image to copy
            sources: Source records of the entity
            targets: Target documents keyed by id
            context: Run context holding the identifier maps
            step: Step that collects the per-record outcomes
        """
        entity = image_field.entity.value
        for source in sources:
            url = image_url(source.fields.get(image_field.source_field))
            if not url:
                continue

            target_id = context.resolve(entity, source.id)
            if target_id is None:
                continue

            step.records_fetched += 1
            result = self._migrate_one(image_field, source, url, target_id, targets.get(target_id))
            step.record_result(result)

    def _migrate_one(
        self,
        image_field: ImageField,
        source: SourceRecord,
        url: str,
        target_id: Any,
        target: Optional[TargetRecord],
    ) -> MigrationResult:
        entity = image_field.entity.value
        if target is not None and target.get(image_field.target_field):
            return MigrationResult(
                record_id=source.id,
                entity=entity,
                action=RecordAction.SKIPPED,
                target_id=target_id,
            )

        try:
            media_id = self._media_for(source, image_field, url)
            self.loader.update(entity, target_id, {image_field.target_field: media_id})
        except TargetWriteError as e:
            if e.status_code == 403:
                logger.warning(f"Not allowed to attach image to {entity} {target_id}: {e}")
                return MigrationResult(
                    record_id=source.id,
                    entity=entity,
                    action=RecordAction.SKIPPED,
                    target_id=target_id,
                    error=f"forbidden: {e}",
                )
            logger.error(f"Image migration failed for {entity} {source.id}: {e}")
            return MigrationResult(source.id, entity, RecordAction.FAILED, target_id=target_id, error=str(e))
        except MigrationError as e:
            logger.error(f"Image migration failed for {entity} {source.id}: {e}")
            return MigrationResult(source.id, entity, RecordAction.FAILED, target_id=target_id, error=str(e))

        logger.info(f"Linked {image_field.target_field} on {entity} {target_id} to media {media_id}")
        return MigrationResult(
            record_id=source.id,
            entity=entity,
            action=RecordAction.UPDATED,
            target_id=target_id,
        )

    def _media_for(self, source: SourceRecord, image_field: ImageField, url: str) -> Any:
        """Existing media id for the file, or the id of a fresh upload."""
        filename = filename_from_url(url)
        if filename in self._uploaded:
            return self._uploaded[filename]

        existing = self.loader.find_media(filename)
        if existing is not None:
            logger.debug(f"Reusing media {existing.id} for {filename}")
            self._uploaded[filename] = existing.id
            return existing.id

        content = b"" if self.dry_run else self.loader.download(url)
        media = self.loader.upload_media(
            content,
            filename,
            alt_text(source, image_field, filename),
            content_type_for(filename),
        )
        self._uploaded[filename] = media.id
        return media.id


def alt_text(source: SourceRecord, image_field: ImageField, filename: str) -> str:
    """Source alt text, else the record name, else the file stem."""
    value = source.fields.get(image_field.source_field)
    if isinstance(value, dict) and value.get("alt"):
        return str(value["alt"])
    return source.display_name or PurePosixPath(filename).stem