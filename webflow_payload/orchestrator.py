"""Migration orchestrator - coordinates the complete migration process."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .exceptions import MigrationError, RecordSkipped, TargetWriteError
from .extractors.base import BaseExtractor
from .extractors.webflow_extractor import WebflowExtractor
from .loaders.base import BaseLoader
from .loaders.payload_loader import PayloadLoader
from .mappings import PAYLOAD_COLLECTIONS, default_mapping
from .models.migration import (
    EntityType,
    MigrationConfig,
    MigrationContext,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
)
from .models.record import (
    MigrationResult,
    RecordAction,
    RecordStatus,
    SourceRecord,
    TransformedRecord,
)
from .models.schema import CollectionSchema, EntityMapping, MatchStrategy, MigrationMapping
from .services.comparison import ComparisonResult, compare_collection
from .services.images import IMAGE_FIELDS, ImageMigrator
from .services.matcher import ReconciliationMatcher, TargetIndex
from .services.transformer import TransformEngine
from .services.validator import RecordValidator

logger = logging.getLogger(__name__)


class MigrationOrchestrator:
    """
    Orchestrates the complete migration process.

    Handles:
    - Entity steps in dependency order
    - Record selection (drafts, archived and hidden items)
    - Transformation, validation and reconciliation per record
    - Create-or-update writes with identifier map bookkeeping
    - Image migration
    - Progress tracking and reporting
    """

    def __init__(
        self,
        config: MigrationConfig,
        extractor: Optional[BaseExtractor] = None,
        loader: Optional[BaseLoader] = None,
        mapping: Optional[MigrationMapping] = None,
        transformer: Optional[TransformEngine] = None,
        validator: Optional[RecordValidator] = None,
        schemas: Optional[Dict[str, CollectionSchema]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            extractor: Source extractor, built from config when omitted
            loader: Target loader, built from config when omitted
            mapping: Migration mapping; the mapping file or the built-in mapping otherwise
            transformer: Transform engine
            validator: Record validator
            schemas: Target collection schemas used for validation
        """
        self.config = config
        self.mapping = mapping or self._load_mapping()
        self.transformer = transformer or TransformEngine()
        self.validator = validator or RecordValidator()
        self.schemas = schemas if schemas is not None else PAYLOAD_COLLECTIONS
        self._extractor = extractor
        self._loader = loader

        # Runtime state, reset per run
        self.run: Optional[MigrationRun] = None
        self.context = MigrationContext(
            dry_run=config.dry_run,
            default_unknown_status_to_active=config.default_unknown_status_to_active,
        )
        self._sources: Dict[str, List[SourceRecord]] = {}
        self._indexes: Dict[str, TargetIndex] = {}
        self._transformed: Dict[str, List[TransformedRecord]] = {}
        self._processed: Set[str] = set()
        self._failed: Set[str] = set()

    def _load_mapping(self) -> MigrationMapping:
        if self.config.mapping_file:
            logger.info(f"Loading mapping from {self.config.mapping_file}")
            return MigrationMapping.from_json_file(self.config.mapping_file)
        return default_mapping()

    @property
    def extractor(self) -> BaseExtractor:
        if self._extractor is None:
            self._extractor = WebflowExtractor(
                api_token=self.config.webflow_api_token or "",
                base_url=self.config.webflow_base_url,
                accept_version=self.config.webflow_accept_version,
                page_size=self.config.page_size,
                rate_limit_delay=self.config.rate_limit_delay,
                max_rate_limit_retries=self.config.max_rate_limit_retries,
                max_backoff=self.config.max_backoff,
                timeout=self.config.request_timeout,
            )
        return self._extractor

    @property
    def loader(self) -> BaseLoader:
        if self._loader is None:
            self._loader = PayloadLoader(
                api_url=self.config.payload_api_url,
                api_token=self.config.payload_api_token,
                dry_run=self.config.dry_run,
                timeout=self.config.request_timeout,
            )
        return self._loader

    def _reset(self) -> None:
        self.context = MigrationContext(
            run_id=self.run.id,
            dry_run=self.config.dry_run,
            default_unknown_status_to_active=self.config.default_unknown_status_to_active,
        )
        self._sources.clear()
        self._indexes.clear()
        self._transformed.clear()
        self._processed.clear()
        self._failed.clear()

    def run_migration(self, run: Optional[MigrationRun] = None) -> MigrationRun:
        """
        Run the complete migration.

        Args:
            run: Pre-registered run to fill in, so callers can observe progress

        Raises:
            MissingConfigurationError: Credentials are missing; nothing has run

        Returns:
            MigrationRun with results and statistics
        """
        self.config.require_credentials()

        self.run = run or MigrationRun(name=self.config.name)
        self.run.dry_run = self.config.dry_run
        self.run.metadata["config"] = self.config.to_dict()
        self._reset()
        self.run.started_at = datetime.utcnow()
        self.run.status = MigrationStatus.RUNNING
        if self.config.dry_run:
            logger.info("Dry run: no data will be written to Payload")

        try:
            for entity in self.config.selected_entities():
                logger.info(f"=== {entity.value.upper()} ===")
                if entity == EntityType.IMAGES:
                    self._run_images_step()
                else:
                    self._run_entity_step(entity)

        except Exception as e:
            logger.exception(f"Migration failed: {e}")
            self.run.errors.append({
                "step": self.run.current_step,
                "error": str(e),
                "timestamp": datetime.utcnow().isoformat(),
            })

        finally:
            self.run.completed_at = datetime.utcnow()
            self.run.update_totals()
            self.run.identifier_counts = self.context.identifier_counts()
            self.run.status = self.run.resolve_status()
            if self.config.save_report:
                self._save_report()

        logger.info(
            f"Migration {self.run.status.value}: {self.run.total_records_created} created, "
            f"{self.run.total_records_updated} updated, {self.run.total_records_skipped} skipped, "
            f"{self.run.total_records_failed} failed"
        )
        return self.run

    def _start_step(self, name: str, entity: str) -> MigrationStep:
        step = self.run.add_step(name=name, entity=entity)
        step.started_at = datetime.utcnow()
        step.status = MigrationStatus.RUNNING
        self.run.current_step = step.id
        return step

    def _skip_step(self, step: MigrationStep, reason: str) -> MigrationStep:
        step.status = MigrationStatus.SKIPPED
        step.warnings.append(reason)
        step.completed_at = datetime.utcnow()
        logger.warning(f"Skipping {step.entity}: {reason}")
        return step

    def _run_entity_step(self, entity: EntityType) -> MigrationStep:
        """Fetch, select, map, reconcile and write one entity type."""
        step = self._start_step(f"Migrate {entity.value}", entity.value)

        mapping = self.mapping.get(entity.value)
        if mapping is None:
            return self._skip_step(step, "no mapping defined")

        collection_id = self.config.collection_id(entity.value)
        if not collection_id:
            return self._skip_step(step, f"{entity.collection_env_var} is not configured")

        failed_dependencies = [d for d in mapping.dependencies if d in self._failed]
        if failed_dependencies:
            return self._skip_step(step, f"dependency step failed: {', '.join(failed_dependencies)}")

        try:
            for dependency in mapping.dependencies:
                self._ensure_identifier_map(dependency)

            sources = self._fetch(entity.value)
            step.records_fetched = len(sources)

            if entity == EntityType.MATCHING_DONORS:
                self.context.option_labels[entity.value] = self.extractor.option_labels(collection_id)

            selected = self._select(entity, sources)
            logger.info(f"Selected {len(selected)} of {len(sources)} {entity.value} items")

            index = self._index_for(mapping)
            matcher = ReconciliationMatcher(
                index,
                strategy=mapping.match_strategy,
                match_fields=mapping.match_fields,
                legacy_slugs=self.config.legacy_slug_matching,
            )

            for source in selected:
                result = self._process_record(source, mapping, matcher, index, step)
                step.record_result(result)

            step.status = MigrationStatus.COMPLETED
            logger.info(
                f"{entity.value}: {step.records_created} created, {step.records_updated} updated, "
                f"{step.records_skipped} skipped, {step.records_failed} failed"
            )

        except MigrationError as e:
            step.status = MigrationStatus.FAILED
            step.errors.append({"error": str(e), "timestamp": datetime.utcnow().isoformat()})
            self._failed.add(entity.value)
            logger.error(f"Step {entity.value} failed: {e}")

        finally:
            step.completed_at = datetime.utcnow()
            self._processed.add(entity.value)
            if self.config.save_transformed and self._transformed.get(entity.value):
                self._save_transformed(entity.value)

        return step

    def _process_record(
        self,
        source: SourceRecord,
        mapping: EntityMapping,
        matcher: ReconciliationMatcher,
        index: TargetIndex,
        step: MigrationStep,
    ) -> MigrationResult:
        """Map, validate, reconcile and write one record. Never raises for record-level problems."""
        entity = mapping.name
        label = source.display_name or source.id
        try:
            transformed = self.transformer.transform_record(source, mapping, self.context)
            self._transformed.setdefault(entity, []).append(transformed)
            step.warnings.extend(transformed.warnings)

            self._require_match_keys(mapping, transformed)

            schema = self.schemas.get(mapping.target_collection)
            if schema is not None:
                transformed.validation_errors.extend(self.validator.validate_record(transformed, schema))
            if not transformed.is_valid:
                transformed.status = RecordStatus.FAILED
                messages = "; ".join(
                    f"{e.field}: {e.message}" for e in transformed.validation_errors if e.severity == "error"
                )
                logger.error(f"Invalid {entity} {label}: {messages}")
                return MigrationResult(source.id, entity, RecordAction.FAILED, error=messages)
            transformed.status = RecordStatus.VALIDATED

            outcome = matcher.match(source, transformed.data)
            record, action = self.loader.upsert(mapping.target_collection, transformed.data, outcome.record)
            transformed.status = RecordStatus.LOADED

        except RecordSkipped as e:
            logger.warning(f"Skipped {entity} {label}: {e.reason}")
            return MigrationResult(source.id, entity, RecordAction.SKIPPED, error=e.reason)

        except TargetWriteError as e:
            logger.error(f"Failed to write {entity} {label}: {e}")
            return MigrationResult(source.id, entity, RecordAction.FAILED, error=str(e))

        index.add(record)
        self.context.record_mapping(entity, source.id, record.id)
        logger.info(f"{action.value.capitalize()} {entity} {label} -> {record.id}")
        return MigrationResult(
            record_id=source.id,
            entity=entity,
            action=action,
            target_id=record.id,
            match_strategy=outcome.strategy,
        )

    def _require_match_keys(self, mapping: EntityMapping, transformed: TransformedRecord) -> None:
        """Records without reconciliation keys would be duplicated on every run."""
        if mapping.match_strategy == MatchStrategy.SLUG or not mapping.match_fields:
            return
        present = [name for name in mapping.match_fields if transformed.data.get(name) not in (None, "", [])]
        if mapping.match_strategy == MatchStrategy.ANY_FIELD and not present:
            raise RecordSkipped(f"none of {', '.join(mapping.match_fields)} is set")
        if mapping.match_strategy == MatchStrategy.FIELDS and len(present) < len(mapping.match_fields):
            raise RecordSkipped(f"missing match fields: {', '.join(set(mapping.match_fields) - set(present))}")

    def _fetch(self, entity: str) -> List[SourceRecord]:
        """All items of an entity's collection, fetched once per run."""
        if entity not in self._sources:
            collection_id = self.config.collection_id(entity)
            self._sources[entity] = self.extractor.extract(collection_id, entity).records
        return self._sources[entity]

    def _select(self, entity: EntityType, sources: List[SourceRecord]) -> List[SourceRecord]:
        """Items of an entity that should be written."""
        if entity == EntityType.CONTRIBUTORS:
            referenced = self._referenced_contributors()
            return [
                s for s in sources
                if s.is_active
                or (self.config.include_drafts and s.is_draft and not s.is_archived)
                or s.id in referenced
            ]
        if entity == EntityType.PROJECTS:
            return [s for s in sources if s.is_active and not s.fields.get("hidden")]
        return [s for s in sources if s.is_active]

    def _referenced_contributors(self) -> Set[str]:
        """Contributor ids referenced by migrated projects, drafts and archived ones included."""
        if not self.config.collection_id(EntityType.PROJECTS.value):
            return set()
        projects_mapping = self.mapping.get(EntityType.PROJECTS.value)
        if projects_mapping is None:
            return set()

        fields = []
        for field_mapping in projects_mapping.field_mappings:
            if field_mapping.transform_config.get("entity") == EntityType.CONTRIBUTORS.value:
                fields.extend(field_mapping.transform_config.get("fields") or [field_mapping.source_field])

        referenced: Set[str] = set()
        for project in self._select(EntityType.PROJECTS, self._fetch(EntityType.PROJECTS.value)):
            for name in fields:
                value = project.get_field(name) if name else None
                for source_id in value if isinstance(value, list) else [value]:
                    if source_id:
                        referenced.add(str(source_id))
        return referenced

    def _index_for(self, mapping: EntityMapping) -> TargetIndex:
        """Index over a target collection, listed once per run."""
        collection = mapping.target_collection
        if collection not in self._indexes:
            self._indexes[collection] = TargetIndex(
                collection,
                self.loader.list_all(collection),
                key_fields=mapping.match_fields,
            )
            logger.debug(f"Indexed {len(self._indexes[collection])} existing {collection} documents")
        return self._indexes[collection]

    def _ensure_identifier_map(self, entity: str) -> None:
        """
        Seed an upstream identifier map when its step is not part of this run.

        Upstream items are reconciled against existing target documents without
        writing anything, so references from later steps still resolve.
        """
        if entity in self._processed:
            return
        mapping = self.mapping.get(entity)
        if mapping is None or not self.config.collection_id(entity):
            logger.warning(f"Cannot resolve {entity} references: collection not configured")
            self._processed.add(entity)
            return
        if mapping.match_strategy != MatchStrategy.SLUG:
            logger.warning(f"Cannot seed {entity} identifiers without migrating them")
            self._processed.add(entity)
            return

        matcher = ReconciliationMatcher(
            self._index_for(mapping),
            strategy=mapping.match_strategy,
            legacy_slugs=self.config.legacy_slug_matching,
        )
        for source in self._fetch(entity):
            outcome = matcher.match(source)
            if outcome.matched:
                self.context.record_mapping(entity, source.id, outcome.record.id)

        self._processed.add(entity)
        logger.info(f"Seeded {len(self.context.map_for(entity))} {entity} identifiers from existing documents")

    def _run_images_step(self) -> MigrationStep:
        """Copy profile pictures and cover images into the media collection."""
        step = self._start_step("Migrate images", EntityType.IMAGES.value)
        migrator = ImageMigrator(self.loader, dry_run=self.config.dry_run)

        try:
            for image_field in IMAGE_FIELDS:
                entity = image_field.entity.value
                if not self.config.collection_id(entity):
                    step.warnings.append(f"{image_field.entity.collection_env_var} is not configured")
                    continue
                if entity in self._failed:
                    step.warnings.append(f"{entity} step failed, images not migrated")
                    continue

                mapping = self.mapping.get(entity)
                if mapping is None:
                    continue
                self._ensure_identifier_map(entity)
                targets = {record.id: record for record in self._index_for(mapping)}
                migrator.migrate(image_field, self._fetch(entity), targets, self.context, step)

            step.status = MigrationStatus.COMPLETED

        except MigrationError as e:
            step.status = MigrationStatus.FAILED
            step.errors.append({"error": str(e), "timestamp": datetime.utcnow().isoformat()})
            logger.error(f"Image migration failed: {e}")

        finally:
            step.completed_at = datetime.utcnow()

        return step

    def compare(self) -> List[ComparisonResult]:
        """Compare every configured collection with its Payload counterpart."""
        results = []
        for entity in self.config.selected_entities():
            if entity == EntityType.IMAGES:
                continue
            mapping = self.mapping.get(entity.value)
            if mapping is None or not self.config.collection_id(entity.value):
                logger.warning(f"Skipping comparison for {entity.value}: not configured")
                continue
            results.append(compare_collection(
                entity.value,
                self._fetch(entity.value),
                self.loader.list_all(mapping.target_collection),
            ))
        return results

    def preview_transformation(
        self,
        items: List[Dict[str, Any]],
        entity: str,
    ) -> List[TransformedRecord]:
        """
        Transform raw Webflow items without touching either API.

        References cannot resolve without a run, so reference fields are left
        out and records that require them come back marked as skipped.
        """
        mapping = self.mapping.get(EntityType(entity).value)
        if mapping is None:
            raise ValueError(f"No mapping found for {entity}")

        schema = self.schemas.get(mapping.target_collection)
        context = MigrationContext(
            dry_run=True,
            default_unknown_status_to_active=self.config.default_unknown_status_to_active,
        )
        results = []
        for item in items:
            source = SourceRecord.from_webflow_item(item, mapping.name)
            try:
                transformed = self.transformer.transform_record(source, mapping, context)
            except RecordSkipped as e:
                transformed = TransformedRecord(
                    id=source.id,
                    entity=mapping.name,
                    target_collection=mapping.target_collection,
                    data={},
                    source_record=source,
                    status=RecordStatus.SKIPPED,
                    warnings=[e.reason],
                )
                results.append(transformed)
                continue
            if schema is not None:
                transformed.validation_errors.extend(self.validator.validate_record(transformed, schema))
            results.append(transformed)
        return results

    def _save_transformed(self, entity: str) -> None:
        """Save transformed records to file."""
        directory = Path(self.config.output_dir) / "transformed"
        directory.mkdir(parents=True, exist_ok=True)
        filepath = directory / f"{entity}.json"
        with open(filepath, "w") as f:
            json.dump([r.to_dict() for r in self._transformed[entity]], f, indent=2, default=str)

    def _save_report(self) -> None:
        """Save the migration report."""
        directory = Path(self.config.output_dir) / "reports"
        directory.mkdir(parents=True, exist_ok=True)
        filepath = directory / f"migration_report_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}_{self.run.id[:8]}.json"
        with open(filepath, "w") as f:
            json.dump(self.run.to_dict(), f, indent=2, default=str)
        self.run.report_path = str(filepath)
        logger.info(f"Saved migration report to {filepath}")
