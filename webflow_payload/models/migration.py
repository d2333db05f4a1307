"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from enum import Enum
from datetime import datetime
import os
import uuid

from ..exceptions import MissingConfigurationError
from .record import MigrationResult, RecordAction


class MigrationStatus(str, Enum):
    """Status of a migration run or step."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"
    SKIPPED = "skipped"


class EntityType(str, Enum):
    """Entity types migrated from Webflow, in no particular order."""
    CONTRIBUTORS = "contributors"
    PROJECTS = "projects"
    FAQS = "faqs"
    POSTS = "posts"
    UPDATES = "updates"
    MATCHING_DONORS = "matching-donors"
    IMAGES = "images"

    @property
    def collection_env_var(self) -> Optional[str]:
        """Environment variable holding the Webflow collection id."""
        return COLLECTION_ENV_VARS.get(self)


COLLECTION_ENV_VARS: Dict[EntityType, str] = {
    EntityType.CONTRIBUTORS: "WEBFLOW_COLLECTION_ID_CONTRIBUTORS",
    EntityType.PROJECTS: "WEBFLOW_COLLECTION_ID_PROJECTS",
    EntityType.FAQS: "WEBFLOW_COLLECTION_ID_FAQS",
    EntityType.POSTS: "WEBFLOW_COLLECTION_ID_POSTS",
    EntityType.UPDATES: "WEBFLOW_COLLECTION_ID_PROJECT_UPDATES",
    EntityType.MATCHING_DONORS: "WEBFLOW_COLLECTION_ID_MATCHING_DONORS",
}

# Fixed topological order: contributors before projects, projects before
# everything that references them, images last.
MIGRATION_ORDER: List[EntityType] = [
    EntityType.CONTRIBUTORS,
    EntityType.PROJECTS,
    EntityType.FAQS,
    EntityType.POSTS,
    EntityType.UPDATES,
    EntityType.MATCHING_DONORS,
    EntityType.IMAGES,
]

DEFAULT_WEBFLOW_BASE_URL = "https://api.webflow.com/v2"
DEFAULT_PAYLOAD_API_URL = "http://localhost:3001/api"


@dataclass
class MigrationStep:
    """A single entity step in a migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    entity: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    records_fetched: int = 0
    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record_result(self, result: MigrationResult) -> None:
        """Fold a per-record outcome into the step counters."""
        self.records_processed += 1
        if result.action == RecordAction.CREATED:
            self.records_created += 1
        elif result.action == RecordAction.UPDATED:
            self.records_updated += 1
        elif result.action == RecordAction.SKIPPED:
            self.records_skipped += 1
            if result.error:
                self.warnings.append(f"{result.record_id}: {result.error}")
        else:
            self.records_failed += 1
            self.errors.append({
                "record_id": result.record_id,
                "error": result.error,
                "timestamp": result.loaded_at.isoformat(),
            })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "entity": self.entity,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "records_fetched": self.records_fetched,
            "records_processed": self.records_processed,
            "records_created": self.records_created,
            "records_updated": self.records_updated,
            "records_skipped": self.records_skipped,
            "records_failed": self.records_failed,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    dry_run: bool = False

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Progress
    steps: List[MigrationStep] = field(default_factory=list)
    current_step: Optional[str] = None

    # Statistics
    total_records_processed: int = 0
    total_records_created: int = 0
    total_records_updated: int = 0
    total_records_skipped: int = 0
    total_records_failed: int = 0
    identifier_counts: Dict[str, int] = field(default_factory=dict)

    errors: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    report_path: Optional[str] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def add_step(self, name: str, entity: str) -> MigrationStep:
        """Add a new step to the migration."""
        step = MigrationStep(name=name, entity=entity)
        self.steps.append(step)
        return step

    def update_totals(self) -> None:
        """Update total statistics from steps."""
        self.total_records_processed = sum(s.records_processed for s in self.steps)
        self.total_records_created = sum(s.records_created for s in self.steps)
        self.total_records_updated = sum(s.records_updated for s in self.steps)
        self.total_records_skipped = sum(s.records_skipped for s in self.steps)
        self.total_records_failed = sum(s.records_failed for s in self.steps)

    def resolve_status(self) -> MigrationStatus:
        """Derive the overall outcome from run errors and step outcomes."""
        if self.errors:
            return MigrationStatus.FAILED
        if any(s.status == MigrationStatus.FAILED for s in self.steps):
            return MigrationStatus.COMPLETED_WITH_ERRORS
        if any(s.records_failed for s in self.steps):
            return MigrationStatus.COMPLETED_WITH_ERRORS
        return MigrationStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "steps": [s.to_dict() for s in self.steps],
            "current_step": self.current_step,
            "total_records_processed": self.total_records_processed,
            "total_records_created": self.total_records_created,
            "total_records_updated": self.total_records_updated,
            "total_records_skipped": self.total_records_skipped,
            "total_records_failed": self.total_records_failed,
            "identifier_counts": self.identifier_counts,
            "errors": self.errors,
            "metadata": self.metadata,
            "report_path": self.report_path,
        }


@dataclass
class MigrationConfig:
    """Configuration for a Webflow to Payload migration."""
    name: str = "webflow-to-payload"

    # Source
    webflow_api_token: Optional[str] = None
    webflow_base_url: str = DEFAULT_WEBFLOW_BASE_URL
    webflow_accept_version: str = "1.0.0"
    collections: Dict[str, str] = field(default_factory=dict)  # entity -> collection id

    # Target
    payload_api_url: str = DEFAULT_PAYLOAD_API_URL
    payload_api_token: Optional[str] = None

    # Execution options
    dry_run: bool = False
    entities: List[str] = field(default_factory=list)  # empty means all
    include_drafts: bool = False
    migrate_images: bool = True
    legacy_slug_matching: bool = True
    default_unknown_status_to_active: bool = True

    # Transport
    page_size: int = 100
    rate_limit_delay: float = 5.0
    max_rate_limit_retries: int = 6
    max_backoff: float = 60.0
    request_timeout: float = 30.0

    # Output
    output_dir: str = "./data"
    save_report: bool = True
    save_transformed: bool = False
    mapping_file: Optional[str] = None

    def collection_id(self, entity: str) -> Optional[str]:
        """Webflow collection id configured for an entity, if any."""
        return self.collections.get(EntityType(entity).value) or None

    def selected_entities(self) -> List[EntityType]:
        """Entities to run, always in dependency order."""
        wanted = {EntityType(e) for e in self.entities} if self.entities else set(MIGRATION_ORDER)
        if not self.migrate_images:
            wanted.discard(EntityType.IMAGES)
        return [e for e in MIGRATION_ORDER if e in wanted]

    def validate(self) -> List[str]:
        """Return human-readable configuration problems."""
        problems = []
        if not self.webflow_api_token or not self.webflow_api_token.strip():
            problems.append("WEBFLOW_API_TOKEN is not set")
        if not self.payload_api_url or not self.payload_api_url.strip():
            problems.append("PAYLOAD_API_URL is not set")
        if self.page_size < 1:
            problems.append("page_size must be at least 1")
        if self.max_rate_limit_retries < 0:
            problems.append("max_rate_limit_retries must not be negative")
        for entity in self.entities:
            try:
                EntityType(entity)
            except ValueError:
                problems.append(f"Unknown entity type: {entity}")
        return problems

    def require_credentials(self) -> None:
        """Raise before any work starts when the fatal settings are missing."""
        missing = []
        if not self.webflow_api_token or not self.webflow_api_token.strip():
            missing.append("WEBFLOW_API_TOKEN")
        if not self.payload_api_url or not self.payload_api_url.strip():
            missing.append("PAYLOAD_API_URL")
        if missing:
            raise MissingConfigurationError(f"Missing configuration for: {', '.join(missing)}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation. Secrets are not included."""
        return {
            "name": self.name,
            "webflow_base_url": self.webflow_base_url,
            "webflow_accept_version": self.webflow_accept_version,
            "collections": self.collections,
            "payload_api_url": self.payload_api_url,
            "dry_run": self.dry_run,
            "entities": self.entities,
            "include_drafts": self.include_drafts,
            "migrate_images": self.migrate_images,
            "legacy_slug_matching": self.legacy_slug_matching,
            "default_unknown_status_to_active": self.default_unknown_status_to_active,
            "page_size": self.page_size,
            "rate_limit_delay": self.rate_limit_delay,
            "max_rate_limit_retries": self.max_rate_limit_retries,
            "max_backoff": self.max_backoff,
            "request_timeout": self.request_timeout,
            "output_dir": self.output_dir,
            "save_report": self.save_report,
            "save_transformed": self.save_transformed,
            "mapping_file": self.mapping_file,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            name=data.get("name", "webflow-to-payload"),
            webflow_api_token=data.get("webflow_api_token"),
            webflow_base_url=data.get("webflow_base_url", DEFAULT_WEBFLOW_BASE_URL),
            webflow_accept_version=data.get("webflow_accept_version", "1.0.0"),
            collections=dict(data.get("collections", {})),
            payload_api_url=data.get("payload_api_url", DEFAULT_PAYLOAD_API_URL),
            payload_api_token=data.get("payload_api_token"),
            dry_run=data.get("dry_run", False),
            entities=list(data.get("entities", [])),
            include_drafts=data.get("include_drafts", False),
            migrate_images=data.get("migrate_images", True),
            legacy_slug_matching=data.get("legacy_slug_matching", True),
            default_unknown_status_to_active=data.get("default_unknown_status_to_active", True),
            page_size=data.get("page_size", 100),
            rate_limit_delay=data.get("rate_limit_delay", 5.0),
            max_rate_limit_retries=data.get("max_rate_limit_retries", 6),
            max_backoff=data.get("max_backoff", 60.0),
            request_timeout=data.get("request_timeout", 30.0),
            output_dir=data.get("output_dir", "./data"),
            save_report=data.get("save_report", True),
            save_transformed=data.get("save_transformed", False),
            mapping_file=data.get("mapping_file"),
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "MigrationConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Field values that take precedence over the environment

        Returns:
            MigrationConfig
        """
        env = os.environ if environ is None else environ

        collections = {}
        for entity, var in COLLECTION_ENV_VARS.items():
            value = (env.get(var) or "").strip()
            if value:
                collections[entity.value] = value

        data: Dict[str, Any] = {
            "webflow_api_token": (env.get("WEBFLOW_API_TOKEN") or "").strip() or None,
            "collections": collections,
            "payload_api_url": (env.get("PAYLOAD_API_URL") or "").strip() or DEFAULT_PAYLOAD_API_URL,
            "payload_api_token": (env.get("PAYLOAD_API_TOKEN") or "").strip() or None,
        }
        if env.get("WEBFLOW_API_URL"):
            data["webflow_base_url"] = env["WEBFLOW_API_URL"].strip()
        if env.get("MIGRATION_OUTPUT_DIR"):
            data["output_dir"] = env["MIGRATION_OUTPUT_DIR"].strip()

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)


@dataclass
class IdentifierMap:
    """Source id to target id table for one entity type."""
    entity: str
    ids: Dict[str, Any] = field(default_factory=dict)

    def add(self, source_id: str, target_id: Any) -> None:
        self.ids[str(source_id)] = target_id

    def get(self, source_id: Any) -> Optional[Any]:
        if source_id is None:
            return None
        return self.ids.get(str(source_id))

    def __contains__(self, source_id: object) -> bool:
        return str(source_id) in self.ids

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class MigrationContext:
    """
    Run-scoped state threaded through fetch, match, map and write.

    One context is created per run; nothing here outlives the run.
    """
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    dry_run: bool = False
    default_unknown_status_to_active: bool = True
    identifier_maps: Dict[str, IdentifierMap] = field(default_factory=dict)
    # entity -> field slug -> option id -> option label
    option_labels: Dict[str, Dict[str, Dict[str, str]]] = field(default_factory=dict)

    def map_for(self, entity: str) -> IdentifierMap:
        entity = EntityType(entity).value
        if entity not in self.identifier_maps:
            self.identifier_maps[entity] = IdentifierMap(entity=entity)
        return self.identifier_maps[entity]

    def record_mapping(self, entity: str, source_id: str, target_id: Any) -> None:
        self.map_for(entity).add(source_id, target_id)

    def resolve(self, entity: str, source_id: Any) -> Optional[Any]:
        return self.map_for(entity).get(source_id)

    def option_label(self, entity: str, field_slug: str, option_id: Any) -> Optional[str]:
        if option_id is None:
            return None
        return self.option_labels.get(entity, {}).get(field_slug, {}).get(str(option_id))

    def identifier_counts(self) -> Dict[str, int]:
        return {entity: len(m) for entity, m in self.identifier_maps.items()}
