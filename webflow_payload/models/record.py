"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime


class RecordStatus(str, Enum):
    """Status of a record during migration."""
    PENDING = "pending"
    TRANSFORMED = "transformed"
    VALIDATED = "validated"
    LOADED = "loaded"
    FAILED = "failed"
    SKIPPED = "skipped"


class RecordAction(str, Enum):
    """What the upsert executor did with a record."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ValidationError:
    """A validation error on a record."""
    field: str
    message: str
    error_type: str = "validation"
    severity: str = "error"  # error, warning
    value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "field": self.field,
            "message": self.message,
            "error_type": self.error_type,
            "severity": self.severity,
            "value": self.value,
        }


@dataclass
class SourceRecord:
    """An item fetched from a Webflow collection."""
    id: str
    collection: str  # entity type, e.g. "contributors"
    fields: Dict[str, Any] = field(default_factory=dict)
    is_draft: bool = False
    is_archived: bool = False
    slug: Optional[str] = None  # top-level item slug, older API responses only
    extracted_at: datetime = field(default_factory=datetime.utcnow)
    raw_data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_webflow_item(cls, item: Dict[str, Any], collection: str) -> "SourceRecord":
        """Create from a Webflow v2 item payload."""
        return cls(
            id=str(item.get("id", "")),
            collection=collection,
            fields=dict(item.get("fieldData") or {}),
            is_draft=bool(item.get("isDraft", False)),
            is_archived=bool(item.get("isArchived", False)),
            slug=item.get("slug"),
            raw_data=item,
        )

    @property
    def is_active(self) -> bool:
        """Published items only: neither draft nor archived."""
        return not self.is_draft and not self.is_archived

    @property
    def display_name(self) -> str:
        name = self.fields.get("name")
        return str(name).strip() if name else ""

    @property
    def raw_slug(self) -> str:
        """The slug exactly as Webflow stores it, before sanitization."""
        value = self.fields.get("slug") or self.slug
        return str(value) if value else ""

    @property
    def slug_source(self) -> str:
        """Text the canonical slug is derived from: slug, then name, then id."""
        return self.raw_slug or self.display_name or self.id

    def get_field(self, path: str, default: Any = None) -> Any:
        """Get a field value by dot-notation path (e.g., 'cover-image.url')."""
        parts = path.split(".")
        value: Any = self.fields
        for part in parts:
            if isinstance(value, dict):
                value = value.get(part)
            elif isinstance(value, list) and part.isdigit():
                idx = int(part)
                value = value[idx] if idx < len(value) else None
            else:
                return default
            if value is None:
                return default
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "collection": self.collection,
            "is_draft": self.is_draft,
            "is_archived": self.is_archived,
            "slug": self.raw_slug,
            "fields": self.fields,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass
class TargetRecord:
    """A document persisted in a Payload collection."""
    id: Any  # integer on Postgres-backed Payload, negative placeholders in dry runs
    collection: str
    slug: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload_doc(cls, doc: Dict[str, Any], collection: str) -> "TargetRecord":
        """Create from a Payload REST document."""
        return cls(
            id=doc.get("id"),
            collection=collection,
            slug=doc.get("slug"),
            fields=dict(doc),
        )

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "collection": self.collection,
            "slug": self.slug,
            "fields": self.fields,
        }


@dataclass
class TransformedRecord:
    """A record mapped into the shape of a Payload collection."""
    id: str  # source record id
    entity: str
    target_collection: str
    data: Dict[str, Any]
    source_record: Optional[SourceRecord] = None
    transformed_at: datetime = field(default_factory=datetime.utcnow)
    status: RecordStatus = RecordStatus.TRANSFORMED
    validation_errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "entity": self.entity,
            "target_collection": self.target_collection,
            "data": self.data,
            "transformed_at": self.transformed_at.isoformat(),
            "status": self.status.value,
            "validation_errors": [e.to_dict() for e in self.validation_errors],
            "warnings": self.warnings,
        }

    @property
    def is_valid(self) -> bool:
        """Check if record passed validation."""
        return not any(e.severity == "error" for e in self.validation_errors)


@dataclass
class MigrationResult:
    """Result of attempting to write one record to Payload."""
    record_id: str
    entity: str
    action: RecordAction
    target_id: Optional[Any] = None
    match_strategy: Optional[str] = None
    error: Optional[str] = None
    loaded_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "record_id": self.record_id,
            "entity": self.entity,
            "action": self.action.value,
            "target_id": self.target_id,
            "match_strategy": self.match_strategy,
            "error": self.error,
            "loaded_at": self.loaded_at.isoformat(),
        }
