"""Schema models for Payload collections and Webflow field mappings."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import json


class FieldType(str, Enum):
    """Payload field types the validator understands."""
    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DATE = "date"
    SELECT = "select"
    RICHTEXT = "richText"
    RELATIONSHIP = "relationship"
    UPLOAD = "upload"
    ARRAY = "array"
    EMAIL = "email"


class TransformType(str, Enum):
    """Supported transformation types."""
    DIRECT = "direct"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DEFAULT = "default"
    SLUG = "slug"
    RICHTEXT = "richtext"
    STATUS = "status"
    ENUM_MAP = "enum_map"
    OPTION_LABEL = "option_label"
    REFERENCE = "reference"
    REFERENCE_ONE = "reference_one"
    TAG_LIST = "tag_list"
    DATE = "date"
    POST_LINK = "post_link"
    CUSTOM = "custom"


class ProjectStatus(str, Enum):
    """Closed set of project statuses, plus an explicit unknown bucket."""
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ARCHIVED = "archived"
    UNKNOWN = "unknown"


class MatchStrategy(str, Enum):
    """How a source record is reconciled against existing target documents."""
    SLUG = "slug"  # sanitized slug, display name, legacy slug cascade
    FIELDS = "fields"  # every listed target field must be equal
    ANY_FIELD = "any_field"  # any one listed target field equal is enough


@dataclass
class FieldDefinition:
    """Definition of a field in a Payload collection."""
    name: str
    type: FieldType
    required: bool = False
    unique: bool = False
    options: Optional[List[str]] = None
    relation_to: Optional[str] = None
    has_many: bool = False
    description: str = ""


@dataclass
class CollectionSchema:
    """The parts of a Payload collection config the migration depends on."""
    slug: str
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)
    description: str = ""


@dataclass
class FieldMapping:
    """Mapping between a Webflow field and a Payload field."""
    source_field: Optional[str]  # None if generated/default
    target_field: str
    transform: TransformType = TransformType.DIRECT
    transform_config: Dict[str, Any] = field(default_factory=dict)
    default_value: Optional[Any] = None
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        result: Dict[str, Any] = {
            "source_field": self.source_field,
            "target_field": self.target_field,
            "transform": self.transform.value if isinstance(self.transform, TransformType) else self.transform,
        }
        if self.transform_config:
            result["transform_config"] = self.transform_config
        if self.default_value is not None:
            result["default"] = self.default_value
        if self.notes:
            result["notes"] = self.notes
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Create from dictionary representation."""
        transform = data.get("transform", "direct")
        if isinstance(transform, str):
            try:
                transform = TransformType(transform)
            except ValueError:
                transform = TransformType.CUSTOM

        return cls(
            source_field=data.get("source_field"),
            target_field=data.get("target_field", ""),
            transform=transform,
            transform_config=data.get("transform_config", {}),
            default_value=data.get("default"),
            notes=data.get("notes", ""),
        )


@dataclass
class EntityMapping:
    """Mapping between a Webflow collection and a Payload collection."""
    name: str  # entity type, e.g. "projects"
    target_collection: str
    field_mappings: List[FieldMapping] = field(default_factory=list)
    match_strategy: MatchStrategy = MatchStrategy.SLUG
    match_fields: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "target": self.target_collection,
            "description": self.description,
            "match_strategy": self.match_strategy.value,
            "match_fields": self.match_fields,
            "field_mappings": [m.to_dict() for m in self.field_mappings],
            "dependencies": self.dependencies,
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "EntityMapping":
        """Create from dictionary representation."""
        return cls(
            name=name,
            target_collection=data.get("target", name),
            field_mappings=[FieldMapping.from_dict(fm) for fm in data.get("field_mappings", [])],
            match_strategy=MatchStrategy(data.get("match_strategy", MatchStrategy.SLUG.value)),
            match_fields=data.get("match_fields", []),
            dependencies=data.get("dependencies", []),
            description=data.get("description", ""),
        )


@dataclass
class MigrationMapping:
    """Complete mapping configuration for a migration."""
    name: str
    version: str = "1.0"
    description: str = ""
    entity_mappings: Dict[str, EntityMapping] = field(default_factory=dict)

    def get(self, entity: str) -> Optional[EntityMapping]:
        return self.entity_mappings.get(entity)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "mappings": {k: v.to_dict() for k, v in self.entity_mappings.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationMapping":
        """Create from dictionary representation."""
        entity_mappings = {}
        for name, mapping_data in data.get("mappings", {}).items():
            entity_mappings[name] = EntityMapping.from_dict(name, mapping_data)

        return cls(
            name=data.get("name", ""),
            version=data.get("version", "1.0"),
            description=data.get("description", ""),
            entity_mappings=entity_mappings,
        )

    @classmethod
    def from_json_file(cls, file_path: str) -> "MigrationMapping":
        """Load mapping from JSON file."""
        with open(file_path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
