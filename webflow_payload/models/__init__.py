"""Data models for the migration application."""

from .schema import (
    FieldType,
    FieldDefinition,
    CollectionSchema,
    FieldMapping,
    EntityMapping,
    MigrationMapping,
    MatchStrategy,
    ProjectStatus,
    TransformType,
)
from .migration import (
    EntityType,
    IdentifierMap,
    MigrationConfig,
    MigrationContext,
    MigrationRun,
    MigrationStep,
    MigrationStatus,
    MIGRATION_ORDER,
)
from .record import (
    SourceRecord,
    TargetRecord,
    TransformedRecord,
    MigrationResult,
    RecordAction,
    ValidationError,
)

__all__ = [
    "FieldType",
    "FieldDefinition",
    "CollectionSchema",
    "FieldMapping",
    "EntityMapping",
    "MigrationMapping",
    "MatchStrategy",
    "ProjectStatus",
    "TransformType",
    "EntityType",
    "IdentifierMap",
    "MigrationConfig",
    "MigrationContext",
    "MigrationRun",
    "MigrationStep",
    "MigrationStatus",
    "MIGRATION_ORDER",
    "SourceRecord",
    "TargetRecord",
    "TransformedRecord",
    "MigrationResult",
    "RecordAction",
    "ValidationError",
]
