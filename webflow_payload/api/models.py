"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from datetime import datetime

from ..models.migration import EntityType


class MigrationStatusEnum(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"
    SKIPPED = "skipped"


# Request Models
class MigrationStartRequest(BaseModel):
    dry_run: bool = True
    entities: List[str] = Field(default_factory=list)
    include_drafts: bool = False
    migrate_images: bool = True

    @field_validator("entities")
    @classmethod
    def check_entities(cls, value: List[str]) -> List[str]:
        valid = {e.value for e in EntityType}
        unknown = [e for e in value if e not in valid]
        if unknown:
            raise ValueError(f"Unknown entity types: {', '.join(unknown)}")
        return value


# Response Models
class MigrationStartResponse(BaseModel):
    status: str
    migration_id: str


class MigrationStepResponse(BaseModel):
    id: str
    name: str
    entity: str
    status: MigrationStatusEnum
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    records_fetched: int = 0
    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class MigrationResponse(BaseModel):
    id: str
    name: str
    status: MigrationStatusEnum
    dry_run: bool
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    steps: List[MigrationStepResponse] = Field(default_factory=list)
    total_records_processed: int = 0
    total_records_created: int = 0
    total_records_updated: int = 0
    total_records_skipped: int = 0
    total_records_failed: int = 0
    identifier_counts: Dict[str, int] = Field(default_factory=dict)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    report_path: Optional[str] = None


class MigrationListResponse(BaseModel):
    migrations: List[MigrationResponse]
    total: int
