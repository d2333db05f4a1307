"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from datetime import datetime
import logging

from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of fetching one collection."""
    collection_id: str
    entity: str
    records: List[SourceRecord] = field(default_factory=list)
    pages: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_extracted(self) -> int:
        return len(self.records)

    @property
    def active_records(self) -> List[SourceRecord]:
        return [r for r in self.records if r.is_active]

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "collection_id": self.collection_id,
            "entity": self.entity,
            "total_extracted": self.total_extracted,
            "active": len(self.active_records),
            "pages": self.pages,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class BaseExtractor(ABC):
    """
    Base class for source extractors.

    Subclasses fetch one page at a time; paging, materialization and
    timing live here.
    """

    def __init__(self, page_size: int = 100):
        """
        Initialize the extractor.

        Args:
            page_size: Items requested per page
        """
        self.page_size = page_size

    @abstractmethod
    def extract_page(
        self,
        collection_id: str,
        entity: str,
        offset: int = 0,
        limit: int = 100
    ) -> List[SourceRecord]:
        """
        Fetch a single page of records.

        Args:
            collection_id: Source collection identifier
            entity: Entity type the records belong to
            offset: Starting offset
            limit: Maximum records to fetch

        Returns:
            List of SourceRecord objects
        """
        pass

    def stream(self, collection_id: str, entity: str) -> Iterator[List[SourceRecord]]:
        """
        Stream records page by page.

        Stops after the first page shorter than the page size. The iterator
        is finite and cannot be restarted.

        Yields:
            Pages of SourceRecord objects
        """
        offset = 0

        while True:
            page = self.extract_page(collection_id, entity, offset=offset, limit=self.page_size)
            if not page:
                break

            yield page
            offset += len(page)

            if len(page) < self.page_size:
                break

    def option_labels(self, collection_id: str) -> Dict[str, Dict[str, str]]:
        """Option field labels by field slug and option id; sources without option fields have none."""
        return {}

    def fetch_all(self, collection_id: str, entity: str) -> List[SourceRecord]:
        """Materialize every record of a collection."""
        records: List[SourceRecord] = []
        for page in self.stream(collection_id, entity):
            records.extend(page)
        return records

    def extract(self, collection_id: str, entity: str) -> ExtractionResult:
        """
        Fetch a whole collection with timing information.

        Errors propagate; a failed fetch never returns partial results.
        """
        result = ExtractionResult(collection_id=collection_id, entity=entity)
        result.started_at = datetime.utcnow()

        for page in self.stream(collection_id, entity):
            result.records.extend(page)
            result.pages += 1

        result.completed_at = datetime.utcnow()
        logger.info(
            f"Fetched {result.total_extracted} {entity} items "
            f"({len(result.active_records)} active) in {result.pages} page(s)"
        )
        return result
