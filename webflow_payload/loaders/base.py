"""Base loader interface for target services."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..models.record import RecordAction, TargetRecord

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Base class for data loaders.

    Loaders read and write documents in the target CMS. In dry-run mode
    reads still go to the target while writes are simulated and hand back
    negative placeholder ids, so later records can still resolve references
    to records that were never really created.
    """

    def __init__(self, target_service: str, dry_run: bool = False):
        """
        Initialize the loader.

        Args:
            target_service: Name of the target service
            dry_run: If True, simulate writes without making changes
        """
        self.target_service = target_service
        self.dry_run = dry_run
        self._next_placeholder_id = -1

    @abstractmethod
    def list_all(self, collection: str) -> List[TargetRecord]:
        """Every document in a collection."""
        pass

    @abstractmethod
    def find(self, collection: str, field: str, value: Any, limit: int = 10) -> List[TargetRecord]:
        """Documents whose ``field`` equals ``value``."""
        pass

    @abstractmethod
    def create(self, collection: str, data: Dict[str, Any]) -> TargetRecord:
        """Create a document and return it with its assigned id."""
        pass

    @abstractmethod
    def update(self, collection: str, target_id: Any, data: Dict[str, Any]) -> TargetRecord:
        """Overwrite the given fields of an existing document."""
        pass

    @abstractmethod
    def find_media(self, filename: str) -> Optional[TargetRecord]:
        """Existing media document with this filename, if any."""
        pass

    @abstractmethod
    def upload_media(self, content: bytes, filename: str, alt: str, content_type: str) -> TargetRecord:
        """Upload a file into the media collection."""
        pass

    @abstractmethod
    def download(self, url: str) -> bytes:
        """Fetch a remote file."""
        pass

    def upsert(
        self,
        collection: str,
        data: Dict[str, Any],
        existing: Optional[TargetRecord] = None,
    ) -> Tuple[TargetRecord, RecordAction]:
        """
        Update ``existing`` with the full mapped field set, or create.

        Args:
            collection: Target collection slug
            data: Mapped document fields
            existing: Reconciled document, None to create

        Returns:
            The written document and what was done
        """
        if existing is not None:
            return self.update(collection, existing.id, data), RecordAction.UPDATED
        return self.create(collection, data), RecordAction.CREATED

    def _placeholder(self, collection: str, data: Dict[str, Any], target_id: Any = None) -> TargetRecord:
        """Document returned by simulated writes."""
        if target_id is None:
            target_id = self._next_placeholder_id
            self._next_placeholder_id -= 1
        return TargetRecord(
            id=target_id,
            collection=collection,
            slug=data.get("slug"),
            fields={**data, "id": target_id},
        )
