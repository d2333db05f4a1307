"""Reconciliation of Webflow items against existing Payload documents."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence

from ..models.record import SourceRecord, TargetRecord
from ..models.schema import MatchStrategy
from .slugs import normalize_key, sanitize_slug

logger = logging.getLogger(__name__)

# Names the old scripts wrote when Webflow had none; never a reliable match key.
PLACEHOLDER_NAMES: FrozenSet[str] = frozenset({
    "unknown",
    "unknown contributor",
    "unknown donor",
    "untitled",
    "untitled faq",
    "untitled update",
})


def reference_id(value: Any) -> Any:
    """Relationship values come back populated at depth >= 1; reduce to the id."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _field_key(value: Any) -> str:
    return normalize_key(reference_id(value))


@dataclass
class MatchOutcome:
    """Which target document a source record reconciles to, and how."""
    record: Optional[TargetRecord] = None
    strategy: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.record is not None


class TargetIndex:
    """
    In-memory lookup tables over one Payload collection.

    Built once per step from a full listing and kept current as the run
    creates and updates documents, so two source items that sanitize to the
    same slug reconcile to a single document.
    """

    def __init__(
        self,
        collection: str,
        records: Iterable[TargetRecord] = (),
        key_fields: Sequence[str] = (),
    ):
        self.collection = collection
        self.key_fields = list(key_fields)
        self._records: Dict[Any, TargetRecord] = {}
        self._by_slug: Dict[str, TargetRecord] = {}
        self._by_name: Dict[str, TargetRecord] = {}
        self._by_field: Dict[str, Dict[str, TargetRecord]] = {f: {} for f in self.key_fields}
        for record in records:
            self.add(record)

    def add(self, record: TargetRecord) -> None:
        """Insert or replace a document, dropping keys of its previous version."""
        previous = self._records.get(record.id)
        if previous is not None:
            self._discard_keys(previous)
        self._records[record.id] = record

        slug = normalize_key(record.slug)
        if slug:
            self._by_slug[slug] = record
        name = normalize_key(record.get("name"))
        if name and name not in self._by_name:
            self._by_name[name] = record
        for field_name in self.key_fields:
            key = _field_key(record.get(field_name))
            if key:
                self._by_field[field_name][key] = record

    def _discard_keys(self, record: TargetRecord) -> None:
        tables: List[Dict[str, TargetRecord]] = [self._by_slug, self._by_name, *self._by_field.values()]
        for table in tables:
            for key in [k for k, v in table.items() if v.id == record.id]:
                del table[key]

    def get(self, target_id: Any) -> Optional[TargetRecord]:
        return self._records.get(target_id)

    def by_slug(self, slug: Any) -> Optional[TargetRecord]:
        return self._by_slug.get(normalize_key(slug))

    def by_name(self, name: Any) -> Optional[TargetRecord]:
        return self._by_name.get(normalize_key(name))

    def by_field(self, field_name: str, value: Any) -> Optional[TargetRecord]:
        return self._by_field.get(field_name, {}).get(_field_key(value))

    def find_all(self, criteria: Dict[str, Any]) -> Optional[TargetRecord]:
        """First document whose listed fields all equal the criteria."""
        wanted = {name: _field_key(value) for name, value in criteria.items()}
        for record in self._records.values():
            if all(_field_key(record.get(name)) == key for name, key in wanted.items()):
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TargetRecord]:
        return iter(list(self._records.values()))


class ReconciliationMatcher:
    """
    Decides whether a source record already has a target document.

    Slug strategy cascade, first hit wins:
    1. sanitized slug derived from the item's slug, name or id
    2. case-insensitive display name, unless it is a placeholder
    3. the raw unsanitized slug, then the Webflow id, for documents written
       by older migrations before slugs were sanitized; both sides are
       trimmed and lower-cased first, so "My_Slug" finds a target "my_slug"
    4. no match, the caller creates
    """

    def __init__(
        self,
        index: TargetIndex,
        strategy: MatchStrategy = MatchStrategy.SLUG,
        match_fields: Sequence[str] = (),
        legacy_slugs: bool = True,
        placeholder_names: FrozenSet[str] = PLACEHOLDER_NAMES,
    ):
        self.index = index
        self.strategy = strategy
        self.match_fields = list(match_fields)
        self.legacy_slugs = legacy_slugs
        self.placeholder_names = placeholder_names

    def match(self, source: SourceRecord, data: Optional[Dict[str, Any]] = None) -> MatchOutcome:
        """
        Reconcile one record.

        Args:
            source: Webflow item
            data: Its mapped Payload fields, needed by the field strategies

        Returns:
            MatchOutcome; ``record`` is None when nothing matched
        """
        if self.strategy == MatchStrategy.SLUG:
            return self._match_slug(source)

        data = data or {}
        if self.strategy == MatchStrategy.FIELDS:
            criteria = {name: data.get(name) for name in self.match_fields}
            if any(not _field_key(v) for v in criteria.values()):
                return MatchOutcome()
            record = self.index.find_all(criteria)
            return MatchOutcome(record, "fields") if record else MatchOutcome()

        for name in self.match_fields:
            value = data.get(name)
            if not _field_key(value):
                continue
            record = self.index.by_field(name, value)
            if record:
                return MatchOutcome(record, name)
        return MatchOutcome()

    def _match_slug(self, source: SourceRecord) -> MatchOutcome:
        slug = sanitize_slug(source.slug_source)
        if slug:
            record = self.index.by_slug(slug)
            if record:
                return MatchOutcome(record, "slug")

        name = normalize_key(source.display_name)
        if name and name not in self.placeholder_names:
            record = self.index.by_name(name)
            if record:
                logger.debug(f"Matched {source.id} by name {name!r} (target slug {record.slug!r})")
                return MatchOutcome(record, "name")

        if self.legacy_slugs:
            for candidate in (source.raw_slug, source.id):
                key = normalize_key(candidate)
                if not key or key == slug:
                    continue
                record = self.index.by_slug(key)
                if record:
                    logger.info(f"Matched {source.id} by legacy slug {key!r}")
                    return MatchOutcome(record, "legacy_slug")

        return MatchOutcome()
