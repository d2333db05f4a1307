"""Post-migration audit comparing Webflow collections with Payload."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ..models.migration import EntityType
from ..models.record import SourceRecord, TargetRecord
from .slugs import normalize_key, sanitize_slug
from .transformer import classify_post_links

logger = logging.getLogger(__name__)

POST_LINK_FIELDS = ("xPostLink", "youtubeLink", "redditLink")


@dataclass
class ComparisonResult:
    """Counts and key differences for one collection."""
    entity: str
    webflow_active: int = 0
    payload_total: int = 0
    missing_in_payload: List[str] = field(default_factory=list)
    extra_in_payload: List[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.missing_in_payload and not self.extra_in_payload

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity": self.entity,
            "webflow_active": self.webflow_active,
            "payload_total": self.payload_total,
            "missing_in_payload": self.missing_in_payload,
            "extra_in_payload": self.extra_in_payload,
            "in_sync": self.in_sync,
        }


def _slug_key(source: SourceRecord) -> Set[str]:
    slug = sanitize_slug(source.slug_source)
    return {slug} if slug else set()


def _field_key(*names: str) -> Callable[[SourceRecord], Set[str]]:
    def key(source: SourceRecord) -> Set[str]:
        for name in names:
            value = normalize_key(source.fields.get(name))
            if value:
                return {value}
        return set()
    return key


def _post_key(source: SourceRecord) -> Set[str]:
    return {normalize_key(link) for link in classify_post_links(source.fields).values() if link}


def _target_field_key(*names: str) -> Callable[[TargetRecord], Set[str]]:
    def key(target: TargetRecord) -> Set[str]:
        return {normalize_key(target.get(name)) for name in names if target.get(name) not in (None, "")}
    return key


SOURCE_KEYS: Dict[EntityType, Callable[[SourceRecord], Set[str]]] = {
    EntityType.CONTRIBUTORS: _slug_key,
    EntityType.PROJECTS: _slug_key,
    EntityType.FAQS: _field_key("question", "name"),
    EntityType.POSTS: _post_key,
    EntityType.UPDATES: _field_key("title", "name"),
    EntityType.MATCHING_DONORS: lambda source: {normalize_key(source.id)},
}

TARGET_KEYS: Dict[EntityType, Callable[[TargetRecord], Set[str]]] = {
    EntityType.CONTRIBUTORS: _target_field_key("slug"),
    EntityType.PROJECTS: _target_field_key("slug"),
    EntityType.FAQS: _target_field_key("question"),
    EntityType.POSTS: _target_field_key(*POST_LINK_FIELDS),
    EntityType.UPDATES: _target_field_key("title"),
    EntityType.MATCHING_DONORS: _target_field_key("webflowId"),
}


def compare_collection(
    entity: str,
    sources: Iterable[SourceRecord],
    targets: Iterable[TargetRecord],
) -> ComparisonResult:
    """
    Compare the active Webflow items of an entity with the Payload documents.

    Args:
        entity: Entity type name
        sources: Webflow items, drafts and archived included
        targets: Payload documents of the matching collection

    Returns:
        ComparisonResult listing keys present on only one side
    """
    entity_type = EntityType(entity)
    source_key = SOURCE_KEYS[entity_type]
    target_key = TARGET_KEYS[entity_type]

    active = [s for s in sources if s.is_active]
    target_list = list(targets)
    result = ComparisonResult(
        entity=entity_type.value,
        webflow_active=len(active),
        payload_total=len(target_list),
    )

    target_keys: Set[str] = set()
    for target in target_list:
        target_keys |= target_key(target)

    source_keys: Set[str] = set()
    for source in active:
        keys = source_key(source)
        source_keys |= keys
        if keys and not keys & target_keys:
            result.missing_in_payload.append(_label(source, keys))

    for target in target_list:
        keys = target_key(target)
        if keys and not keys & source_keys:
            result.extra_in_payload.append(sorted(keys)[0])

    logger.info(
        f"{entity_type.value}: {result.webflow_active} active in Webflow, "
        f"{result.payload_total} in Payload, {len(result.missing_in_payload)} missing, "
        f"{len(result.extra_in_payload)} extra"
    )
    return result


def _label(source: SourceRecord, keys: Set[str]) -> str:
    return source.display_name or sorted(keys)[0]


def format_comparison(results: List[ComparisonResult], limit: Optional[int] = 10) -> str:
    """Plain-text table of comparison results for the CLI."""
    lines = [f"{'Collection':<18}{'Webflow':>10}{'Payload':>10}{'Missing':>10}{'Extra':>8}"]
    for result in results:
        lines.append(
            f"{result.entity:<18}{result.webflow_active:>10}{result.payload_total:>10}"
            f"{len(result.missing_in_payload):>10}{len(result.extra_in_payload):>8}"
        )
    for result in results:
        for title, keys in (("missing in Payload", result.missing_in_payload), ("extra in Payload", result.extra_in_payload)):
            if not keys:
                continue
            shown = keys if limit is None else keys[:limit]
            lines.append(f"\n{result.entity} {title}:")
            lines.extend(f"  - {key}" for key in shown)
            if len(keys) > len(shown):
                lines.append(f"  ... and {len(keys) - len(shown)} more")
    return "\n".join(lines)
