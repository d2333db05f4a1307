"""Transformation engine for mapping Webflow items onto Payload documents."""

import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser

from ..exceptions import RecordSkipped
from ..models.schema import (
    EntityMapping,
    FieldMapping,
    ProjectStatus,
    TransformType,
)
from ..models.record import (
    SourceRecord,
    TransformedRecord,
    ValidationError,
)
from ..models.migration import MigrationContext
from .richtext import text_to_lexical
from .slugs import normalize_key, sanitize_slug

logger = logging.getLogger(__name__)

_KNOWN_STATUSES = (
    ProjectStatus.ACTIVE,
    ProjectStatus.COMPLETED,
    ProjectStatus.PAUSED,
    ProjectStatus.ARCHIVED,
)

# Evaluated in order; first keyword hit wins.
_STATUS_KEYWORDS: Sequence[Tuple[Tuple[str, ...], ProjectStatus]] = (
    (("active", "live"), ProjectStatus.ACTIVE),
    (("complete", "done"), ProjectStatus.COMPLETED),
    (("pause", "hold"), ProjectStatus.PAUSED),
    (("archive",), ProjectStatus.ARCHIVED),
)

_POST_LINK_DOMAINS = {
    "x": ("x.com", "twitter.com"),
    "youtube": ("youtube.com", "youtu.be"),
    "reddit": ("reddit.com",),
}
_POST_LINK_LEGACY_FIELDS = {
    "x": "x-post-link",
    "youtube": "youtube-link",
    "reddit": "reddit-link",
}


def classify_status(raw: Any) -> ProjectStatus:
    """
    Map free-text status onto the closed status enum.

    Total over all inputs: anything unrecognized, including empty input,
    comes back as ProjectStatus.UNKNOWN rather than a guessed bucket.
    """
    if raw is None:
        return ProjectStatus.UNKNOWN
    value = str(raw).strip().lower()
    if not value:
        return ProjectStatus.UNKNOWN

    for status in _KNOWN_STATUSES:
        if value == status.value:
            return status

    for keywords, status in _STATUS_KEYWORDS:
        if any(keyword in value for keyword in keywords):
            return status

    return ProjectStatus.UNKNOWN


def normalize_status(
    raw: Any,
    default: Optional[ProjectStatus] = ProjectStatus.ACTIVE,
) -> Optional[ProjectStatus]:
    """classify_status, with UNKNOWN replaced by ``default``."""
    status = classify_status(raw)
    if status == ProjectStatus.UNKNOWN:
        return default
    return status


def classify_post_links(fields: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Split a Webflow post's link into the X, YouTube and Reddit slots.

    Newer items carry a single ``link`` field; older ones carry one field per
    network. A link on an unrecognized domain lands in the X slot.
    """
    links: Dict[str, Optional[str]] = {kind: None for kind in _POST_LINK_DOMAINS}
    legacy = {kind: fields.get(name) or None for kind, name in _POST_LINK_LEGACY_FIELDS.items()}
    link = fields.get("link") or legacy["x"] or legacy["youtube"] or legacy["reddit"]

    if not link:
        return legacy

    lowered = str(link).lower()
    for kind, domains in _POST_LINK_DOMAINS.items():
        if any(domain in lowered for domain in domains):
            links[kind] = link
            return links

    if any(legacy.values()):
        return legacy
    links["x"] = link
    return links


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TransformEngine:
    """
    Engine for transforming Webflow source records to Payload documents.

    Supports:
    - Built-in transformation functions
    - Custom transformation functions
    - Fallback source fields for blank values
    - Reference resolution through the run's identifier maps
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        """
        Initialize the transform engine.

        Args:
            today: Clock used for date fallbacks
        """
        self._today = today or date.today
        self._custom_transforms: Dict[str, Callable] = {}
        self._builtin_transforms = self._register_builtin_transforms()

    def _register_builtin_transforms(self) -> Dict[str, Callable]:
        """Register all built-in transformation functions."""
        return {
            TransformType.DIRECT.value: self._transform_direct,
            TransformType.STRING.value: self._transform_string,
            TransformType.NUMBER.value: self._transform_number,
            TransformType.BOOLEAN.value: self._transform_boolean,
            TransformType.DEFAULT.value: self._transform_default,
            TransformType.SLUG.value: self._transform_slug,
            TransformType.RICHTEXT.value: self._transform_richtext,
            TransformType.STATUS.value: self._transform_status,
            TransformType.ENUM_MAP.value: self._transform_enum_map,
            TransformType.OPTION_LABEL.value: self._transform_option_label,
            TransformType.REFERENCE.value: self._transform_reference,
            TransformType.REFERENCE_ONE.value: self._transform_reference_one,
            TransformType.TAG_LIST.value: self._transform_tag_list,
            TransformType.DATE.value: self._transform_date,
            TransformType.POST_LINK.value: self._transform_post_link,
        }

    def register_transform(self, name: str, func: Callable) -> None:
        """Register a custom transformation function."""
        self._custom_transforms[name] = func

    def transform_record(
        self,
        source: SourceRecord,
        mapping: EntityMapping,
        context: Optional[MigrationContext] = None,
    ) -> TransformedRecord:
        """
        Transform a source record to the target collection format.

        Args:
            source: Webflow item to transform
            mapping: Entity mapping to use
            context: Run context with identifier maps and option labels

        Returns:
            Transformed record; fields whose value resolves to None are omitted

        Raises:
            RecordSkipped: When a transform decides the record must not be written
        """
        context = context or MigrationContext()
        target_data: Dict[str, Any] = {}
        errors: List[ValidationError] = []
        warnings: List[str] = []
        ctx = {
            "context": context,
            "entity": mapping.name,
            "warnings": warnings,
        }

        for field_mapping in mapping.field_mappings:
            try:
                source_value = self._get_source_value(field_mapping, source)

                transform_name = (
                    field_mapping.transform.value
                    if isinstance(field_mapping.transform, TransformType)
                    else field_mapping.transform
                )

                transform_func = (
                    self._custom_transforms.get(transform_name) or
                    self._builtin_transforms.get(transform_name)
                )

                if not transform_func and transform_name == TransformType.CUSTOM.value:
                    func_name = field_mapping.transform_config.get("function")
                    transform_func = self._custom_transforms.get(func_name)

                if transform_func:
                    transformed_value = transform_func(
                        source_value,
                        field_mapping.transform_config,
                        source,
                        ctx,
                    )
                else:
                    transformed_value = source_value
                    warnings.append(f"Unknown transform: {transform_name}, using direct copy")

                if transformed_value is None and field_mapping.default_value is not None:
                    transformed_value = field_mapping.default_value

                if transformed_value is not None:
                    self._set_nested_value(target_data, field_mapping.target_field, transformed_value)

            except RecordSkipped:
                raise
            except Exception as e:
                errors.append(ValidationError(
                    field=field_mapping.target_field,
                    message=f"Transform error: {str(e)}",
                    error_type="transform",
                    value=field_mapping.source_field,
                ))
                logger.error(f"Transform error for {mapping.name}.{field_mapping.target_field} ({source.id}): {e}")

        return TransformedRecord(
            id=source.id,
            entity=mapping.name,
            target_collection=mapping.target_collection,
            data=target_data,
            source_record=source,
            validation_errors=errors,
            warnings=warnings,
        )

    def _get_source_value(self, field_mapping: FieldMapping, source: SourceRecord) -> Any:
        """Read the mapped field, walking ``fallback_fields`` while the value is blank."""
        paths = []
        if field_mapping.source_field:
            paths.append(field_mapping.source_field)
        paths.extend(field_mapping.transform_config.get("fallback_fields", []))

        value = None
        for path in paths:
            value = self._read_path(source, path)
            if not _is_blank(value):
                return value
        return value

    def _read_path(self, source: SourceRecord, path: str) -> Any:
        # "$" paths address item metadata instead of fieldData
        if path.startswith("$"):
            attr = path[1:]
            if attr == "id":
                return source.id
            if attr == "slug":
                return source.slug_source
            return (source.raw_data or {}).get(attr)
        return source.get_field(path)

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested value using dot notation."""
        parts = path.split(".")
        current = data

        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    def _warn(self, ctx: Dict[str, Any], message: str) -> None:
        ctx["warnings"].append(message)
        logger.warning(message)

    # Built-in transform functions

    def _transform_direct(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Direct copy without transformation."""
        return value

    def _transform_string(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Trimmed string; blank becomes None so defaults apply."""
        if _is_blank(value):
            return None
        return str(value).strip()

    def _transform_number(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Coerce to int or float."""
        if _is_blank(value):
            return None
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            self._warn(ctx, f"{ctx['entity']} {record.id}: not a number: {value!r}")
            return None
        return int(number) if number.is_integer() else number

    def _transform_boolean(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Coerce to bool."""
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)

    def _transform_default(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Return default value if source is blank."""
        if _is_blank(value):
            return config.get("value")
        return value

    def _transform_slug(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Sanitized slug derived from the item's slug, name or id."""
        slug = sanitize_slug(value if not _is_blank(value) else record.slug_source)
        if not slug:
            raise RecordSkipped(f"slug {record.slug_source!r} is empty after sanitization")
        return slug

    def _transform_richtext(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Plain text to a Lexical document. Never returns None."""
        if isinstance(value, dict) and "root" in value:
            return value
        return text_to_lexical(value)

    def _transform_status(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Normalize project status, surfacing unrecognized values."""
        default = ProjectStatus(config.get("default", ProjectStatus.ACTIVE.value))
        status = classify_status(value)
        if status != ProjectStatus.UNKNOWN:
            return status.value
        if _is_blank(value):
            return default.value

        context: MigrationContext = ctx["context"]
        if not context.default_unknown_status_to_active:
            raise RecordSkipped(f"unrecognized status {value!r}")
        self._warn(ctx, f"{ctx['entity']} {record.id}: unrecognized status {value!r}, using {default.value!r}")
        return default.value

    def _transform_enum_map(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Map value using a case-insensitive lookup table."""
        if _is_blank(value):
            return config.get("default")
        mapping = {normalize_key(k): v for k, v in config.get("mapping", {}).items()}
        return mapping.get(normalize_key(value), config.get("default"))

    def _transform_option_label(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """
        Resolve a Webflow option id to its label, then optionally bucket it.

        Config:
            field: option field slug (defaults to the mapped source field)
            mapping: exact label -> value table
            keywords: list of [substrings, value] rules, first hit wins
            default: value when nothing matches
        """
        context: MigrationContext = ctx["context"]
        field_slug = config.get("field")
        label = context.option_label(ctx["entity"], field_slug, value) if field_slug else None
        if label is None and not _is_blank(value):
            logger.debug(f"No option label for {field_slug}={value!r}, using raw value")
            label = str(value)

        if "mapping" not in config and "keywords" not in config:
            return label if label is not None else config.get("default")

        key = normalize_key(label)
        mapping = {normalize_key(k): v for k, v in config.get("mapping", {}).items()}
        if key and key in mapping:
            return mapping[key]
        for keywords, result in config.get("keywords", []):
            if key and any(keyword in key for keyword in keywords):
                return result
        return config.get("default")

    def _collect_reference_ids(self, value: Any, config: Dict, record: SourceRecord) -> List[str]:
        fields = config.get("fields")
        values = [record.get_field(f) for f in fields] if fields else [value]

        ids: List[str] = []
        for item in values:
            if _is_blank(item):
                continue
            for source_id in (item if isinstance(item, list) else [item]):
                if not _is_blank(source_id) and str(source_id) not in ids:
                    ids.append(str(source_id))
        return ids

    def _resolve_references(self, ids: List[str], config: Dict, record: SourceRecord, ctx: Dict) -> List[Any]:
        context: MigrationContext = ctx["context"]
        entity = config["entity"]
        resolved = []
        for source_id in ids:
            target_id = context.resolve(entity, source_id)
            if target_id is None:
                self._warn(ctx, f"{ctx['entity']} {record.id}: dropping unresolved {entity} reference {source_id}")
                continue
            if target_id not in resolved:
                resolved.append(target_id)
        return resolved

    def _transform_reference(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Resolve a list of source ids; an empty result omits the field."""
        resolved = self._resolve_references(self._collect_reference_ids(value, config, record), config, record, ctx)
        if not resolved and config.get("required"):
            raise RecordSkipped(f"no resolvable {config['entity']} reference")
        return resolved or None

    def _transform_reference_one(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Resolve a single source id."""
        resolved = self._resolve_references(self._collect_reference_ids(value, config, record), config, record, ctx)
        if not resolved and config.get("required"):
            raise RecordSkipped(f"no resolvable {config['entity']} reference")
        return resolved[0] if resolved else None

    def _transform_tag_list(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """List or comma separated string to Payload array rows."""
        key = config.get("key", "tag")
        if _is_blank(value):
            return []
        items = value if isinstance(value, list) else str(value).split(",")
        return [{key: str(item).strip()} for item in items if not _is_blank(item)]

    def _transform_date(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """Parse into YYYY-MM-DD, falling back to today plus an optional offset."""
        fallback = self._today() + timedelta(days=config.get("fallback_offset_days", 0))
        if _is_blank(value):
            return fallback.isoformat()
        try:
            return date_parser.parse(str(value)).date().isoformat()
        except (ValueError, OverflowError):
            self._warn(ctx, f"{ctx['entity']} {record.id}: invalid date {value!r}, using {fallback.isoformat()}")
            return fallback.isoformat()

    def _transform_post_link(self, value: Any, config: Dict, record: SourceRecord, ctx: Dict) -> Any:
        """One slot of classify_post_links."""
        return classify_post_links(record.fields).get(config.get("kind", "x"))
