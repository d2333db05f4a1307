"""Service layer for the migration application."""

from .comparison import ComparisonResult, compare_collection
from .images import ImageMigrator
from .matcher import ReconciliationMatcher, TargetIndex
from .richtext import text_to_lexical
from .slugs import normalize_key, sanitize_slug
from .transformer import TransformEngine
from .validator import RecordValidator

__all__ = [
    "ComparisonResult",
    "compare_collection",
    "ImageMigrator",
    "ReconciliationMatcher",
    "TargetIndex",
    "text_to_lexical",
    "normalize_key",
    "sanitize_slug",
    "TransformEngine",
    "RecordValidator",
]
