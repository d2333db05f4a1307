"""Data extractors for source CMS collections."""

from .base import BaseExtractor, ExtractionResult
from .webflow_extractor import WebflowExtractor

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "WebflowExtractor",
]
