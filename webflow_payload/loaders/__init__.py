"""Data loaders for target services."""

from .base import BaseLoader
from .payload_loader import PayloadLoader

__all__ = [
    "BaseLoader",
    "PayloadLoader",
]
