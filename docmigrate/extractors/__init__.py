"""Readers for the legacy store."""

from .base import BaseExtractor
from .parse_extractor import ParseExtractor
from .json_extractor import JSONExtractor

__all__ = [
    "BaseExtractor",
    "ParseExtractor",
    "JSONExtractor",
]
