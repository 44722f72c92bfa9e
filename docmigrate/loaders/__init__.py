"""Writers for the target store."""

from .base import BaseLoader
from .firestore_loader import FirestoreLoader
from .json_loader import JSONLoader

__all__ = [
    "BaseLoader",
    "FirestoreLoader",
    "JSONLoader",
]
