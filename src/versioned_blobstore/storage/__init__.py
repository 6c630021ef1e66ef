"""Object store backends for the versioned layer."""

from .base import ObjectStore
from .factory import make_object_store, make_verifier
from .fs import FilesystemObjectStore
from .memory import InMemoryObjectStore

__all__ = [
    "ObjectStore",
    "FilesystemObjectStore",
    "InMemoryObjectStore",
    "make_object_store",
    "make_verifier",
]
