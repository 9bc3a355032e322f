"""Acquisition strategies for registry records."""

from src.nmpa_registry.sources.base import RegistrySource
from src.nmpa_registry.sources.bulk_file import BulkFileSource
from src.nmpa_registry.sources.remote import RemoteRegistrySource

__all__ = [
    "RegistrySource",
    "BulkFileSource",
    "RemoteRegistrySource",
]
