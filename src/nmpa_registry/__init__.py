"""NMPA registry ingestor package namespace."""

from importlib import import_module
from typing import Any

__all__ = [
    "BatchImporter",
    "FieldMapper",
    "PaginationOrchestrator",
    "RegistrationStore",
    "RegistryConfig",
    "RegistryPipeline",
    "StatisticsReporter",
]

_EXPORTS = {
    "BatchImporter": "src.nmpa_registry.importer",
    "FieldMapper": "src.nmpa_registry.mapper",
    "PaginationOrchestrator": "src.nmpa_registry.pagination",
    "RegistrationStore": "src.nmpa_registry.database",
    "RegistryConfig": "src.nmpa_registry.config",
    "RegistryPipeline": "src.nmpa_registry.runner",
    "StatisticsReporter": "src.nmpa_registry.statistics",
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
