"""Service package public API.

Schemas import the totals engine from this package, and the services import
the schemas, so implementations are loaded lazily on first attribute access
instead of at package import time.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "DataService",
    "DocumentService",
    "EmailDispatcher",
    "PdfExporter",
    "PreferenceService",
    "ProfileService",
]

_SERVICE_MODULES = {
    "DataService": "data_export",
    "DocumentService": "documents",
    "EmailDispatcher": "email",
    "PdfExporter": "pdf",
    "PreferenceService": "preferences",
    "ProfileService": "profiles",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .data_export import DataService as DataService
    from .documents import DocumentService as DocumentService
    from .email import EmailDispatcher as EmailDispatcher
    from .pdf import PdfExporter as PdfExporter
    from .preferences import PreferenceService as PreferenceService
    from .profiles import ProfileService as ProfileService
