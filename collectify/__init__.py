"""Public package entrypoint for Collectify.

This package provides a stable import surface for the collection
import/export core, plus the CLI and FastAPI server adapters.
"""

from importlib.metadata import PackageNotFoundError, version
from typing import Any

_LAZY_EXPORTS: dict[str, tuple[str, str]] = {
    "CollectionRow": ("collectify.core", "CollectionRow"),
    "app": ("collectify.server.main", "app"),
    "create_app": ("collectify.server.main", "create_app"),
    "export_collections": ("collectify.core", "export_collections"),
    "import_collections": ("collectify.core", "import_collections"),
    "parse_collection_csv": ("collectify.core", "parse_collection_csv"),
    "start_bulk_import": ("collectify.core", "start_bulk_import"),
}

try:
    __version__ = version("collectify")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "CollectionRow",
    "__version__",
    "app",
    "create_app",
    "export_collections",
    "import_collections",
    "parse_collection_csv",
    "start_bulk_import",
]


def __getattr__(name: str) -> Any:
    target = _LAZY_EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attribute_name = target
    module = __import__(module_name, fromlist=[attribute_name])
    value = getattr(module, attribute_name)
    globals()[name] = value
    return value
