"""Core engine API.

The core layer is framework-agnostic and safe to import from scripts, tests,
CLI commands, and web frontends.
"""

from typing import Any

_LAZY_EXPORTS: dict[str, tuple[str, str]] = {
    "AdminClient": ("collectify.core.shopify.client", "AdminClient"),
    "BulkStatusPoller": ("collectify.core.collections.poller", "BulkStatusPoller"),
    "CollectionRow": ("collectify.core.canonical.entities", "CollectionRow"),
    "ImportResult": ("collectify.core.collections.importer", "ImportResult"),
    "ImportValidationError": ("collectify.core.collections.importer", "ImportValidationError"),
    "ShopifyAPIError": ("collectify.core.shopify.client", "ShopifyAPIError"),
    "ShopifyConfig": ("collectify.core.config", "ShopifyConfig"),
    "ShopifyUserError": ("collectify.core.shopify.client", "ShopifyUserError"),
    "check_usage_limit": ("collectify.core.usage.limiter", "check_usage_limit"),
    "config_from_env": ("collectify.core.config", "config_from_env"),
    "export_collections": ("collectify.core.collections.exporter", "export_collections"),
    "export_collections_csv": ("collectify.core.exporters.collections_csv", "export_collections_csv"),
    "get_bulk_operation": ("collectify.core.collections.bulk", "get_bulk_operation"),
    "get_usage_stats": ("collectify.core.usage.limiter", "get_usage_stats"),
    "import_collections": ("collectify.core.collections.importer", "import_collections"),
    "map_row_to_input": ("collectify.core.collections.mapping", "map_row_to_input"),
    "parse_collection_csv": ("collectify.core.importers.csv", "parse_collection_csv"),
    "preview_import": ("collectify.core.collections.importer", "preview_import"),
    "record_usage": ("collectify.core.usage.limiter", "record_usage"),
    "reserve_usage": ("collectify.core.usage.limiter", "reserve_usage"),
    "start_bulk_import": ("collectify.core.collections.bulk", "start_bulk_import"),
    "validate_collection_rows": ("collectify.core.validate.rules", "validate_collection_rows"),
}

__all__ = sorted(_LAZY_EXPORTS)


def __getattr__(name: str) -> Any:
    target = _LAZY_EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attribute_name = target
    module = __import__(module_name, fromlist=[attribute_name])
    value = getattr(module, attribute_name)
    globals()[name] = value
    return value
