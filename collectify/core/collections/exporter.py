"""Cursor-paginated collection export."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..shopify.client import AdminClient
from ..shopify.queries import COLLECTION_PRODUCT_IDS, COLLECTIONS_PAGE

logger = logging.getLogger(__name__)

EXPORT_PAGE_SIZE = 50
EXPORT_MAX_RECORDS = 1000
PRODUCT_PAGE_SIZE = 250

_COLLECTION_TYPE_QUERIES = {
    "manual": "collection_type:custom",
    "smart": "collection_type:smart",
}


@dataclass
class ExportResult:
    collections: list[dict[str, Any]] = field(default_factory=list)
    truncated: bool = False

    @property
    def total_count(self) -> int:
        return len(self.collections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "collections": self.collections,
            "totalCount": self.total_count,
            "truncated": self.truncated,
        }


def build_search_query(collection_type: str | None = None, *, published_only: bool = False) -> str | None:
    """Shopify search syntax for the export filters (``None`` = everything)."""
    terms: list[str] = []
    type_query = _COLLECTION_TYPE_QUERIES.get(str(collection_type or "").strip().lower())
    if type_query:
        terms.append(type_query)
    if published_only:
        terms.append("published_status:published")
    return " AND ".join(terms) or None


def export_collections(
    client: AdminClient,
    *,
    limit: int = EXPORT_MAX_RECORDS,
    query: str | None = None,
    page_size: int = EXPORT_PAGE_SIZE,
) -> ExportResult:
    """Fetch collections page by page, stopping at ``limit`` records.

    When the cap stops pagination while Shopify still reports more pages the
    result is flagged ``truncated``.
    """
    limit = max(1, min(int(limit), EXPORT_MAX_RECORDS))
    result = ExportResult()
    cursor: str | None = None

    while True:
        variables: dict[str, Any] = {
            "first": min(page_size, limit - len(result.collections)),
            "after": cursor,
        }
        if query:
            variables["query"] = query
        data = client.graphql(COLLECTIONS_PAGE, variables)
        connection = data.get("collections") or {}
        nodes = connection.get("nodes") or []
        page_info = connection.get("pageInfo") or {}

        room = limit - len(result.collections)
        result.collections.extend(nodes[:room])
        has_next_page = bool(page_info.get("hasNextPage"))

        if len(nodes) > room or (has_next_page and len(result.collections) >= limit):
            result.truncated = True
            logger.warning(
                "Export for %s stopped at %s collections; more are available",
                client.shop,
                limit,
            )
            break
        if not has_next_page or not nodes:
            break
        cursor = page_info.get("endCursor")

    logger.info("Exported %s collections for %s", result.total_count, client.shop)
    return result


def fetch_collection_product_ids(client: AdminClient, collection_id: str) -> list[str]:
    ids: list[str] = []
    cursor: str | None = None
    while True:
        data = client.graphql(
            COLLECTION_PRODUCT_IDS,
            {"id": collection_id, "first": PRODUCT_PAGE_SIZE, "after": cursor},
        )
        products = (data.get("collection") or {}).get("products") or {}
        ids.extend(
            str(edge["node"]["id"])
            for edge in products.get("edges") or []
            if (edge.get("node") or {}).get("id")
        )
        page_info = products.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            return ids
        cursor = page_info.get("endCursor")


__all__ = [
    "EXPORT_MAX_RECORDS",
    "EXPORT_PAGE_SIZE",
    "ExportResult",
    "build_search_query",
    "export_collections",
    "fetch_collection_product_ids",
]
