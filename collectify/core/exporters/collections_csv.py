"""Render exported collections as an importable collection CSV."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..canonical.entities import CSV_COLUMNS
from ..collections.exporter import export_collections, fetch_collection_product_ids
from ..shopify.client import AdminClient
from .utils import collections_export_filename, rows_to_csv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportedCsv:
    csv_bytes: bytes
    filename: str
    total_count: int
    truncated: bool = False
    warnings: list[str] = field(default_factory=list)


def _clean(value: Any) -> str:
    return str(value or "").strip()


def _condition_object_id(rule: dict[str, Any]) -> str:
    """Metafield definition or taxonomy category id behind a rule, if any."""
    if rule.get("conditionObjectId"):
        return _clean(rule["conditionObjectId"])
    condition_object = rule.get("conditionObject") or {}
    target = condition_object.get("metafieldDefinition") or condition_object.get("value") or {}
    return _clean(target.get("id"))


def _rule_to_csv(rule: dict[str, Any]) -> dict[str, Any]:
    data = {
        "column": rule.get("column"),
        "relation": rule.get("relation"),
        "condition": rule.get("condition") or "",
    }
    condition_object_id = _condition_object_id(rule)
    if condition_object_id:
        data["conditionObjectId"] = condition_object_id
    return data


def collection_to_csv_row(node: dict[str, Any], product_ids: Iterable[str] = ()) -> dict[str, str]:
    rule_set = node.get("ruleSet") or None
    image = node.get("image") or {}
    seo = node.get("seo") or {}
    row = {column: "" for column in CSV_COLUMNS}
    row.update(
        {
            "id": _clean(node.get("id")),
            "title": _clean(node.get("title")),
            "handle": _clean(node.get("handle")),
            "descriptionHtml": str(node.get("descriptionHtml") or ""),
            "sortOrder": _clean(node.get("sortOrder")),
            "imageUrl": _clean(image.get("url")),
            "imageAlt": _clean(image.get("altText")),
            "seoTitle": _clean(seo.get("title")),
            "seoDescription": _clean(seo.get("description")),
            "templateSuffix": _clean(node.get("templateSuffix")),
        }
    )
    if rule_set:
        rules = [_rule_to_csv(rule) for rule in rule_set.get("rules") or []]
        row["type"] = "smart"
        row["rules"] = json.dumps(rules, ensure_ascii=False, separators=(",", ":"))
        row["appliedDisjunctively"] = "true" if rule_set.get("appliedDisjunctively") else "false"
    else:
        row["type"] = "manual"
        row["products"] = ",".join(product_ids)
    return row


def collections_to_csv(
    nodes: list[dict[str, Any]],
    product_ids: dict[str, list[str]] | None = None,
) -> str:
    lookup = product_ids or {}
    rows = [collection_to_csv_row(node, lookup.get(str(node.get("id")), [])) for node in nodes]
    return rows_to_csv(rows, CSV_COLUMNS)


def unimportable_collections(
    nodes: list[dict[str, Any]],
    product_ids: dict[str, list[str]],
) -> list[str]:
    """Warnings for manual collections whose exported row will not re-import."""
    warnings: list[str] = []
    for node in nodes:
        if node.get("ruleSet") or product_ids.get(str(node.get("id"))):
            continue
        title = _clean(node.get("title"))
        collection_id = _clean(node.get("id"))
        warnings.append(
            f'Collection "{title}" ({collection_id}) has no products '
            "and will not re-import as a manual collection"
        )
    return warnings


def export_collections_csv(
    client: AdminClient,
    *,
    limit: int = 1000,
    query: str | None = None,
) -> ExportedCsv:
    """Export collections to CSV, including product ids of manual collections.

    Manual collections need their product list for the file to re-import,
    which costs one extra query per manual collection.
    """
    result = export_collections(client, limit=limit, query=query)
    product_ids = {
        str(node["id"]): fetch_collection_product_ids(client, str(node["id"]))
        for node in result.collections
        if node.get("id") and not node.get("ruleSet")
    }
    content = collections_to_csv(result.collections, product_ids)
    warnings = unimportable_collections(result.collections, product_ids)
    for message in warnings:
        logger.warning("Export for %s: %s", client.shop, message)
    return ExportedCsv(
        csv_bytes=content.encode("utf-8"),
        filename=collections_export_filename(client.shop),
        total_count=result.total_count,
        truncated=result.truncated,
        warnings=warnings,
    )


__all__ = [
    "ExportedCsv",
    "collection_to_csv_row",
    "collections_to_csv",
    "export_collections_csv",
    "unimportable_collections",
]
