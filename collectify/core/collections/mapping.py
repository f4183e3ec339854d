"""Map parsed CSV rows and form payloads to ``CollectionInput`` dicts."""

from __future__ import annotations

import logging
from typing import Any

from ..canonical.entities import CollectionRow, MappedInput, normalize_enum_token
from ..canonical.helpers import parse_rules_json, to_product_gid
from ..importers.csv import split_tokens

logger = logging.getLogger(__name__)


def rule_to_input(rule: dict[str, Any]) -> dict[str, Any]:
    condition = rule.get("condition")
    data: dict[str, Any] = {
        "column": normalize_enum_token(rule.get("column")),
        "relation": normalize_enum_token(rule.get("relation")),
        "condition": "" if condition is None else str(condition),
    }
    condition_object_id = str(rule.get("conditionObjectId") or "").strip()
    if condition_object_id:
        data["conditionObjectId"] = condition_object_id
    return data


def _product_ids(raw: str, *, prefix: str, warnings: list[str]) -> list[str]:
    ids: list[str] = []
    for token in split_tokens(raw):
        gid = to_product_gid(token)
        if gid is None:
            warnings.append(f"{prefix}Ignored invalid product id '{token}'")
            continue
        if gid not in ids:
            ids.append(gid)
    return ids


def map_row_to_input(row: CollectionRow) -> MappedInput:
    """Build the sparse ``CollectionInput`` for ``row``.

    Optional keys are only present when their source column has a value, and
    the key order is fixed, so mapping the same row twice yields equal dicts
    that serialize identically.
    """
    prefix = f"Row {row.row_number}: " if row.row_number else ""
    warnings: list[str] = []
    data: dict[str, Any] = {"title": row.title.strip()}

    if row.handle:
        data["handle"] = row.handle
    if row.description_html:
        data["descriptionHtml"] = row.description_html
    if row.template_suffix:
        data["templateSuffix"] = row.template_suffix
    if row.sort_order:
        data["sortOrder"] = normalize_enum_token(row.sort_order)

    if row.image_url:
        image = {"src": row.image_url}
        if row.image_alt:
            image["altText"] = row.image_alt
        data["image"] = image

    if row.seo_title or row.seo_description:
        seo: dict[str, str] = {}
        if row.seo_title:
            seo["title"] = row.seo_title
        if row.seo_description:
            seo["description"] = row.seo_description
        data["seo"] = seo

    if row.type == "manual" and row.products:
        product_ids = _product_ids(row.products, prefix=prefix, warnings=warnings)
        if product_ids:
            data["products"] = product_ids
        else:
            warnings.append(f"{prefix}No valid product ids found; collection will be created empty")
    elif row.type == "smart" and row.rules:
        rules, reason = parse_rules_json(row.rules)
        if rules is None:
            logger.warning("Row %s: dropping rule set: %s", row.row_number, reason)
            warnings.append(f"{prefix}Rule set omitted: {reason}")
        else:
            data["ruleSet"] = {
                "appliedDisjunctively": bool(row.applied_disjunctively),
                "rules": [rule_to_input(rule) for rule in rules],
            }

    return MappedInput(input=data, warnings=warnings)


def payload_to_input(payload: dict[str, Any]) -> dict[str, Any]:
    """Sparse ``CollectionInput`` from a validated create-form payload."""
    data: dict[str, Any] = {"title": str(payload.get("title") or "").strip()}
    for key in ("descriptionHtml", "handle", "templateSuffix"):
        value = payload.get(key)
        if value:
            data[key] = value
    if payload.get("sortOrder"):
        data["sortOrder"] = normalize_enum_token(payload["sortOrder"])

    image = payload.get("image")
    if isinstance(image, dict) and image.get("src"):
        mapped_image = {"src": image["src"]}
        alt = image.get("altText") or image.get("alt")
        if alt:
            mapped_image["altText"] = alt
        data["image"] = mapped_image

    seo = payload.get("seo")
    if isinstance(seo, dict):
        mapped_seo = {key: seo[key] for key in ("title", "description") if seo.get(key)}
        if mapped_seo:
            data["seo"] = mapped_seo

    products = payload.get("products") or []
    if products:
        data["products"] = list(products)

    rule_set = payload.get("ruleSet")
    if isinstance(rule_set, dict):
        data["ruleSet"] = {
            "appliedDisjunctively": bool(rule_set.get("appliedDisjunctively", False)),
            "rules": [rule_to_input(rule) for rule in rule_set.get("rules") or []],
        }
    return data


__all__ = ["map_row_to_input", "payload_to_input", "rule_to_input"]
