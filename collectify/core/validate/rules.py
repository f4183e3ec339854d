"""Row-level and payload-level collection validation rules."""

from __future__ import annotations

from typing import Any, Iterable

from ..canonical.entities import (
    COLLECTION_TYPES,
    CONDITIONLESS_RELATIONS,
    HANDLE_MAX_LENGTH,
    NUMERIC_RELATIONS,
    NUMERIC_RULE_COLUMNS,
    RULE_COLUMNS,
    RULE_RELATIONS,
    SORT_ORDERS,
    TITLE_MAX_LENGTH,
    CollectionRow,
    normalize_enum_token,
)
from ..canonical.helpers import is_number, is_valid_handle, parse_rules_json, suggest_handle
from .report import ValidationIssue, ValidationReport


def validate_rule(rule: Any, *, index: int, prefix: str = "", row: int | None = None) -> list[ValidationIssue]:
    """Check one ``{column, relation, condition}`` rule.

    ``index`` is 1-based.  ``prefix`` is prepended to every message
    (``"Row 4: "`` for CSV rows).
    """
    issues: list[ValidationIssue] = []
    label = f"{prefix}Rule {index}"
    if not isinstance(rule, dict):
        return [
            ValidationIssue(
                code="invalid_rule",
                message=f"{label}: must be an object with column, relation and condition",
                field="rules",
                row=row,
            )
        ]

    column = normalize_enum_token(rule.get("column"))
    relation = normalize_enum_token(rule.get("relation"))
    condition = str(rule.get("condition") if rule.get("condition") is not None else "").strip()

    if column not in RULE_COLUMNS:
        issues.append(
            ValidationIssue(
                code="invalid_rule_column",
                message=f"{label}: Invalid column. Must be one of: {', '.join(RULE_COLUMNS)}",
                field="rules.column",
                row=row,
            )
        )
    if relation not in RULE_RELATIONS:
        issues.append(
            ValidationIssue(
                code="invalid_rule_relation",
                message=f"{label}: Invalid relation. Must be one of: {', '.join(RULE_RELATIONS)}",
                field="rules.relation",
                row=row,
            )
        )
    if not condition and relation not in CONDITIONLESS_RELATIONS:
        issues.append(
            ValidationIssue(
                code="missing_rule_condition",
                message=f"{label}: Condition is required for this relation type",
                field="rules.condition",
                row=row,
            )
        )
    elif (
        condition
        and relation in NUMERIC_RELATIONS
        and column in NUMERIC_RULE_COLUMNS
        and not is_number(condition)
    ):
        issues.append(
            ValidationIssue(
                code="non_numeric_rule_condition",
                message=f"{label}: Condition must be a number for {column} {relation}",
                field="rules.condition",
                row=row,
            )
        )
    return issues


def validate_collection_row(row: CollectionRow) -> ValidationReport:
    n = row.row_number
    prefix = f"Row {n}: "
    issues: list[ValidationIssue] = []

    def error(code: str, message: str, field: str) -> None:
        issues.append(ValidationIssue(code=code, message=prefix + message, field=field, row=n))

    title = row.title or ""
    if not title.strip():
        error("missing_title", "Title is required", "title")
    elif len(title) > TITLE_MAX_LENGTH:
        error("title_too_long", f"Title must be {TITLE_MAX_LENGTH} characters or less", "title")

    if row.type not in COLLECTION_TYPES:
        error("invalid_type", f"Type must be 'manual' or 'smart' (got '{row.type}')", "type")
    elif row.type == "manual" and not row.products.strip():
        error("missing_products", "Manual collections must have products", "products")
    elif row.type == "smart":
        if not row.rules.strip():
            error("missing_rules", "Smart collections must have rules", "rules")
        else:
            rules, _reason = parse_rules_json(row.rules)
            # Unparseable rules are reported by the mapper as a row warning.
            for index, rule in enumerate(rules or [], start=1):
                issues.extend(validate_rule(rule, index=index, prefix=prefix, row=n))

    if row.sort_order and normalize_enum_token(row.sort_order) not in SORT_ORDERS:
        error("invalid_sort_order", "Invalid sort order", "sortOrder")

    if row.handle and not is_valid_handle(row.handle):
        issues.append(
            ValidationIssue(
                code="invalid_handle",
                message=(
                    f"{prefix}Handle '{row.handle}' should contain only lowercase letters, "
                    f"digits and hyphens (suggested: '{suggest_handle(row.handle)}')"
                ),
                severity="warning",
                field="handle",
                row=n,
            )
        )

    return ValidationReport.from_issues(issues)


def validate_collection_rows(rows: Iterable[CollectionRow]) -> ValidationReport:
    issues: list[ValidationIssue] = []
    for row in rows:
        issues.extend(validate_collection_row(row).issues)
    return ValidationReport.from_issues(issues)


def validate_collection_input(payload: dict[str, Any]) -> ValidationReport:
    """Validate a JSON collection payload submitted through the create form."""
    issues: list[ValidationIssue] = []

    def error(code: str, message: str, field: str | None = None) -> None:
        issues.append(ValidationIssue(code=code, message=message, field=field))

    title = str(payload.get("title") or "")
    if not title.strip():
        error("missing_title", "Title is required", "title")
    elif len(title) > TITLE_MAX_LENGTH:
        error("title_too_long", f"Title must be {TITLE_MAX_LENGTH} characters or less", "title")

    handle = str(payload.get("handle") or "")
    if len(handle) > HANDLE_MAX_LENGTH:
        error("handle_too_long", f"Handle must be {HANDLE_MAX_LENGTH} characters or less", "handle")

    sort_order = payload.get("sortOrder")
    if sort_order and normalize_enum_token(sort_order) not in SORT_ORDERS:
        error(
            "invalid_sort_order",
            f"Invalid sort order. Must be one of: {', '.join(SORT_ORDERS)}",
            "sortOrder",
        )

    rule_set = payload.get("ruleSet")
    if rule_set is not None:
        rules = rule_set.get("rules") if isinstance(rule_set, dict) else None
        if not rules:
            error("missing_rules", "Smart collections must have at least one rule", "ruleSet.rules")
        for index, rule in enumerate(rules or [], start=1):
            issues.extend(validate_rule(rule, index=index))

    products = payload.get("products") or []
    if products and rule_set is not None:
        error(
            "products_and_rules",
            "Cannot specify both products and rules. Choose either manual collection "
            "(products) or smart collection (rules)",
        )
    if not products and rule_set is None:
        error(
            "missing_membership",
            "Must specify either products for manual collection or rules for smart collection",
        )

    return ValidationReport.from_issues(issues)


__all__ = [
    "validate_collection_input",
    "validate_collection_row",
    "validate_collection_rows",
    "validate_rule",
]
