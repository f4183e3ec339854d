"""Synchronous CSV import: validate every row, then create them one by one."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ..importers.csv import ParsedCsv, parse_collection_csv
from ..shopify.client import AdminClient, ShopifyAPIError
from ..validate.report import ValidationReport
from ..validate.rules import validate_collection_rows
from .create import create_collection
from .mapping import map_row_to_input

logger = logging.getLogger(__name__)

DRY_RUN_MESSAGE = "Valid - would be created"
CREATED_MESSAGE = "Collection created successfully"


@dataclass
class RowResult:
    row: int
    title: str
    status: str
    message: str
    collection_id: str | None = None
    warnings: list[str] = field(default_factory=list)
    input: dict[str, Any] | None = None
    source_id: str | None = None
    published: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "row": self.row,
            "title": self.title,
            "status": self.status,
            "message": self.message,
            "warnings": list(self.warnings),
        }
        if self.collection_id:
            data["collectionId"] = self.collection_id
        if self.source_id:
            data["sourceId"] = self.source_id
        if self.published is not None:
            data["published"] = self.published
        return data


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    errors: int = 0
    results: list[RowResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return self.errors == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "dryRun": self.dry_run,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
            "results": [result.to_dict() for result in self.results],
            "warnings": list(self.warnings),
        }


class ImportValidationError(ValueError):
    """At least one row failed validation; nothing was sent to Shopify."""

    def __init__(self, report: ValidationReport, *, parse_warnings: list[str] | None = None):
        self.report = report
        self.parse_warnings = list(parse_warnings or [])
        super().__init__(f"Validation failed with {len(report.errors)} error(s)")

    def to_dict(self) -> dict[str, Any]:
        errors = self.report.errors
        return {
            "success": False,
            "created": 0,
            "updated": 0,
            "errors": len(errors),
            "results": [
                {
                    "row": issue.row or 0,
                    "title": "",
                    "status": "error",
                    "message": issue.message,
                    "code": issue.code,
                    "field": issue.field,
                }
                for issue in errors
            ],
            "warnings": [*self.parse_warnings, *(issue.message for issue in self.report.warnings)],
            "error": "Validation failed",
        }


def _coerce_parsed(csv_input: ParsedCsv | bytes | str | Path) -> ParsedCsv:
    if isinstance(csv_input, ParsedCsv):
        return csv_input
    return parse_collection_csv(csv_input)


def _row_warnings(report: ValidationReport, row: int) -> list[str]:
    return [issue.message for issue in report.warnings if issue.row == row]


def validate_import(csv_input: ParsedCsv | bytes | str | Path) -> tuple[ParsedCsv, ValidationReport]:
    """Parse and validate; raises ``ValueError`` when the file has no data rows."""
    parsed = _coerce_parsed(csv_input)
    if not parsed.rows:
        raise ValueError("No valid rows found in CSV")
    return parsed, validate_collection_rows(parsed.rows)


def preview_import(csv_input: ParsedCsv | bytes | str | Path) -> dict[str, Any]:
    """Report what an import would do without touching Shopify."""
    parsed, report = validate_import(csv_input)
    invalid_rows = {issue.row for issue in report.errors}
    rows: list[dict[str, Any]] = []
    warnings = list(parsed.warnings)
    for row in parsed.rows:
        mapped = map_row_to_input(row)
        row_warnings = [*_row_warnings(report, row.row_number), *mapped.warnings]
        warnings.extend(row_warnings)
        rows.append(
            {
                "row": row.row_number,
                "title": row.title,
                "type": row.type,
                "sourceId": row.id or None,
                "published": row.published,
                "valid": row.row_number not in invalid_rows,
                "input": mapped.input,
                "warnings": row_warnings,
            }
        )
    return {
        "valid": report.valid,
        "totalRows": len(parsed.rows),
        "validRows": sum(1 for row in rows if row["valid"]),
        "invalidRows": len(invalid_rows),
        "errors": [issue.message for issue in report.errors],
        "warnings": warnings,
        "unknownHeaders": list(parsed.unknown_headers),
        "rows": rows,
    }


def import_collections(
    client: AdminClient | None,
    csv_input: ParsedCsv | bytes | str | Path,
    *,
    dry_run: bool = False,
    on_row: Callable[[RowResult], None] | None = None,
) -> ImportResult:
    """Import every row of a collection CSV.

    All rows are validated first; any error raises
    :class:`ImportValidationError` before a single remote call.  After that,
    rows are created strictly in file order and one failing row does not stop
    the others.  Earlier successes are never rolled back.
    """
    parsed, report = validate_import(csv_input)
    if not report.valid:
        raise ImportValidationError(report, parse_warnings=parsed.warnings)
    if client is None and not dry_run:
        raise ValueError("A Shopify client is required unless dry_run is set")

    result = ImportResult(dry_run=dry_run, warnings=list(parsed.warnings))
    for row in parsed.rows:
        mapped = map_row_to_input(row)
        row_result = RowResult(
            row=row.row_number,
            title=row.title,
            status="success",
            message=DRY_RUN_MESSAGE,
            warnings=[*_row_warnings(report, row.row_number), *mapped.warnings],
            input=mapped.input,
            source_id=row.id or None,
            published=row.published,
        )
        if not dry_run:
            try:
                collection = create_collection(client, mapped.input)
            except ShopifyAPIError as exc:
                logger.warning("Row %s (%s) failed: %s", row.row_number, row.title, exc)
                row_result.status = "error"
                row_result.message = str(exc)
            else:
                row_result.collection_id = collection.get("id")
                row_result.message = CREATED_MESSAGE

        if row_result.status == "success":
            result.created += 1
        else:
            result.errors += 1
        result.warnings.extend(row_result.warnings)
        result.results.append(row_result)
        if on_row is not None:
            on_row(row_result)

    logger.info(
        "Import finished: created=%s errors=%s dry_run=%s",
        result.created,
        result.errors,
        dry_run,
    )
    return result


__all__ = [
    "CREATED_MESSAGE",
    "DRY_RUN_MESSAGE",
    "ImportResult",
    "ImportValidationError",
    "RowResult",
    "import_collections",
    "preview_import",
    "validate_import",
]
