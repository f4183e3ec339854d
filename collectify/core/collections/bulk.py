"""Asynchronous bulk import through Shopify's bulk mutation runner.

Flow: validated rows -> JSONL (one ``{"input": ...}`` per line) ->
``stagedUploadsCreate`` -> multipart upload -> ``bulkOperationRunMutation``.
The operation id is returned at once; progress is read back with
:func:`get_bulk_operation` or followed with
:class:`~collectify.core.collections.poller.BulkStatusPoller`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..importers.csv import ParsedCsv
from ..shopify.client import AdminClient, ShopifyAPIError, raise_for_user_errors
from ..shopify.queries import (
    BULK_COLLECTION_CREATE,
    BULK_OPERATION_BY_ID,
    BULK_OPERATION_RUN_MUTATION,
    CURRENT_BULK_OPERATION,
    STAGED_UPLOADS_CREATE,
)
from .importer import ImportValidationError, validate_import
from .mapping import map_row_to_input

logger = logging.getLogger(__name__)

BULK_MAX_ROWS = 1000
JSONL_MIME_TYPE = "text/jsonl"
ACTIVE_STATUSES = frozenset({"CREATED", "RUNNING", "CANCELING"})
TERMINAL_STATUSES = frozenset({"COMPLETED", "FAILED", "CANCELED", "EXPIRED"})

BULK_IMPORT_INFO: dict[str, Any] = {
    "maxCollections": BULK_MAX_ROWS,
    "fileFormat": "CSV with a header row; same columns as the regular import",
    "processing": "Asynchronous; poll /collections/bulk-status with the returned id",
    "statuses": ["CREATED", "RUNNING", "COMPLETED", "FAILED", "CANCELING", "CANCELED", "EXPIRED"],
}


class TooManyRowsError(ValueError):
    pass


@dataclass
class BulkUploadResult:
    bulk_operation_id: str
    status: str
    collections_count: int
    staged_upload_path: str
    warnings: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            "Bulk import operation created successfully. "
            f"Processing {self.collections_count} collections."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "bulkOperationId": self.bulk_operation_id,
            "status": self.status,
            "message": self.message,
            "collectionsCount": self.collections_count,
            "warnings": list(self.warnings),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def bulk_upload_filename(now: datetime | None = None) -> str:
    dt = now or _utcnow()
    return f"collections_bulk_{int(dt.timestamp() * 1000)}.jsonl"


def build_bulk_payload(parsed: ParsedCsv) -> tuple[bytes, list[str]]:
    """Serialize every row as one ``{"input": CollectionInput}`` JSON line."""
    lines: list[str] = []
    warnings: list[str] = []
    for row in parsed.rows:
        mapped = map_row_to_input(row)
        warnings.extend(mapped.warnings)
        lines.append(json.dumps({"input": mapped.input}, ensure_ascii=False, separators=(",", ":")))
    return ("\n".join(lines) + "\n").encode("utf-8"), warnings


def create_staged_upload(client: AdminClient, filename: str) -> dict[str, Any]:
    data = client.graphql(
        STAGED_UPLOADS_CREATE,
        {
            "input": [
                {
                    "resource": "BULK_MUTATION_VARIABLES",
                    "filename": filename,
                    "mimeType": JSONL_MIME_TYPE,
                    "httpMethod": "POST",
                }
            ]
        },
    )
    payload = data.get("stagedUploadsCreate") or {}
    raise_for_user_errors(payload)
    targets = payload.get("stagedTargets") or []
    if not targets or not targets[0].get("url"):
        raise ShopifyAPIError("Failed to create staged upload")
    return targets[0]


def staged_upload_path(target: dict[str, Any]) -> str:
    for param in target.get("parameters") or []:
        if param.get("name") == "key":
            return str(param.get("value") or "")
    raise ShopifyAPIError("Staged upload target has no key parameter")


def run_bulk_mutation(client: AdminClient, upload_path: str) -> dict[str, Any]:
    data = client.graphql(
        BULK_OPERATION_RUN_MUTATION,
        {"mutation": BULK_COLLECTION_CREATE, "stagedUploadPath": upload_path},
    )
    payload = data.get("bulkOperationRunMutation") or {}
    raise_for_user_errors(payload)
    operation = payload.get("bulkOperation")
    if not operation or not operation.get("id"):
        raise ShopifyAPIError("Failed to create bulk operation")
    return operation


def start_bulk_import(
    client: AdminClient,
    csv_input: ParsedCsv | bytes | str | Path,
    *,
    max_rows: int = BULK_MAX_ROWS,
    now: datetime | None = None,
) -> BulkUploadResult:
    """Validate, upload and launch a bulk ``collectionCreate`` run.

    Raises :class:`ImportValidationError` when any row is invalid and
    :class:`TooManyRowsError` above ``max_rows`` rows, both before any remote
    call.
    """
    parsed, report = validate_import(csv_input)
    if not report.valid:
        raise ImportValidationError(report, parse_warnings=parsed.warnings)
    if len(parsed.rows) > max_rows:
        raise TooManyRowsError(
            f"Too many collections. Maximum {max_rows} collections per bulk operation."
        )

    content, warnings = build_bulk_payload(parsed)
    filename = bulk_upload_filename(now)
    target = create_staged_upload(client, filename)
    upload_path = staged_upload_path(target)
    client.upload_staged_file(
        target["url"],
        list(target.get("parameters") or []),
        filename=filename,
        content=content,
        mime_type=JSONL_MIME_TYPE,
    )
    operation = run_bulk_mutation(client, upload_path)
    logger.info(
        "Started bulk import %s for %s (%s rows)",
        operation["id"],
        client.shop,
        len(parsed.rows),
    )
    return BulkUploadResult(
        bulk_operation_id=operation["id"],
        status=str(operation.get("status") or "CREATED"),
        collections_count=len(parsed.rows),
        staged_upload_path=upload_path,
        warnings=[
            *parsed.warnings,
            *(issue.message for issue in report.warnings),
            *warnings,
        ],
    )


def get_bulk_operation(client: AdminClient, operation_id: str) -> dict[str, Any] | None:
    data = client.graphql(BULK_OPERATION_BY_ID, {"id": operation_id})
    node = data.get("node")
    if not node or not node.get("id"):
        return None
    return node


def get_current_bulk_operation(client: AdminClient) -> dict[str, Any] | None:
    data = client.graphql(CURRENT_BULK_OPERATION)
    return data.get("currentBulkOperation") or None


def bulk_operation_to_api(operation: dict[str, Any]) -> dict[str, Any]:
    status = str(operation.get("status") or "")
    return {
        "success": True,
        "bulkOperation": {
            "id": operation.get("id"),
            "status": status,
            "errorCode": operation.get("errorCode"),
            "createdAt": operation.get("createdAt"),
            "completedAt": operation.get("completedAt"),
            "objectCount": operation.get("objectCount"),
            "fileSize": operation.get("fileSize"),
            "url": operation.get("url"),
            "partialDataUrl": operation.get("partialDataUrl"),
        },
        "message": f"Bulk operation {status.lower()}",
    }


def summarize_bulk_results(jsonl_text: str) -> dict[str, Any]:
    """Count created collections and user errors in a bulk result file."""
    created = 0
    failed: list[dict[str, Any]] = []
    for line_number, line in enumerate(jsonl_text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except ValueError:
            failed.append({"line": line_number, "errors": [{"message": "Unreadable result line"}]})
            continue
        payload = ((record.get("data") or {}).get("collectionCreate")) or {}
        user_errors = payload.get("userErrors") or []
        if payload.get("collection") and not user_errors:
            created += 1
        else:
            failed.append({"line": line_number, "errors": user_errors or record.get("errors") or []})
    return {"created": created, "failed": len(failed), "failures": failed}


def fetch_bulk_results(client: AdminClient, url: str) -> dict[str, Any]:
    return summarize_bulk_results(client.download(url))


__all__ = [
    "ACTIVE_STATUSES",
    "BULK_IMPORT_INFO",
    "BULK_MAX_ROWS",
    "BulkUploadResult",
    "TERMINAL_STATUSES",
    "TooManyRowsError",
    "build_bulk_payload",
    "bulk_operation_to_api",
    "bulk_upload_filename",
    "create_staged_upload",
    "fetch_bulk_results",
    "get_bulk_operation",
    "get_current_bulk_operation",
    "run_bulk_mutation",
    "staged_upload_path",
    "start_bulk_import",
    "summarize_bulk_results",
]
