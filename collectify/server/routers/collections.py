"""Collection routes: create, CSV import (sync and bulk), bulk status, export."""

import json
import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...config import get_settings
from ...core.collections.bulk import (
    BULK_IMPORT_INFO,
    TooManyRowsError,
    bulk_operation_to_api,
    get_bulk_operation,
    get_current_bulk_operation,
    start_bulk_import,
)
from ...core.collections.create import collection_to_api, create_collection, create_form_metadata
from ...core.collections.exporter import build_search_query, export_collections
from ...core.collections.importer import ImportValidationError, import_collections, preview_import
from ...core.collections.mapping import payload_to_input
from ...core.exporters.collections_csv import export_collections_csv
from ...core.importers.csv import ParsedCsv, parse_collection_csv
from ...core.shopify.client import AdminClient, ShopifyAPIError, ShopifyUserError
from ...core.validate.rules import validate_collection_input
from ..auth import ShopContext
from ..deps import get_admin_client, get_db, get_shop_context
from ..errors import ApiError, internal_error
from ..helpers.usage import gated_usage
from ..logging.collection_payloads import import_result_to_loggable
from ..schemas import BulkStatusRequest, CollectionCreateRequest, ExportFilterRequest

settings = get_settings()
logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/collections")

NO_ROWS_MESSAGE = "No valid rows found in CSV"


def _parse_upload(file: UploadFile | None) -> ParsedCsv:
    if file is None or not file.filename:
        raise ApiError(400, "No file provided")
    try:
        parsed = parse_collection_csv(file.file.read())
    except ValueError as exc:
        detail = str(exc)
        if "exceeds 5 MB" in detail:
            raise ApiError(413, detail) from exc
        if "header row is required" in detail:
            raise ApiError(400, NO_ROWS_MESSAGE) from exc
        raise ApiError(422, detail) from exc
    if not parsed.rows:
        raise ApiError(400, NO_ROWS_MESSAGE, details=parsed.warnings or None)
    return parsed


def _is_true(value: str | None) -> bool:
    return str(value or "").strip().lower() == "true"


@router.get("/create")
def create_form_info() -> dict:
    return {"success": True, "data": create_form_metadata()}


@router.post("/create")
def create_collection_route(
    request: CollectionCreateRequest,
    client: AdminClient = Depends(get_admin_client),
) -> dict:
    payload = request.to_payload()
    report = validate_collection_input(payload)
    if not report.valid:
        raise ApiError(400, "Validation failed", details=[issue.message for issue in report.errors])

    try:
        collection = create_collection(client, payload_to_input(payload))
    except ShopifyUserError as exc:
        raise ApiError(400, "GraphQL errors", details=exc.user_errors) from exc
    except ShopifyAPIError as exc:
        if exc.errors is None and "No collection returned" in str(exc):
            raise ApiError(500, "Collection creation failed", details=str(exc)) from exc
        logger.exception("Collection create failed for %s", client.shop)
        raise internal_error(exc) from exc

    logger.info("Created collection %s for %s", collection.get("id"), client.shop)
    return {
        "success": True,
        "collection": collection_to_api(collection),
        "message": f'Collection "{collection.get("title")}" created successfully',
    }


@router.post("/import")
def import_collections_route(
    file: UploadFile | None = File(default=None),
    dryRun: str | None = Form(default=None),
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> dict:
    parsed = _parse_upload(file)
    dry_run = _is_true(dryRun)
    requested = 0 if dry_run else len(parsed.rows)

    def run() -> dict:
        try:
            result = import_collections(client, parsed, dry_run=dry_run)
        except ImportValidationError as exc:
            raise ApiError(400, "Validation failed", payload=exc.to_dict()) from exc
        except ValueError as exc:
            raise ApiError(400, str(exc)) from exc
        except Exception as exc:
            logger.exception("Collection import failed for %s", context.shop)
            raise internal_error(exc) from exc

        logger.debug(
            "Collection import summary:\n%s",
            json.dumps(import_result_to_loggable(result), ensure_ascii=False, indent=2),
        )
        return result.to_dict()

    if dry_run:
        return run()
    with gated_usage(db, context.shop, "import", requested):
        return run()


@router.post("/preview")
def preview_collections_route(
    file: UploadFile | None = File(default=None),
    context: ShopContext = Depends(get_shop_context),
) -> dict:
    parsed = _parse_upload(file)
    preview = preview_import(parsed)
    logger.debug("Previewed %s rows for %s", preview["totalRows"], context.shop)
    return {"success": True, **preview}


@router.get("/import-bulk")
def bulk_import_info() -> dict:
    return {"success": True, "info": BULK_IMPORT_INFO}


@router.post("/import-bulk")
def bulk_import_route(
    file: UploadFile | None = File(default=None),
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> dict:
    parsed = _parse_upload(file)
    if len(parsed.rows) > settings.bulk_max_rows:
        raise ApiError(
            400,
            "Too many collections",
            details=f"Maximum {settings.bulk_max_rows} collections per bulk operation.",
        )

    with gated_usage(db, context.shop, "import", len(parsed.rows)):
        try:
            result = start_bulk_import(client, parsed, max_rows=settings.bulk_max_rows)
        except ImportValidationError as exc:
            raise ApiError(400, "Validation failed", payload=exc.to_dict()) from exc
        except TooManyRowsError as exc:
            raise ApiError(400, "Too many collections", details=str(exc)) from exc
        except ShopifyUserError as exc:
            raise ApiError(400, "GraphQL errors", details=exc.user_errors) from exc
        except Exception as exc:
            logger.exception("Bulk import failed for %s", context.shop)
            raise internal_error(exc) from exc
    return result.to_dict()


@router.get("/bulk-status")
def bulk_status_route(
    id: str | None = Query(default=None),
    client: AdminClient = Depends(get_admin_client),
) -> dict:
    if not id:
        raise ApiError(400, "No bulk operation ID provided")
    try:
        operation = get_bulk_operation(client, id)
    except ShopifyAPIError as exc:
        logger.exception("Bulk status lookup failed for %s", client.shop)
        raise internal_error(exc) from exc
    if operation is None:
        raise ApiError(404, "Bulk operation not found")
    return bulk_operation_to_api(operation)


@router.post("/bulk-status")
def current_bulk_status_route(
    request: BulkStatusRequest | None = None,
    client: AdminClient = Depends(get_admin_client),
) -> dict:
    try:
        if request is not None and request.bulkOperationId:
            operation = get_bulk_operation(client, request.bulkOperationId)
            if operation is None:
                raise ApiError(404, "Bulk operation not found")
            return bulk_operation_to_api(operation)
        operation = get_current_bulk_operation(client)
    except ShopifyAPIError as exc:
        logger.exception("Current bulk status lookup failed for %s", client.shop)
        raise internal_error(exc) from exc

    if operation is None:
        return {"success": True, "message": "No current bulk operation"}
    body = bulk_operation_to_api(operation)
    body["message"] = f"Current bulk operation {str(operation.get('status') or '').lower()}"
    return body


def _run_export(db: Session, context: ShopContext, client: AdminClient, *, limit: int, query: str | None) -> dict:
    with gated_usage(db, context.shop, "export", 1):
        try:
            result = export_collections(client, limit=limit, query=query)
        except Exception as exc:
            logger.exception("Collection export failed for %s", context.shop)
            raise internal_error(exc) from exc
    return result.to_dict()


@router.get("/export")
def export_collections_route(
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> dict:
    return _run_export(db, context, client, limit=settings.export_max_records, query=None)


@router.post("/export")
def export_filtered_collections_route(
    request: ExportFilterRequest,
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> dict:
    query = build_search_query(request.collectionType, published_only=request.publishedOnly)
    limit = min(request.limit, settings.export_max_records)
    return _run_export(db, context, client, limit=limit, query=query)


@router.get("/export.csv")
def export_collections_csv_route(
    collectionType: str = Query(default="all"),
    publishedOnly: bool = Query(default=False),
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> Response:
    query = build_search_query(collectionType, published_only=publishedOnly)
    with gated_usage(db, context.shop, "export", 1):
        try:
            exported = export_collections_csv(client, limit=settings.export_max_records, query=query)
        except Exception as exc:
            logger.exception("Collection CSV export failed for %s", context.shop)
            raise internal_error(exc) from exc
    return Response(
        content=exported.csv_bytes,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{exported.filename}"',
            "X-Export-Truncated": "true" if exported.truncated else "false",
            "X-Export-Warnings": str(len(exported.warnings)),
        },
    )
