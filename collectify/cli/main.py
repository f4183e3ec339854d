"""Command-line frontend for the Collectify core engine."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from collectify.config import get_settings
from collectify.core.collections.bulk import (
    bulk_operation_to_api,
    fetch_bulk_results,
    get_bulk_operation,
    get_current_bulk_operation,
    start_bulk_import,
)
from collectify.core.collections.exporter import build_search_query, export_collections
from collectify.core.collections.importer import (
    ImportValidationError,
    import_collections,
    preview_import,
    validate_import,
)
from collectify.core.collections.poller import BulkStatusPoller, PollState
from collectify.core.config import config_from_env
from collectify.core.exporters.collections_csv import export_collections_csv
from collectify.core.shopify.client import AdminClient
from collectify.core.subscriptions import set_plan
from collectify.core.usage.limiter import get_usage_stats
from collectify.core.usage.plans import PLANS, seed_usage_limits
from collectify.db.engine import get_session, init_db
from collectify.db.models import ShopSession

load_dotenv(Path(__file__).resolve().parents[2] / ".env")


def _json_dump(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _open_db(args: argparse.Namespace):
    init_db(args.database_url or get_settings().database_url)
    return get_session()


def _admin_client(args: argparse.Namespace) -> AdminClient:
    shop = args.shop or os.getenv("SHOPIFY_SHOP", "")
    if not shop:
        raise ValueError("--shop (or SHOPIFY_SHOP) is required")
    token = args.access_token or os.getenv("SHOPIFY_ACCESS_TOKEN", "")
    if not token:
        session = _open_db(args)
        try:
            stored = session.get(ShopSession, f"offline_{shop}")
            token = stored.access_token if stored is not None else ""
        finally:
            session.close()
    if not token:
        raise ValueError(f"No access token for {shop}; pass --access-token or install the app first")
    return AdminClient(shop, token, config_from_env())


def _cmd_validate(args: argparse.Namespace) -> int:
    parsed, report = validate_import(Path(args.input))
    payload = {
        "valid": report.valid,
        "rows": len(parsed.rows),
        "issues": [issue.__dict__ for issue in report.issues],
        "warnings": parsed.warnings,
    }
    if args.report:
        Path(args.report).write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    _json_dump(payload)
    return 0 if report.valid else 1


def _cmd_preview(args: argparse.Namespace) -> int:
    _json_dump(preview_import(Path(args.input)))
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    client = None if args.dry_run else _admin_client(args)
    try:
        result = import_collections(client, Path(args.input), dry_run=args.dry_run)
    except ImportValidationError as exc:
        _json_dump(exc.to_dict())
        return 1
    _json_dump(result.to_dict())
    return 0 if result.success else 1


def _cmd_import_bulk(args: argparse.Namespace) -> int:
    client = _admin_client(args)
    try:
        result = start_bulk_import(client, Path(args.input), max_rows=get_settings().bulk_max_rows)
    except ImportValidationError as exc:
        _json_dump(exc.to_dict())
        return 1
    _json_dump(result.to_dict())
    return 0


def _cmd_bulk_status(args: argparse.Namespace) -> int:
    client = _admin_client(args)

    def fetch() -> dict[str, Any] | None:
        if args.id:
            return get_bulk_operation(client, args.id)
        return get_current_bulk_operation(client)

    if not args.wait:
        operation = fetch()
        if operation is None:
            _json_dump({"success": False, "message": "Bulk operation not found"})
            return 1
        _json_dump(bulk_operation_to_api(operation))
        return 0

    poller = BulkStatusPoller(
        fetch,
        initial_interval=args.interval,
        max_attempts=args.max_attempts,
        on_update=lambda op: print(f"status: {(op or {}).get('status', 'UNKNOWN')}", flush=True),
    )
    try:
        outcome = poller.run()
    except KeyboardInterrupt:
        poller.cancel()
        outcome = None

    if outcome is None:
        _json_dump({"state": PollState.CANCELLED.value})
        return 130
    payload: dict[str, Any] = {"state": outcome.state.value, "attempts": outcome.attempts}
    if outcome.operation is not None:
        payload.update(bulk_operation_to_api(outcome.operation))
        if outcome.state is PollState.COMPLETED and outcome.operation.get("url"):
            payload["results"] = fetch_bulk_results(client, outcome.operation["url"])
    _json_dump(payload)
    return 0 if outcome.state is PollState.COMPLETED else 1


def _cmd_export(args: argparse.Namespace) -> int:
    client = _admin_client(args)
    query = build_search_query(args.type, published_only=args.published_only)
    limit = min(args.limit, get_settings().export_max_records)

    if args.format == "csv":
        exported = export_collections_csv(client, limit=limit, query=query)
        out_path = Path(args.out or exported.filename)
        out_path.write_bytes(exported.csv_bytes)
        _json_dump(
            {
                "output": str(out_path),
                "totalCount": exported.total_count,
                "truncated": exported.truncated,
                "warnings": exported.warnings,
            }
        )
        return 0

    result = export_collections(client, limit=limit, query=query)
    if args.out:
        Path(args.out).write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        _json_dump({"output": args.out, "totalCount": result.total_count, "truncated": result.truncated})
    else:
        _json_dump(result.to_dict())
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    session = _open_db(args)
    try:
        seeded = seed_usage_limits(session) if args.seed else 0
    finally:
        session.close()
    _json_dump({"database": args.database_url or get_settings().database_url, "seededPlans": seeded})
    return 0


def _cmd_seed_limits(args: argparse.Namespace) -> int:
    session = _open_db(args)
    try:
        _json_dump({"seededPlans": seed_usage_limits(session)})
    finally:
        session.close()
    return 0


def _cmd_plan_set(args: argparse.Namespace) -> int:
    session = _open_db(args)
    try:
        subscription = set_plan(session, args.shop_domain, args.plan, renew_period=True)
        _json_dump(subscription.to_dict())
    finally:
        session.close()
    return 0


def _cmd_usage(args: argparse.Namespace) -> int:
    session = _open_db(args)
    try:
        _json_dump(get_usage_stats(session, args.shop_domain))
    finally:
        session.close()
    return 0


def _add_shop_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--shop", default=None, help="Shop domain, e.g. my-store.myshopify.com")
    parser.add_argument("--access-token", default=None, help="Admin API access token")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="collectify", description="Collectify collection CSV tools")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_cmd = subparsers.add_parser("validate", help="Validate a collection CSV without importing it")
    validate_cmd.add_argument("input", help="Collection CSV file path")
    validate_cmd.add_argument("--report", default="")
    validate_cmd.set_defaults(func=_cmd_validate)

    preview_cmd = subparsers.add_parser("preview", help="Show the collection inputs a CSV would produce")
    preview_cmd.add_argument("input", help="Collection CSV file path")
    preview_cmd.set_defaults(func=_cmd_preview)

    import_cmd = subparsers.add_parser("import", help="Create collections from a CSV, one request per row")
    import_cmd.add_argument("input", help="Collection CSV file path")
    import_cmd.add_argument("--dry-run", action="store_true")
    _add_shop_args(import_cmd)
    import_cmd.set_defaults(func=_cmd_import)

    bulk_cmd = subparsers.add_parser("import-bulk", help="Start a bulk collection import from a CSV")
    bulk_cmd.add_argument("input", help="Collection CSV file path")
    _add_shop_args(bulk_cmd)
    bulk_cmd.set_defaults(func=_cmd_import_bulk)

    status_cmd = subparsers.add_parser("bulk-status", help="Show (or wait for) a bulk operation")
    status_cmd.add_argument("id", nargs="?", default=None, help="Bulk operation GID; defaults to the current one")
    status_cmd.add_argument("--wait", action="store_true", help="Poll until the operation finishes")
    status_cmd.add_argument("--interval", type=float, default=5.0)
    status_cmd.add_argument("--max-attempts", type=int, default=30)
    _add_shop_args(status_cmd)
    status_cmd.set_defaults(func=_cmd_bulk_status)

    export_cmd = subparsers.add_parser("export", help="Export collections as JSON or CSV")
    export_cmd.add_argument("--format", choices=["json", "csv"], default="json")
    export_cmd.add_argument("--type", choices=["manual", "smart", "all"], default="all")
    export_cmd.add_argument("--published-only", action="store_true")
    export_cmd.add_argument("--limit", type=int, default=1000)
    export_cmd.add_argument("--out", default="")
    _add_shop_args(export_cmd)
    export_cmd.set_defaults(func=_cmd_export)

    init_cmd = subparsers.add_parser("init-db", help="Create the database tables")
    init_cmd.add_argument("--seed", action="store_true", help="Also seed plan limits")
    init_cmd.set_defaults(func=_cmd_init_db)

    seed_cmd = subparsers.add_parser("seed-limits", help="Write the built-in plan limits to the database")
    seed_cmd.set_defaults(func=_cmd_seed_limits)

    plan_cmd = subparsers.add_parser("plan", help="Manage a shop's plan")
    plan_sub = plan_cmd.add_subparsers(dest="plan_command", required=True)
    plan_set = plan_sub.add_parser("set", help="Set a shop's plan")
    plan_set.add_argument("shop_domain")
    plan_set.add_argument("plan", choices=sorted(PLANS))
    plan_set.set_defaults(func=_cmd_plan_set)

    usage_cmd = subparsers.add_parser("usage", help="Show a shop's usage for the current month")
    usage_cmd.add_argument("shop_domain")
    usage_cmd.set_defaults(func=_cmd_usage)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args) or 0)
    except Exception as exc:
        parser.exit(status=2, message=f"error: {exc}\n")


if __name__ == "__main__":
    raise SystemExit(main())
