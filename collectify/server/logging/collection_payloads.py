from typing import Any

from ...config import get_settings
from ...core.collections.importer import ImportResult

_DEFAULT_MESSAGE_LIMITS = {
    "low": 80,
    "medium": 160,
    "high": 240,
}
_SUPPORTED_VERBOSITIES = {"low", "medium", "high", "extrahigh"}


def _truncate_message(value: str | None, *, limit: int) -> str:
    text = str(value or "").strip()
    if len(text) <= limit:
        return text
    return f"{text[:limit].rstrip()}... [truncated]"


def _normalize_verbosity(verbosity: str) -> str:
    normalized = str(verbosity or "").strip().lower()
    if normalized in _SUPPORTED_VERBOSITIES:
        return normalized
    return "medium"


def _row_summary(row: dict[str, Any], *, limit: int) -> dict[str, Any]:
    summary = {
        "row": row.get("row"),
        "title": row.get("title"),
        "status": row.get("status"),
        "message": _truncate_message(row.get("message"), limit=limit),
    }
    if row.get("collectionId"):
        summary["collection_id"] = row["collectionId"]
    if row.get("warnings"):
        summary["warnings_count"] = len(row["warnings"])
    return summary


def import_result_to_loggable(
    result: ImportResult,
    *,
    verbosity: str | None = None,
    debug_enabled: bool | None = None,
) -> dict[str, Any] | None:
    settings = get_settings()
    if debug_enabled is None:
        debug_enabled = settings.debug

    if not debug_enabled:
        return None

    resolved_verbosity = verbosity if verbosity is not None else settings.log_verbosity
    level = _normalize_verbosity(resolved_verbosity)
    data = result.to_dict()

    if level == "extrahigh":
        for row_data, row in zip(data["results"], result.results):
            row_data["input"] = row.input
        return data

    if level == "high":
        for row_data in data["results"]:
            row_data["message"] = _truncate_message(
                row_data.get("message"), limit=_DEFAULT_MESSAGE_LIMITS["high"]
            )
        return data

    failed = [row for row in data["results"] if row.get("status") != "success"]
    summary = {
        "dry_run": data["dryRun"],
        "success": data["success"],
        "created": data["created"],
        "errors": data["errors"],
        "rows_count": len(data["results"]),
        "warnings_count": len(data["warnings"]),
        "failed_rows": [
            _row_summary(row, limit=_DEFAULT_MESSAGE_LIMITS["medium"]) for row in failed
        ],
    }

    if level == "low":
        return {
            "dry_run": summary["dry_run"],
            "created": summary["created"],
            "errors": summary["errors"],
            "rows_count": summary["rows_count"],
            "warnings_count": summary["warnings_count"],
            "failed_rows": [
                _row_summary(row, limit=_DEFAULT_MESSAGE_LIMITS["low"]) for row in failed
            ],
        }

    return summary
