"""Collection CSV parsing: raw bytes to typed :class:`CollectionRow` records."""

import csv
import io
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..canonical.entities import CollectionRow

MAX_CSV_UPLOAD_BYTES = 5 * 1024 * 1024
_HEADER_TOKEN_RE = re.compile(r"[^a-z0-9]+")

# header token -> CollectionRow attribute
_HEADER_ALIASES: dict[str, str] = {
    "id": "id",
    "title": "title",
    "handle": "handle",
    "descriptionhtml": "description_html",
    "description": "description_html",
    "bodyhtml": "description_html",
    "type": "type",
    "collectiontype": "type",
    "products": "products",
    "productids": "products",
    "rules": "rules",
    "applieddisjunctively": "applied_disjunctively",
    "disjunctive": "applied_disjunctively",
    "sortorder": "sort_order",
    "imageurl": "image_url",
    "image": "image_url",
    "imagesrc": "image_url",
    "imagealt": "image_alt",
    "imagealttext": "image_alt",
    "seotitle": "seo_title",
    "seodescription": "seo_description",
    "templatesuffix": "template_suffix",
    "published": "published",
}

_BOOL_FIELDS = {"applied_disjunctively", "published"}


@dataclass
class ParsedCsv:
    headers: list[str] = field(default_factory=list)
    rows: list[CollectionRow] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    unknown_headers: list[str] = field(default_factory=list)


def decode_csv_bytes(data: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-8"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError("CSV must be UTF-8 encoded.")


def coerce_csv_text(csv_input: bytes | str | Path) -> str:
    if isinstance(csv_input, Path):
        csv_input = csv_input.read_bytes()
    if isinstance(csv_input, bytes):
        if len(csv_input) > MAX_CSV_UPLOAD_BYTES:
            raise ValueError("CSV file exceeds 5 MB upload limit.")
        return decode_csv_bytes(csv_input)
    return str(csv_input)


def header_token(header: Any) -> str:
    return _HEADER_TOKEN_RE.sub("", str(header or "").strip().lower())


def canonical_field(header: Any) -> str | None:
    return _HEADER_ALIASES.get(header_token(header))


def parse_bool(value: Any) -> bool | None:
    text = str(value or "").strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return None


def split_tokens(value: Any, *, sep: str = ",") -> list[str]:
    text = str(value or "").strip()
    if not text:
        return []
    seen: set[str] = set()
    out: list[str] = []
    for token in text.split(sep):
        stripped = token.strip()
        if not stripped or stripped in seen:
            continue
        seen.add(stripped)
        out.append(stripped)
    return out


def _is_blank_record(record: list[str]) -> bool:
    return all(not str(value or "").strip() for value in record)


def _row_from_record(
    fields: list[str | None],
    record: list[str],
    *,
    row_number: int,
) -> CollectionRow:
    row = CollectionRow(row_number=row_number)
    for attr, raw in zip(fields, record):
        if attr is None:
            continue
        if attr in _BOOL_FIELDS:
            parsed = parse_bool(raw)
            if attr == "applied_disjunctively":
                row.applied_disjunctively = bool(parsed)
            else:
                row.published = parsed
            continue
        if attr == "type":
            row.type = raw.strip().lower() or "manual"
            continue
        setattr(row, attr, raw.strip())
    return row


def parse_collection_csv(csv_input: bytes | str | Path) -> ParsedCsv:
    """Parse collection CSV text.

    Standard CSV quoting applies: commas and newlines inside a quoted field
    are kept and ``""`` is a literal quote.  Blank records are skipped.
    Records whose field count differs from the header are dropped and
    reported in ``warnings``.  Row numbers are 1-based with the header as
    row 1.
    """
    text = coerce_csv_text(csv_input)
    reader = csv.reader(io.StringIO(text))

    headers: list[str] = []
    for record in reader:
        if not _is_blank_record(record):
            headers = [str(value or "").strip() for value in record]
            break
    if not headers:
        raise ValueError("CSV header row is required.")

    fields = [canonical_field(header) for header in headers]
    result = ParsedCsv(
        headers=headers,
        unknown_headers=[header for header, attr in zip(headers, fields) if attr is None],
    )

    row_number = 1
    for record in reader:
        if _is_blank_record(record):
            continue
        row_number += 1
        if len(record) != len(headers):
            result.warnings.append(
                f"Row {row_number}: Column count mismatch "
                f"(expected {len(headers)}, got {len(record)}); row skipped"
            )
            continue
        result.rows.append(_row_from_record(fields, record, row_number=row_number))
    return result


__all__ = [
    "MAX_CSV_UPLOAD_BYTES",
    "ParsedCsv",
    "canonical_field",
    "coerce_csv_text",
    "decode_csv_bytes",
    "header_token",
    "parse_bool",
    "parse_collection_csv",
    "split_tokens",
]
