import json
import math
import re
from typing import Any

from slugify import slugify

from .entities import PRODUCT_GID_PREFIX

_HANDLE_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_valid_handle(handle: str) -> bool:
    return bool(_HANDLE_RE.match(handle or ""))


def suggest_handle(value: str) -> str:
    return slugify(value or "", max_length=255)


def to_product_gid(token: str) -> str | None:
    """Return ``token`` when it is a product GID, else ``None``."""
    text = str(token or "").strip()
    if text.startswith(PRODUCT_GID_PREFIX) and len(text) > len(PRODUCT_GID_PREFIX):
        return text
    return None


def parse_rules_json(text: str) -> tuple[list[dict[str, Any]] | None, str | None]:
    """Decode the ``rules`` CSV cell.

    Returns ``(rules, None)`` on success or ``(None, reason)`` when the cell
    cannot be used as a rule list.
    """
    raw = str(text or "").strip()
    if not raw:
        return None, "rules are empty"
    try:
        value = json.loads(raw)
    except ValueError as exc:
        return None, f"rules are not valid JSON ({exc.msg})"
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return None, "rules must be a JSON array"
    if not value:
        return None, "rules array is empty"
    if not all(isinstance(item, dict) for item in value):
        return None, "every rule must be a JSON object"
    return value, None


def is_number(value: Any) -> bool:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return False
    return math.isfinite(number)
