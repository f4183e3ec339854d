import csv
import io
from datetime import datetime, timezone
from typing import Iterable, Sequence

from slugify import slugify

MYSHOPIFY_SUFFIX = ".myshopify.com"


def rows_to_csv(rows: Iterable[dict[str, str]], columns: Sequence[str]) -> str:
    """Write ``rows`` under a header of ``columns``; unknown keys are dropped."""
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=list(columns),
        extrasaction="ignore",
        restval="",
        lineterminator="\n",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def export_timestamp(now: datetime | None = None) -> str:
    moment = now or _utcnow()
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def shop_slug(shop: str) -> str:
    """``my-store.myshopify.com`` -> ``my-store``."""
    name = (shop or "").strip().lower()
    if name.endswith(MYSHOPIFY_SUFFIX):
        name = name[: -len(MYSHOPIFY_SUFFIX)]
    return slugify(name) or "shop"


def collections_export_filename(shop: str, *, now: datetime | None = None) -> str:
    return f"collections-{shop_slug(shop)}-{export_timestamp(now)}.csv"
