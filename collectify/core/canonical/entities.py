import re
from dataclasses import dataclass, field
from typing import Any, Literal

CollectionType = Literal["manual", "smart"]
COLLECTION_TYPES: tuple[str, ...] = ("manual", "smart")

RULE_COLUMNS: tuple[str, ...] = (
    "TITLE",
    "TYPE",
    "VENDOR",
    "TAG",
    "VARIANT_TITLE",
    "VARIANT_PRICE",
    "VARIANT_COMPARE_AT_PRICE",
    "VARIANT_WEIGHT",
    "VARIANT_INVENTORY",
    "IS_PRICE_REDUCED",
    "PRODUCT_CATEGORY_ID",
    "PRODUCT_CATEGORY_ID_WITH_DESCENDANTS",
    "PRODUCT_TAXONOMY_NODE_ID",
    "PRODUCT_METAFIELD_DEFINITION",
    "VARIANT_METAFIELD_DEFINITION",
)

RULE_RELATIONS: tuple[str, ...] = (
    "EQUALS",
    "NOT_EQUALS",
    "CONTAINS",
    "NOT_CONTAINS",
    "STARTS_WITH",
    "ENDS_WITH",
    "GREATER_THAN",
    "LESS_THAN",
    "IS_SET",
    "IS_NOT_SET",
)

SORT_ORDERS: tuple[str, ...] = (
    "MANUAL",
    "BEST_SELLING",
    "ALPHA_ASC",
    "ALPHA_DESC",
    "PRICE_ASC",
    "PRICE_DESC",
    "CREATED",
    "CREATED_DESC",
)

NUMERIC_RULE_COLUMNS = frozenset(
    {"VARIANT_PRICE", "VARIANT_COMPARE_AT_PRICE", "VARIANT_WEIGHT", "VARIANT_INVENTORY"}
)
NUMERIC_RELATIONS = frozenset({"GREATER_THAN", "LESS_THAN"})
CONDITIONLESS_RELATIONS = frozenset({"IS_SET", "IS_NOT_SET"})

PRODUCT_GID_PREFIX = "gid://shopify/Product/"

CSV_COLUMNS: list[str] = [
    "id",
    "title",
    "handle",
    "descriptionHtml",
    "type",
    "products",
    "rules",
    "appliedDisjunctively",
    "sortOrder",
    "imageUrl",
    "imageAlt",
    "seoTitle",
    "seoDescription",
    "templateSuffix",
    "published",
]

TITLE_MAX_LENGTH = 255
HANDLE_MAX_LENGTH = 255

_ENUM_SEPARATOR_RE = re.compile(r"[\s\-]+")


def normalize_enum_token(value: Any) -> str:
    """``not-equals`` / ``Not Equals`` / ``NOT_EQUALS`` -> ``NOT_EQUALS``."""
    text = str(value or "").strip()
    return _ENUM_SEPARATOR_RE.sub("_", text).upper()


@dataclass
class CollectionRow:
    title: str = ""
    type: str = "manual"
    id: str = ""
    handle: str = ""
    description_html: str = ""
    products: str = ""
    rules: str = ""
    applied_disjunctively: bool = False
    sort_order: str = ""
    image_url: str = ""
    image_alt: str = ""
    seo_title: str = ""
    seo_description: str = ""
    template_suffix: str = ""
    published: bool | None = None
    row_number: int = 0


@dataclass
class MappedInput:
    input: dict[str, Any]
    warnings: list[str] = field(default_factory=list)
