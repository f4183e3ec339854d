"""Single collection creation through ``collectionCreate``."""

from __future__ import annotations

from typing import Any

from ..canonical.entities import RULE_COLUMNS, RULE_RELATIONS, SORT_ORDERS
from ..shopify.client import AdminClient, ShopifyAPIError, raise_for_user_errors
from ..shopify.queries import COLLECTION_CREATE

CREATE_FORM_EXAMPLES: dict[str, Any] = {
    "manualCollection": {
        "title": "Summer Collection",
        "descriptionHtml": "<p>Our best summer products</p>",
        "products": [
            "gid://shopify/Product/123",
            "gid://shopify/Product/456",
        ],
        "sortOrder": "MANUAL",
        "image": {
            "src": "https://example.com/summer-collection.jpg",
            "altText": "Summer Collection",
        },
    },
    "smartCollection": {
        "title": "Electronics Under $100",
        "descriptionHtml": "<p>Affordable electronics for everyone</p>",
        "ruleSet": {
            "appliedDisjunctively": False,
            "rules": [
                {"column": "TYPE", "relation": "EQUALS", "condition": "Electronics"},
                {"column": "VARIANT_PRICE", "relation": "LESS_THAN", "condition": "100"},
            ],
        },
        "sortOrder": "PRICE_ASC",
    },
}


def create_form_metadata() -> dict[str, Any]:
    return {
        "ruleColumns": list(RULE_COLUMNS),
        "ruleRelations": list(RULE_RELATIONS),
        "sortOrders": list(SORT_ORDERS),
        "examples": CREATE_FORM_EXAMPLES,
    }


def create_collection(client: AdminClient, collection_input: dict[str, Any]) -> dict[str, Any]:
    """Create one collection and return the created node.

    Raises :class:`ShopifyUserError` when Shopify rejects the input and
    :class:`ShopifyAPIError` when no collection comes back.
    """
    data = client.graphql(COLLECTION_CREATE, {"input": collection_input})
    payload = data.get("collectionCreate") or {}
    raise_for_user_errors(payload)
    collection = payload.get("collection")
    if not collection:
        raise ShopifyAPIError("No collection returned from GraphQL mutation")
    return collection


def collection_to_api(collection: dict[str, Any]) -> dict[str, Any]:
    image = collection.get("image")
    products_count = collection.get("productsCount")
    if isinstance(products_count, dict):
        products_count = products_count.get("count")
    return {
        "id": collection.get("id"),
        "title": collection.get("title"),
        "handle": collection.get("handle"),
        "descriptionHtml": collection.get("descriptionHtml"),
        "image": {"src": image.get("url"), "alt": image.get("altText")} if image else None,
        "seo": collection.get("seo"),
        "sortOrder": collection.get("sortOrder"),
        "ruleSet": collection.get("ruleSet"),
        "productsCount": products_count,
        "createdAt": collection.get("createdAt"),
        "updatedAt": collection.get("updatedAt"),
    }


__all__ = [
    "CREATE_FORM_EXAMPLES",
    "collection_to_api",
    "create_collection",
    "create_form_metadata",
]
