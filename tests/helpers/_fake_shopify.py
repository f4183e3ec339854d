from __future__ import annotations

from typing import Any, Callable

SHOP = "test-shop.myshopify.com"


class FakeAdminClient:
    """Stands in for ``AdminClient``: replays scripted GraphQL ``data`` payloads.

    Each queued response is a dict (returned as-is), an exception (raised),
    or a callable taking ``(query, variables)``.
    """

    def __init__(self, *responses: Any, shop: str = SHOP):
        self.shop = shop
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.uploads: list[dict[str, Any]] = []
        self.downloads: dict[str, str] = {}
        self._responses = list(responses)
        self._default: Callable[[str, dict[str, Any]], Any] | None = None

    def queue(self, *responses: Any) -> "FakeAdminClient":
        self._responses.extend(responses)
        return self

    def always(self, responder: Callable[[str, dict[str, Any]], Any]) -> "FakeAdminClient":
        self._default = responder
        return self

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        variables = dict(variables or {})
        self.calls.append((query, variables))
        if self._responses:
            response = self._responses.pop(0)
        elif self._default is not None:
            response = self._default
        else:
            raise AssertionError(f"Unexpected GraphQL call: {query.strip().splitlines()[0]}")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(query, variables)
        return response

    def upload_staged_file(self, url, parameters, *, filename, content, mime_type) -> None:
        self.uploads.append(
            {
                "url": url,
                "parameters": list(parameters),
                "filename": filename,
                "content": content,
                "mime_type": mime_type,
            }
        )

    def download(self, url: str) -> str:
        return self.downloads[url]


def created_collection(title: str, number: int = 1, **extra: Any) -> dict[str, Any]:
    collection = {
        "id": f"gid://shopify/Collection/{number}",
        "title": title,
        "handle": title.lower().replace(" ", "-"),
        "descriptionHtml": "",
        "image": None,
        "seo": {"title": None, "description": None},
        "sortOrder": "BEST_SELLING",
        "ruleSet": None,
        "productsCount": {"count": 0},
        "createdAt": "2026-02-08T00:00:00Z",
        "updatedAt": "2026-02-08T00:00:00Z",
    }
    collection.update(extra)
    return {"collectionCreate": {"collection": collection, "userErrors": []}}


def user_errors(*messages: str, field: list[str] | None = None) -> dict[str, Any]:
    return {
        "collectionCreate": {
            "collection": None,
            "userErrors": [{"field": field or ["input"], "message": message} for message in messages],
        }
    }


def collections_page(nodes: list[dict[str, Any]], *, has_next: bool, cursor: str = "c1") -> dict[str, Any]:
    return {
        "collections": {
            "nodes": nodes,
            "pageInfo": {"hasNextPage": has_next, "endCursor": cursor if has_next else None},
        }
    }


def collection_node(number: int, *, smart: bool = False, **extra: Any) -> dict[str, Any]:
    node = {
        "id": f"gid://shopify/Collection/{number}",
        "title": f"Collection {number}",
        "handle": f"collection-{number}",
        "descriptionHtml": "",
        "sortOrder": "BEST_SELLING",
        "templateSuffix": None,
        "image": None,
        "seo": {"title": None, "description": None},
        "ruleSet": None,
        "productsCount": {"count": 0},
        "updatedAt": "2026-02-08T00:00:00Z",
    }
    if smart:
        node["ruleSet"] = {
            "appliedDisjunctively": False,
            "rules": [{"column": "TAG", "relation": "EQUALS", "condition": "summer"}],
        }
    node.update(extra)
    return node
