"""Shopify Admin GraphQL client.

One :class:`AdminClient` is built per request from the shop's offline access
token and the injected :class:`~collectify.core.config.ShopifyConfig`.
Mutations and uploads are never retried; the session only retries idempotent
GETs (bulk result downloads).
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import ShopifyConfig

logger = logging.getLogger(__name__)


class ShopifyAPIError(Exception):
    """Transport failure or top-level GraphQL ``errors`` payload."""

    def __init__(self, message: str, *, errors: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.errors = errors
        self.status_code = status_code


class ShopifyUserError(ShopifyAPIError):
    """A mutation answered with ``userErrors``."""

    def __init__(self, user_errors: list[dict[str, Any]]):
        messages = [str(err.get("message") or "") for err in user_errors if isinstance(err, dict)]
        super().__init__(", ".join(m for m in messages if m) or "User error", errors=user_errors)
        self.user_errors = user_errors


def http_session(timeout: int = 30) -> requests.Session:
    s = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=0.6,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    # store desired default timeout on the session for convenience
    s.request_timeout = timeout  # type: ignore[attr-defined]
    return s


def raise_for_user_errors(payload: dict[str, Any] | None) -> None:
    user_errors = (payload or {}).get("userErrors") or []
    if user_errors:
        raise ShopifyUserError(list(user_errors))


class AdminClient:
    def __init__(
        self,
        shop: str,
        access_token: str,
        config: ShopifyConfig,
        *,
        session: requests.Session | None = None,
    ):
        self.shop = shop
        self.access_token = access_token
        self.config = config
        self.session = session or http_session(config.request_timeout)

    @property
    def endpoint(self) -> str:
        return self.config.graphql_url(self.shop)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run ``query`` and return its ``data`` object.

        Raises :class:`ShopifyAPIError` on HTTP failures and on top-level
        GraphQL ``errors``.
        """
        body: dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        try:
            response = self.session.post(
                self.endpoint,
                json=body,
                headers=self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            raise ShopifyAPIError(f"Shopify request failed: {exc}") from exc

        if response.status_code == 401:
            raise ShopifyAPIError("Shopify rejected the access token", status_code=401)
        if response.status_code >= 400:
            raise ShopifyAPIError(
                f"Shopify GraphQL request failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ShopifyAPIError("Shopify returned a non-JSON response") from exc

        errors = payload.get("errors")
        if errors:
            logger.warning("GraphQL errors for %s: %s", self.shop, errors)
            message = "; ".join(
                str(err.get("message") if isinstance(err, dict) else err) for err in errors
            ) if isinstance(errors, list) else str(errors)
            raise ShopifyAPIError(message or "GraphQL errors", errors=errors)
        return payload.get("data") or {}

    def upload_staged_file(
        self,
        url: str,
        parameters: list[dict[str, str]],
        *,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> None:
        """POST ``content`` to a staged upload target.

        Form fields are sent in the order Shopify returned them and the file
        part goes last, as the storage backend requires.
        """
        fields = [(str(param["name"]), (None, str(param["value"]))) for param in parameters]
        fields.append(("file", (filename, content, mime_type)))
        try:
            response = self.session.post(url, files=fields, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise ShopifyAPIError(f"Staged upload failed: {exc}") from exc
        if response.status_code >= 400:
            raise ShopifyAPIError(
                f"Staged upload failed with HTTP {response.status_code}",
                errors=response.text[:500],
                status_code=response.status_code,
            )

    def download(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ShopifyAPIError(f"Download failed: {exc}") from exc
        return response.text


__all__ = [
    "AdminClient",
    "ShopifyAPIError",
    "ShopifyUserError",
    "http_session",
    "raise_for_user_errors",
]
