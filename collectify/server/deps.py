"""FastAPI dependencies: database session, Shopify config, authenticated shop."""

from typing import Iterator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ..core.config import ShopifyConfig
from ..core.shopify.client import AdminClient
from ..db.engine import get_session
from .auth import ShopContext, authenticate


def get_db() -> Iterator[Session]:
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def get_shopify_config(request: Request) -> ShopifyConfig:
    return request.app.state.shopify_config


def get_shop_context(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
    config: ShopifyConfig = Depends(get_shopify_config),
) -> ShopContext:
    return authenticate(db, config, authorization)


def get_admin_client(
    context: ShopContext = Depends(get_shop_context),
    config: ShopifyConfig = Depends(get_shopify_config),
) -> AdminClient:
    return AdminClient(context.shop, context.access_token, config)
