from pathlib import Path
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / ".env")

from ..config import Settings, get_settings  # noqa: E402
from ..core.config import ShopifyConfig  # noqa: E402
from ..db.engine import init_db, is_initialised  # noqa: E402
from .errors import register_error_handlers  # noqa: E402
from .routers.api import router as api_router  # noqa: E402
from .routers.collections import router as collections_router  # noqa: E402
from .routers.webhooks import router as webhooks_router  # noqa: E402

# Use Uvicorn's error logger so app logs appear in the standard server log stream.
logger = logging.getLogger("uvicorn.error")


def shopify_config_from_settings(settings: Settings) -> ShopifyConfig:
    return ShopifyConfig(
        api_key=settings.shopify_api_key,
        api_secret=settings.shopify_api_secret,
        api_version=settings.shopify_api_version,
        scopes=settings.shopify_scopes,
        app_url=settings.shopify_app_url,
        request_timeout=settings.shopify_request_timeout,
    )


def create_app(
    settings: Settings | None = None,
    *,
    shopify_config: ShopifyConfig | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    if not is_initialised():
        init_db(settings.database_url)

    app = FastAPI(
        title=settings.app_name,
        summary="Import, create and export Shopify collections from CSV files",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.shopify_config = shopify_config or shopify_config_from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(api_router)
    app.include_router(collections_router)
    app.include_router(webhooks_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("collectify.server.main:app", host="0.0.0.0", port=8000, reload=get_settings().debug)
