# storefront/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront.config import Settings, get_settings
from storefront.database import Database
from storefront.exceptions import StorefrontError, ValidationFailed

# Routers
from storefront.routes.admin_products import router as admin_products_router
from storefront.routes.auth import router as auth_router
from storefront.routes.favorites import router as favorites_router
from storefront.routes.inquiries import router as inquiries_router
from storefront.routes.orders import router as orders_router
from storefront.routes.products import router as products_router
from storefront.routes.reviews import router as reviews_router
from storefront.routes.users import router as users_router
from storefront.utils.stripe_client import StripeClient

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: Database = app.state.db
    db.create_all()
    logger.info("Storefront API started (env=%s)", app.state.settings.APP_ENV)
    yield
    db.dispose()


async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__class__.__name__)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Request binding error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=ValidationFailed.status_code, content={"error": ValidationFailed.message})


def create_app(settings: Settings = None, payment_gateway=None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Storefront API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.payment_gateway = payment_gateway or StripeClient(settings)

    # Uploaded product images; the directory must exist before mounting
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    # The frontend sends the auth cookie, so the origin must be explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_BASE_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Register routers
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(products_router, prefix=API_PREFIX)
    app.include_router(reviews_router, prefix=API_PREFIX)
    app.include_router(favorites_router, prefix=API_PREFIX)
    app.include_router(orders_router, prefix=API_PREFIX)
    app.include_router(inquiries_router, prefix=API_PREFIX)
    app.include_router(admin_products_router, prefix=API_PREFIX)

    @app.get("/")
    def read_root():
        return {"message": "Storefront API is running"}

    return app


def run():
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
