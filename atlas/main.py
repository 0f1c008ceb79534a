import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from atlas.api import analytics, coaching, health  # noqa: E402
from atlas.core.config import allowed_origins, settings, validate_config  # noqa: E402
from atlas.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from atlas.core.logging import configure_logging  # noqa: E402
from atlas.core.middleware.request_id import RequestIdMiddleware  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("atlas")
    logger.info("Starting Atlas Maximus backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("atlas").info("Stopping Atlas Maximus backend...")


def create_app() -> FastAPI:
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    validate_config(strict=settings.CONFIG_STRICT)

    app = FastAPI(title="Atlas Maximus - Coaching & Analytics", lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(coaching.router)
    app.include_router(analytics.router)
    app.include_router(health.router)
    return app


app = create_app()
