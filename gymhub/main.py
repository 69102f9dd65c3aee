import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env before settings are read; tests configure the environment themselves
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from gymhub.core.config import settings, validate_config
from gymhub.core.database import check_connection, create_all_tables
from gymhub.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from gymhub.core.logging import configure_logging
from gymhub.core.middleware.request_id import RequestIdMiddleware
from gymhub.api import (
    admin,
    auth,
    contact,
    dashboard,
    health,
    membership,
    shop,
    trainer_portal,
    trainers,
    users,
)

configure_logging(settings.ENV, settings.LOG_LEVEL)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("gymhub")
    logger.info("Starting GymHub backend...")
    app.state.startup_time = time.time()
    if check_connection():
        create_all_tables()
    else:
        logger.warning("Database unavailable at startup; tables not created")
    try:
        yield
    finally:
        logging.getLogger("gymhub").info("Stopping GymHub backend...")


app = FastAPI(title="GymHub - Backend", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.root_router)
app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(trainers.router)
app.include_router(trainer_portal.auth_router)
app.include_router(trainer_portal.router)
app.include_router(users.router)
app.include_router(shop.router)
app.include_router(membership.router)
app.include_router(contact.router)
app.include_router(admin.router)
