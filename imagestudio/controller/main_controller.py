"""FastAPI application bootstrap and routing setup."""

import logging
from fastapi import FastAPI
from termcolor import colored
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from imagestudio.config.settings import Settings
from imagestudio.utility.logger import AppLogger
from imagestudio.handlers.error_handler import MapExceptions as me
from imagestudio.controller.image_controller import router as image_router
from imagestudio.controller.stats_controller import router as stats_router
from imagestudio.controller.auth_controller import admin_router, auth_router

AppLogger.init(
    level=logging.INFO,
    log_to_file=True,
)

settings = Settings()
app = FastAPI(title="Image Studio API")
me.register_exception_handlers(app)
logger = AppLogger.get_logger(__name__)

logger.info(colored(f"Image API at {settings.image_api_base_url}", "yellow"))
if not settings.admin_password_hash:
    logger.warning(colored("ADMIN_PASSWORD_HASH is not set; admin login is disabled", "red"))

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=False,
)
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(image_router)
app.include_router(stats_router)
app.include_router(auth_router)
app.include_router(admin_router)


@app.get("/", tags=["Health"])
def root():
    """Health probe indicating API wiring and logger setup succeeded."""
    return {"status": "ok", "message": "Setup Successful"}


@app.get("/health", tags=["Health"])
def health_check():
    """Secondary health endpoint used by deployments and monitoring probes."""
    return {"status": "ok", "message": "FastAPI server running!"}
