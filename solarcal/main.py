import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project root .env
project_dir = Path(__file__).resolve().parent.parent
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=project_dir / ".env")

# Import after dotenv is loaded
from solarcal.api import calendar, health, presets  # noqa: E402
from solarcal.core.config import Settings, cors_origins, settings, validate_config  # noqa: E402
from solarcal.core.database import build_engine, create_all_tables  # noqa: E402
from solarcal.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from solarcal.core.logging import configure_logging  # noqa: E402
from solarcal.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from solarcal.features.presets.persistence import SqlPresetStore  # noqa: E402
from solarcal.features.presets.service import PresetRegistry  # noqa: E402

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


def build_registry(settings_obj: Optional[Settings] = None):
    """Preset registry for the configured store; returns (registry, engine or None)."""
    cfg = settings_obj or settings
    if not cfg.DATABASE_URL:
        return PresetRegistry(settings_obj=cfg), None

    engine = build_engine(cfg.DATABASE_URL)
    create_all_tables(engine)
    registry = PresetRegistry(
        lambda user_id: SqlPresetStore(user_id, engine=engine),
        settings_obj=cfg,
    )
    return registry, engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("solarcal")
    logger.info("Starting solar calendar service...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        engine = getattr(app.state, "db_engine", None)
        if engine is not None:
            engine.dispose()
        logging.getLogger("solarcal").info("Stopping solar calendar service...")


def create_app(
    settings_obj: Optional[Settings] = None,
    registry: Optional[PresetRegistry] = None,
) -> FastAPI:
    cfg = settings_obj or settings
    app = FastAPI(title="Solar Calendar", lifespan=lifespan)

    engine = None
    if registry is None:
        registry, engine = build_registry(cfg)
    app.state.preset_registry = registry
    app.state.db_engine = engine

    # Middlewares
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.root_router, tags=["health"])
    app.include_router(calendar.router, tags=["calendar"])
    app.include_router(presets.router, tags=["presets"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("solarcal.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
