from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import CONFIG
from .db import initialize_db
from .errors import register_exception_handlers
from .logging_config import configure_logging
from .routes import auth as auth_routes
from .routes import babies as baby_routes
from .routes import calendar as calendar_routes
from .routes import caretakers as caretaker_routes
from .routes import contacts as contact_routes
from .routes import database as database_routes
from .routes import logs as log_routes
from .routes import settings as settings_routes
from .routes import system as system_routes
from .routes import timeline as timeline_routes

configure_logging(CONFIG.log_level)
logger = logging.getLogger(__name__)

initialize_db()
logger.info("database ready", extra={"database_path": str(CONFIG.resolved_database_path)})

app = FastAPI(
    title="Sprout Track API",
    version=__version__,
    description="Family baby-activity tracker",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CONFIG.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

register_exception_handlers(app)

app.include_router(auth_routes.router)
app.include_router(baby_routes.router)
app.include_router(caretaker_routes.router)
app.include_router(settings_routes.router)
app.include_router(log_routes.router)
app.include_router(timeline_routes.router)
app.include_router(contact_routes.router)
app.include_router(calendar_routes.router)
app.include_router(system_routes.router)
app.include_router(database_routes.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
