from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.datetime_utils import isoformat, now_local
from .common.responses import ok, register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_TOKEN_MAX_AGE
from .database.bootstrap import (
    apply_schema,
    ensure_demo_attendance,
    ensure_demo_timetable,
    ensure_demo_users,
    list_tables,
)
from .timetable.controller import register as register_timetable
from .users.controller import register as register_users


def create_app(settings_module: Optional[str] = None, container: Optional[Container] = None) -> Flask:
    """Application factory.

    ``container`` replaces the MySQL-backed wiring; startup schema and seed
    steps are skipped when one is given.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["APP_ENV_NAME"] = getattr(settings, "APP_ENV_NAME", "development")
    token_max_age = int(getattr(settings, "TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE))

    app.logger.setLevel(getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))
    app.logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            app.logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_demo_users(db_config)
            ensure_demo_timetable(db_config)
            ensure_demo_attendance(db_config)
            app.logger.info("demo seed ready")
        container = build_container(
            db_config=db_config,
            secret_key=app.secret_key,
            token_max_age=token_max_age,
        )

    app.extensions["academic_hub"] = container

    register_error_handlers(app)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return ok(
            {
                "status": "OK",
                "environment": app.config["APP_ENV_NAME"],
                "timestamp": isoformat(now_local()),
            },
            message="Academic Hub API is running",
        )

    register_users(app, container)
    register_timetable(app, container)
    register_attendance(app, container)

    return app
