from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.clock import ClockSource
from .common.http import register_error_handlers
from .database.bootstrap import apply_schema, list_tables

from .container import build_container
from .tracking.controller import register as register_tracking
from .reports.controller import register as register_reports
from .reminders.controller import register as register_reminders

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger().setLevel(numeric)


def create_app(settings_module: Optional[str] = None, *, clock: Optional[ClockSource] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    backend = str(getattr(settings, "STORE_BACKEND", "mysql")).lower()
    db_config = getattr(settings, "DB_CONFIG", {})
    logger.info("settings=%s store=%s", settings_module, backend)

    if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info(
            "schema ready on %s@%s:%s/%s (tables=%d)",
            db_config.get("user"), db_config.get("host"), db_config.get("port", 3306), db_config.get("database"),
            len(list_tables(db_config)),
        )

    container = build_container(settings, clock=clock)
    app.extensions["timekeeper"] = container

    register_error_handlers(app)
    register_tracking(app, container)
    register_reports(app, container)
    register_reminders(app, container)

    if container.scheduler_enabled:
        container.scheduler.start()
        atexit.register(container.scheduler.stop)

    return app
