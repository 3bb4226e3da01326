from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, send_from_directory
from werkzeug.exceptions import RequestEntityTooLarge

from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_RETENTION_INTERVAL_HOURS, MAX_UPLOAD_MB
from .core.logger import setup_logging
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .retention.scheduler import RetentionScheduler
from .roster.controller import register as register_roster
from .visits.controller import register as register_visits

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    A ready ``container`` can be injected; otherwise one is wired from the
    settings module selected by ``APP_ENV`` (and the database is contacted).
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", "") or None)

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = dict(getattr(settings, "DB_CONFIG"))
    max_upload_mb = int(getattr(settings, "MAX_UPLOAD_MB", MAX_UPLOAD_MB))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024
    app.config["ADMIN_PASSWORD"] = getattr(settings, "ADMIN_PASSWORD", "")
    app.config["MASTER_PASSWORD"] = getattr(settings, "MASTER_PASSWORD", "")
    app.config["HISTORY_PASSWORD"] = getattr(settings, "HISTORY_PASSWORD", "")

    logger.info("Starting visitor register (settings=%s)", settings_module)

    if container is None:
        db = DBConfig.from_mapping(db_config, pool_size=int(getattr(settings, "DB_POOL_SIZE", 10)))
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db)
            logger.info("Schema ready (tables=%s)", len(list_tables(db)))
        container = build_container(
            db_config=db_config,
            upload_dir=Path(getattr(settings, "UPLOAD_DIR", "uploads")),
            pool_size=db.pool_size,
        )

    register_visits(app, container)
    register_roster(app, container)

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploaded_photo")
    def uploaded_photo(filename: str):
        return send_from_directory(container.photos.directory.resolve(), filename)

    @app.errorhandler(RequestEntityTooLarge)
    def upload_too_large(e):
        return jsonify({"message": f"File too large. Maximum upload size is {max_upload_mb} MB."}), 400

    if bool(getattr(settings, "RETENTION_ENABLED", False)):
        scheduler = RetentionScheduler(
            container.retention_job,
            interval_hours=float(getattr(settings, "RETENTION_INTERVAL_HOURS", DEFAULT_RETENTION_INTERVAL_HOURS)),
        )
        scheduler.start()
        app.extensions["retention_scheduler"] = scheduler

    app.extensions["container"] = container
    return app
