"""LoterIA: generate lottery combinations and check them against official draws."""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from flask import Flask


def create_app(overrides: dict[str, Any] | None = None) -> Flask:
    """Application factory.

    Args:
        overrides: config values applied on top of the APP_ENV config class.

    Returns:
        Configured Flask application.
    """
    load_dotenv()

    from loteria.config import get_config
    from loteria.db import init_db
    from loteria.error_handlers import register_error_handlers
    from loteria.logging_config import configure_logging
    from loteria.routes.generate import generate_bp
    from loteria.routes.health import health_bp
    from loteria.routes.history import history_bp
    from loteria.services.draw_result_service import DrawResultClient
    from loteria.services.generator_service import CombinationGenerator

    app = Flask(__name__)
    app.config.from_object(get_config())
    if overrides:
        app.config.update(overrides)

    configure_logging(app)
    init_db(app)
    register_error_handlers(app)

    app.extensions["draw_results"] = DrawResultClient.from_config(app.config)
    app.extensions["generator"] = CombinationGenerator.from_config(app.config)

    app.register_blueprint(health_bp)
    app.register_blueprint(generate_bp)
    app.register_blueprint(history_bp)

    return app
