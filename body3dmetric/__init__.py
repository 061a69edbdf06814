"""
Body3DMetric: body measurements and a parametric 3D silhouette from one photo.
"""
import logging
from typing import Optional

from flasgger import Swagger
from flask import Flask

from .config.settings import Settings, settings as default_settings
from .middleware.request_context import register_request_context
from .routes.health_routes import health_bp
from .routes.scan_routes import scan_bp


def create_app(settings: Optional[Settings] = None, estimator=None) -> Flask:
    """
    Build the Flask app.

    Args:
      settings: overrides the environment-derived settings (tests)
      estimator: ratio oracle to inject; built from settings when None
    """
    settings = settings or default_settings

    app = Flask(__name__)
    app.config["BODY3D_SETTINGS"] = settings
    if estimator is not None:
        app.config["RATIO_ESTIMATOR"] = estimator

    logging.basicConfig(level=settings.LOG_LEVEL)
    app.logger.setLevel(settings.LOG_LEVEL)

    register_request_context(app)
    app.register_blueprint(health_bp)
    app.register_blueprint(scan_bp)
    Swagger(app)
    return app
