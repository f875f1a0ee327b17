"""
Flask application factory module.

This module creates and configures the dashboard application using the
factory pattern, allowing for different configurations (development,
testing, production). The application is stateless: it reads reports from
the load-testing platform API and serves the performance snapshot and
latency anomalies as JSON.
"""

import logging

from flask import Flask

from config import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _apply_thresholds_file(app: Flask) -> None:
    """Override anomaly settings from ``ANALYTICS_THRESHOLDS_PATH`` when set."""
    path = app.config.get("ANALYTICS_THRESHOLDS_PATH")
    if not path:
        return

    from .analytics import AnomalyThresholds, load_anomaly_thresholds

    thresholds = load_anomaly_thresholds(path, AnomalyThresholds.from_config(app.config))
    app.config.update(
        ANOMALY_Z_THRESHOLD=thresholds.z_threshold,
        ANOMALY_CRITICAL_Z_THRESHOLD=thresholds.critical_z_threshold,
        ANOMALY_MIN_BASELINE_SAMPLES=thresholds.min_baseline_samples,
        ANOMALY_BASELINE_WINDOW=thresholds.baseline_window,
    )
    logger.info(f"Loaded anomaly thresholds from {path}")


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     If None, uses FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    _apply_thresholds_file(app)

    logger.info(f"Creating app with config: {config_class.__name__}")

    if not app.config.get("API_BASE_URL"):
        logger.warning("API_BASE_URL is not configured; upstream calls are disabled")

    # Register blueprints
    from dashboard_app.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    return app
