"""
Application configuration module.

This module defines configuration classes for different environments
(development, testing, production). Configuration values are loaded
from environment variables with sensible defaults.

The dashboard never stores reports itself; it reads them from the
load-testing platform API at ``API_BASE_URL`` using the bearer token held
in the ``AUTH_COOKIE_NAME`` cookie.
"""

import os
from pathlib import Path

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent


def _api_base_url(default: str) -> str:
    """Resolve the upstream API base URL, accepting the legacy public variable."""
    return (
        os.environ.get("API_BASE_URL")
        or os.environ.get("NEXT_PUBLIC_API_BASE_URL")
        or default
    )


class Config:
    """Base configuration with default settings."""

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # Upstream load-testing platform API
    API_BASE_URL: str = _api_base_url("")
    API_TIMEOUT: int = int(os.environ.get("API_TIMEOUT", "5"))
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "lt_token")
    RECENT_REPORTS_LIMIT: int = int(os.environ.get("RECENT_REPORTS_LIMIT", "25"))

    # Performance snapshot
    PERFORMANCE_SAMPLE_SIZE: int = int(os.environ.get("PERFORMANCE_SAMPLE_SIZE", "10"))

    # Latency anomaly detection
    ANOMALY_Z_THRESHOLD: float = float(os.environ.get("ANOMALY_Z_THRESHOLD", "2.25"))
    ANOMALY_CRITICAL_Z_THRESHOLD: float = float(
        os.environ.get("ANOMALY_CRITICAL_Z_THRESHOLD", "3.0")
    )
    ANOMALY_MIN_BASELINE_SAMPLES: int = int(
        os.environ.get("ANOMALY_MIN_BASELINE_SAMPLES", "3")
    )
    ANOMALY_BASELINE_WINDOW: int = int(os.environ.get("ANOMALY_BASELINE_WINDOW", "20"))

    # Optional YAML file overriding the anomaly settings above
    ANALYTICS_THRESHOLDS_PATH: str = os.environ.get("ANALYTICS_THRESHOLDS_PATH", "")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False
    API_BASE_URL: str = _api_base_url("http://localhost:4000")


class TestingConfig(Config):
    """Testing environment configuration."""

    DEBUG: bool = True
    TESTING: bool = True

    # Non-routable host so that an unpatched call can never reach a real API
    API_BASE_URL: str = os.environ.get("TEST_API_BASE_URL", "http://loadtest-api.test")
    API_TIMEOUT: int = int(os.environ.get("TEST_API_TIMEOUT", "1"))
    ANALYTICS_THRESHOLDS_PATH: str = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
