"""
JSON API endpoints for the load-test dashboard.

Every endpoint except the health check reads the caller's bearer token
from the ``AUTH_COOKIE_NAME`` cookie and talks to the platform API on
their behalf. The analytics endpoints never fail because the upstream is
unavailable: they fall back to empty report lists and return the "no
data" placeholders instead.

Endpoints:
    GET /api/health               - Health check
    GET /api/reports/recent       - Proxy the platform's recent reports
    GET /api/analytics/snapshot   - Latency and success-rate snapshot
    GET /api/analytics/anomalies  - Latency anomalies, sorted and grouped
"""

import logging
import os

import requests
from flask import Blueprint, Response, current_app, jsonify, request

from dashboard_app.analytics import (
    AnomalyThresholds,
    build_performance_snapshot,
    detect_latency_anomalies,
    group_anomalies_by_severity,
    parse_anomalies,
)
from dashboard_app.api_client import (
    RECENT_REPORTS_PATH,
    call_api,
    fetch_latency_anomalies,
    fetch_recent_reports,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

ANOMALY_SOURCES = ("upstream", "local")


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------

def _session_token() -> str | None:
    """Return the bearer token stored in the auth cookie, if any."""
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    return token or None


def _unauthorized() -> tuple[Response, int]:
    return jsonify({"error": "Unauthorized"}), 401


def _load_recent_reports(token: str) -> list[dict]:
    """Fetch recent reports for the analytics endpoints, degrading to []."""
    return fetch_recent_reports(
        current_app.config["API_BASE_URL"],
        token,
        timeout=current_app.config["API_TIMEOUT"],
        limit=current_app.config["RECENT_REPORTS_LIMIT"],
    )


# -----------------------------------------------------------------------------
# API Endpoints
# -----------------------------------------------------------------------------

@api_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """Health check endpoint for deployment verification."""
    return jsonify({
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "version": os.getenv("APP_VERSION", "unknown")
    }), 200


@api_bp.route("/reports/recent", methods=["GET"])
def recent_reports() -> tuple[Response, int]:
    """
    Proxy the platform's recent task reports.

    Returns:
        The upstream JSON body with the upstream status code, 401 without
        an auth cookie, 500 when the API base URL is not configured, or 502
        when the API cannot be reached.
    """
    token = _session_token()
    if not token:
        return _unauthorized()

    api_base_url = current_app.config.get("API_BASE_URL")
    if not api_base_url:
        return jsonify({"error": "API base URL is not configured."}), 500

    logger.info("GET /api/reports/recent - Proxying recent reports")
    try:
        response = call_api(
            api_base_url,
            token,
            RECENT_REPORTS_PATH,
            timeout=current_app.config["API_TIMEOUT"],
        )
    except requests.RequestException as exc:
        logger.warning(f"Failed to proxy recent reports: {exc}")
        return jsonify({"error": "Unable to reach the API."}), 502

    ok = 200 <= response.status_code < 300
    try:
        body = response.json()
    except ValueError:
        body = [] if ok else {"error": "Unexpected API response."}

    return jsonify(body), response.status_code


@api_bp.route("/analytics/snapshot", methods=["GET"])
def performance_snapshot() -> tuple[Response, int]:
    """
    Build the latency and success-rate snapshot from the recent reports.

    Returns:
        JSON with ``latency`` and ``successRate`` metrics plus the number
        of reports considered and the sample size.
    """
    token = _session_token()
    if not token:
        return _unauthorized()

    reports = _load_recent_reports(token)
    sample_size = current_app.config["PERFORMANCE_SAMPLE_SIZE"]
    snapshot = build_performance_snapshot(reports, sample_size=sample_size)
    logger.info(f"Built performance snapshot from {len(reports)} reports")

    return jsonify({
        **snapshot.to_dict(),
        "reportCount": len(reports),
        "sampleSize": sample_size,
    }), 200


@api_bp.route("/analytics/anomalies", methods=["GET"])
def latency_anomalies() -> tuple[Response, int]:
    """
    List latency anomalies, most severe first.

    Query Parameters:
        source: ``upstream`` (default) uses anomalies computed by the
            platform API; ``local`` runs the classifier over the recent
            reports.

    Returns:
        JSON with the sorted ``anomalies``, the same anomalies ``groups``
        by severity, the z-score ``threshold`` and the ``source`` used.
    """
    token = _session_token()
    if not token:
        return _unauthorized()

    source = request.args.get("source", "upstream")
    if source not in ANOMALY_SOURCES:
        return jsonify({
            "error": f"Invalid source. Must be one of: {list(ANOMALY_SOURCES)}"
        }), 400

    thresholds = AnomalyThresholds.from_config(current_app.config)
    if source == "local":
        anomalies = detect_latency_anomalies(_load_recent_reports(token), thresholds)
    else:
        records = fetch_latency_anomalies(
            current_app.config["API_BASE_URL"],
            token,
            timeout=current_app.config["API_TIMEOUT"],
        )
        anomalies = parse_anomalies(records, thresholds)

    logger.info(f"Found {len(anomalies)} latency anomalies (source={source})")
    groups = group_anomalies_by_severity(anomalies)
    return jsonify({
        "anomalies": [anomaly.to_dict() for anomaly in anomalies],
        "groups": {
            severity: [anomaly.to_dict() for anomaly in members]
            for severity, members in groups.items()
        },
        "threshold": thresholds.z_threshold,
        "source": source,
    }), 200


# -----------------------------------------------------------------------------
# Error Handlers
# -----------------------------------------------------------------------------

@api_bp.errorhandler(400)
def bad_request(error: Exception) -> tuple[Response, int]:
    """Handle 400 Bad Request errors."""
    return jsonify({"error": "Bad request"}), 400


@api_bp.errorhandler(404)
def not_found(error: Exception) -> tuple[Response, int]:
    """Handle 404 Not Found errors."""
    return jsonify({"error": "Resource not found"}), 404


@api_bp.errorhandler(500)
def internal_error(error: Exception) -> tuple[Response, int]:
    """Handle 500 Internal Server errors."""
    logger.error(f"Internal server error: {error}")
    return jsonify({"error": "Internal server error"}), 500
