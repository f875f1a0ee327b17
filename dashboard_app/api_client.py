"""
HTTP client for the load-testing platform API.

The dashboard reads recent task reports and precomputed latency anomalies
from the platform API on behalf of the browser, forwarding the bearer token
from the ``lt_token`` cookie. Every fetch degrades to an empty list: a
missing base URL or token, a non-2xx reply, a network failure, or a body
that is not a JSON array all yield ``[]`` with a logged warning, so that
the analytics layer only ever sees resolved lists.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

RECENT_REPORTS_PATH = "/projects/_/tasks/reports/recent"
LATENCY_ANOMALIES_PATH = "/analytics/anomalies"

DEFAULT_TIMEOUT = 5


def api_url(api_base_url: str, path: str) -> str:
    """
    Build a full URL to an API endpoint.

    Joins the base URL with the given *path*, stripping/adding slashes as
    needed to avoid double-slash issues.
    """
    return f"{api_base_url.rstrip('/')}/{path.lstrip('/')}"


def bearer_headers(token: str) -> dict[str, str]:
    """Wrap a token in a ``Bearer`` Authorization header."""
    return {"Authorization": f"Bearer {token}"}


def call_api(
    api_base_url: str,
    token: str,
    path: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> requests.Response:
    """
    Call the platform API with the caller's bearer token and a timeout.

    Args:
        api_base_url: Base URL of the platform API.
        token: Bearer token taken from the session cookie.
        path: Relative endpoint path.
        timeout: Seconds to wait before giving up.
        **kwargs: Forwarded to :func:`requests.get` (e.g. ``params``).

    Returns:
        The :class:`requests.Response` from the API.

    Raises:
        requests.Timeout: If the API does not respond within ``timeout``.
        requests.RequestException: For network-level failures.
    """
    extra_headers = kwargs.pop("headers", {})
    return requests.get(
        api_url(api_base_url, path),
        headers={**extra_headers, **bearer_headers(token)},
        timeout=timeout,
        **kwargs,
    )


def _fetch_list(
    api_base_url: str | None,
    token: str | None,
    path: str,
    *,
    timeout: float,
    description: str,
) -> list[Any]:
    if not api_base_url or not token:
        return []

    try:
        response = call_api(api_base_url, token, path, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning(f"Failed to fetch {description}: {exc}")
        return []

    if not 200 <= response.status_code < 300:
        logger.warning(f"Failed to fetch {description}: HTTP {response.status_code}")
        return []

    try:
        payload = response.json()
    except ValueError:
        logger.warning(f"Failed to fetch {description}: response is not JSON")
        return []

    if not isinstance(payload, list):
        logger.warning(f"Failed to fetch {description}: expected a JSON array")
        return []
    return payload


def fetch_recent_reports(
    api_base_url: str | None,
    token: str | None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """
    Fetch the most recent task reports, newest first.

    Args:
        api_base_url: Base URL of the platform API.
        token: Bearer token from the session cookie.
        timeout: Request timeout in seconds.
        limit: Keep at most this many reports when set.

    Returns:
        A list of raw report dictionaries, possibly empty.
    """
    reports = _fetch_list(
        api_base_url,
        token,
        RECENT_REPORTS_PATH,
        timeout=timeout,
        description="recent reports",
    )
    if limit is not None:
        reports = reports[:limit]
    return reports


def fetch_latency_anomalies(
    api_base_url: str | None,
    token: str | None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[dict[str, Any]]:
    """Fetch latency anomalies precomputed by the platform API."""
    return _fetch_list(
        api_base_url,
        token,
        LATENCY_ANOMALIES_PATH,
        timeout=timeout,
        description="latency anomalies",
    )
