"""
Shared pytest fixtures for the dashboard test suite.

This module contains fixtures that are shared across all test modules.
Fixtures follow the Arrange-Act-Assert (AAA) pattern and ensure test
isolation by providing fresh data for each test.

Key Concepts Demonstrated:
- Fixture scopes (function, session)
- Test data factories for loosely-typed report payloads
- Test client creation with an auth cookie
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any
from faker import Faker

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"

from dashboard_app import create_app
from dashboard_app.models import ReportStatus


# Initialize Faker for generating test data
fake = Faker()

AUTH_TOKEN = "test-bearer-token"

# Anchor for generated report timestamps; older runs step back one hour each.
BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _to_iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create application instance for the test session.

    The 'session' scope means the same app instance is reused for all
    tests, improving performance.

    Yields:
        Flask application instance configured for testing.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client without any auth cookie.

    Args:
        app: Flask application fixture.

    Yields:
        Flask test client for making HTTP requests.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def auth_client(app):
    """
    Create a test client carrying the bearer token cookie.

    Args:
        app: Flask application fixture.

    Yields:
        Flask test client whose requests include the auth cookie.
    """
    with app.test_client() as test_client:
        test_client.set_cookie(app.config["AUTH_COOKIE_NAME"], AUTH_TOKEN)
        yield test_client


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def report_factory():
    """
    Factory fixture for building raw report dictionaries.

    Reports come back in the platform API's camelCase wire format. Only
    the metric fields that are passed in are included, so tests can build
    the sparse payloads the analytics must tolerate.

    Returns:
        Function that creates and returns report dictionaries.

    Example:
        def test_something(report_factory):
            report = report_factory(p95_ms=420, success_rate=99.5)
    """
    counter = {"value": 0}

    def _create_report(
        *,
        report_id: str | None = None,
        task_id: str = "task-checkout",
        task_label: str | None = None,
        status: str = ReportStatus.COMPLETED.value,
        started_at: datetime | str | None = None,
        hours_ago: int | None = None,
        p95_ms: Any = None,
        average_ms: Any = None,
        success_rate: Any = None,
        results: dict[str, Any] | None = None,
        with_metrics: bool = True,
        duration_seconds: float = 0,
    ) -> dict[str, Any]:
        """
        Create a report with the given or default values.

        Args:
            report_id: Report identifier (defaults to a random UUID).
            task_id: Identifier of the task the run belongs to.
            task_label: Task label (defaults to a random phrase).
            status: Run status (defaults to completed).
            started_at: Start timestamp, as a datetime or ISO string.
            hours_ago: Alternative to ``started_at``, relative to BASE_TIME.
            p95_ms: ``metrics.p95Ms`` value, omitted when None.
            average_ms: ``metrics.averageMs`` value, omitted when None.
            success_rate: ``metrics.successRate`` value, omitted when None.
            results: ``summaryJson.results`` mapping, omitted when None.
            with_metrics: Include the ``metrics`` object at all.
            duration_seconds: Gap between ``startedAt`` and ``completedAt``.

        Returns:
            Report dictionary in the API wire format.
        """
        counter["value"] += 1
        if started_at is None:
            offset = hours_ago if hours_ago is not None else counter["value"]
            started_at = BASE_TIME - timedelta(hours=offset)
        completed_at = started_at
        if isinstance(started_at, datetime):
            completed_at = _to_iso(started_at + timedelta(seconds=duration_seconds))
            started_at = _to_iso(started_at)

        summary: dict[str, Any] = {
            "scenario": {"mode": "fixed", "totalRequests": 100},
        }
        if with_metrics:
            metrics: dict[str, Any] = {}
            if p95_ms is not None:
                metrics["p95Ms"] = p95_ms
            if average_ms is not None:
                metrics["averageMs"] = average_ms
            if success_rate is not None:
                metrics["successRate"] = success_rate
            summary["metrics"] = metrics
        if results is not None:
            summary["results"] = results

        return {
            "id": report_id or fake.uuid4(),
            "status": status,
            "startedAt": started_at,
            "completedAt": completed_at,
            "summaryJson": summary,
            "task": {
                "id": task_id,
                "label": task_label or fake.catch_phrase(),
                "method": "GET",
                "project": {
                    "id": fake.uuid4(),
                    "name": fake.bs().title(),
                    "organization": {
                        "id": fake.uuid4(),
                        "name": fake.company(),
                        "slug": fake.slug(),
                    },
                },
            },
        }

    return _create_report


@pytest.fixture
def task_history(report_factory):
    """
    Build a chronological run history for one task.

    Returns:
        Function taking p95 values oldest-first and returning reports
        newest-first, as the recent-reports API would.

    Example:
        def test_something(task_history):
            reports = task_history([100, 102, 98, 500], task_id="t-1")
    """

    def _build(p95_values: list[float], task_id: str = "task-checkout") -> list[dict[str, Any]]:
        count = len(p95_values)
        reports = [
            report_factory(task_id=task_id, p95_ms=value, hours_ago=count - index)
            for index, value in enumerate(p95_values)
        ]
        return list(reversed(reports))

    return _build
