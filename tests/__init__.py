"""
Test suite for the load-test dashboard.

This package contains:
- unit/: Analytics, models, formatters, API client and CLI tests
- integration/: JSON API tests through the Flask test client
"""
