"""
API test package for the dashboard.

This package contains tests for the JSON endpoints. Tests use the Flask
test client with the platform API monkeypatched out and demonstrate:
- Auth-cookie enforcement
- Upstream proxying and error relaying
- Graceful degradation when the platform API is unavailable
"""
