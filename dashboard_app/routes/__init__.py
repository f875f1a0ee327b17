"""
Routes package for the dashboard application.

This package contains route blueprints:
- api: JSON endpoints for the performance snapshot, latency anomalies,
  and the recent-reports proxy
"""
