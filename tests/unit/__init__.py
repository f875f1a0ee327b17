"""Unit tests for the analytics, formatting, and client modules."""
