"""Pytest configuration and shared fixtures."""

import os


# Signing key for session and CSRF cookies; must be set before src modules build their serializers
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("POCKETBASE_URL", "http://pocketbase.test")
