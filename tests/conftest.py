"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that loads settings, so the
global Settings object is built from these test values.
"""

import os
from unittest.mock import Mock

import pytest

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "ollama")
os.environ.setdefault("LLM_MODEL", "qwen2.5-coder")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456,test-admin-key-789")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-789")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def clock() -> Mock:
    """Controllable time source starting at t=1000s."""
    return Mock(return_value=1000.0)
