"""Shared fixtures for backend tests."""

from __future__ import annotations

import base64
import os
import sys
from pathlib import Path

import pytest

# Ensure the backend src directory is on sys.path so imports resolve.
_src = Path(__file__).resolve().parent.parent / "backend" / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

# Set required env vars BEFORE importing so config checks pass.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

from services.encryption import reset_codec  # noqa: E402


TEST_SECRET = b"k" * 32


@pytest.fixture
def secret_bytes() -> bytes:
    return TEST_SECRET


@pytest.fixture
def secure_field_env(monkeypatch):
    """Configure SECURE_FIELD_SECRET and make sure the cached codec picks it up."""
    monkeypatch.setenv("SECURE_FIELD_SECRET", base64.b64encode(TEST_SECRET).decode("ascii"))
    reset_codec()
    yield TEST_SECRET
    reset_codec()
