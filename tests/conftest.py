"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")
os.environ.setdefault("DRAFT_STORE_DIR", tempfile.mkdtemp(prefix="locum-drafts-"))
os.environ.setdefault("RESEND_API_KEY", "")


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Patched where the health check and the lead store look it up.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = mock_response
    mock_client.table.return_value.select.return_value.execute.return_value = mock_response
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[{}])

    with (
        patch("src.core.supabase.get_supabase_client", return_value=mock_client),
        patch("src.services.lead_store_service.get_supabase_client", return_value=mock_client),
    ):
        yield mock_client


@pytest.fixture
def mock_resend_send() -> Generator[MagicMock, None, None]:
    """Patch the Resend SDK send call.

    Yields:
        MagicMock: The patched ``resend.Emails.send``.
    """
    with patch("resend.Emails.send", return_value={"id": "email-123"}) as mock_send:
        yield mock_send


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client
