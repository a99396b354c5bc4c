"""Tests for settings and the backend factory."""

import pytest

from chunkpilot.backends.factory import get_upload_backend
from chunkpilot.backends.http import HttpUploadBackend
from chunkpilot.backends.memory import InMemoryUploadBackend
from chunkpilot.core.config import Settings, settings


def test_chunk_size_defaults_to_100_mib():
    """Test the default chunk size."""
    assert Settings().chunk_size_bytes == 100 * 1024 * 1024


def test_download_base_url_falls_back_to_backend(monkeypatch):
    """Test download URL defaulting."""
    monkeypatch.setattr(settings, "BACKEND_BASE_URL", "http://store:8080/")
    monkeypatch.setattr(settings, "DOWNLOAD_BASE_URL", "")
    assert settings.download_base_url == "http://store:8080"

    monkeypatch.setattr(settings, "DOWNLOAD_BASE_URL", "https://cdn.example.com")
    assert settings.download_base_url == "https://cdn.example.com"


def test_settings_read_environment(monkeypatch):
    """Test that settings come from environment variables."""
    monkeypatch.setenv("CHUNK_SIZE_MB", "8")
    monkeypatch.setenv("UPLOAD_BACKEND", "memory")

    configured = Settings()

    assert configured.chunk_size_bytes == 8 * 1024 * 1024
    assert configured.UPLOAD_BACKEND == "memory"


def test_factory_memory_backend(monkeypatch):
    """Test building the in-memory backend."""
    monkeypatch.setattr(settings, "UPLOAD_BACKEND", "memory")
    monkeypatch.setattr(settings, "CHUNK_SIZE_MB", 1)

    backend = get_upload_backend()

    assert isinstance(backend, InMemoryUploadBackend)
    assert backend.chunk_size == 1024 * 1024


def test_factory_http_backend(monkeypatch):
    """Test building the HTTP backend from settings."""
    monkeypatch.setattr(settings, "UPLOAD_BACKEND", "HTTP")
    monkeypatch.setattr(settings, "BACKEND_BASE_URL", "http://store:8080")
    monkeypatch.setattr(settings, "TRANSPORT_MAX_ATTEMPTS", 5)

    backend = get_upload_backend()

    assert isinstance(backend, HttpUploadBackend)
    assert backend.base_url == "http://store:8080"
    assert backend.max_attempts == 5


def test_factory_unknown_backend(monkeypatch):
    """Test that an unknown backend is a configuration error."""
    monkeypatch.setattr(settings, "UPLOAD_BACKEND", "ftp")

    with pytest.raises(ValueError, match="Unknown upload backend"):
        get_upload_backend()
