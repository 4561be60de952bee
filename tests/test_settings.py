"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from wealthdash.config import AppSettings, StorageSettings, validate_all_settings
from wealthdash.services.parsing.document import EXTENSION_KINDS


class TestAppSettings:
    """Tests for AppSettings."""

    def test_fields(self):
        assert set(AppSettings.model_fields) == {
            "log_level",
            "default_base_currency",
            "insight_language",
            "max_upload_size_mb",
            "supported_file_formats",
            "max_document_pages",
            "render_scale",
            "jpeg_quality",
            "large_amount_threshold",
        }

    def test_every_readable_extension_is_uploadable(self):
        formats = AppSettings().supported_formats_list

        for extension in EXTENSION_KINDS:
            assert extension.lstrip(".") in formats

    def test_base_currency_is_normalized(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_BASE_CURRENCY", " usd ")
        assert AppSettings().default_base_currency == "USD"

    def test_upload_size_in_bytes(self, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "2")
        assert AppSettings().max_upload_size_bytes == 2 * 1024 * 1024


class TestStorageSettings:
    """Storage keys become file names."""

    @pytest.mark.parametrize("key", ["", "   ", "../escape", "a/b", "a\\b"])
    def test_unsafe_key_rejected(self, monkeypatch, key):
        monkeypatch.setenv("WEALTHDASH_STORAGE_STORAGE_KEY", key)
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_key_is_stripped(self, monkeypatch):
        monkeypatch.setenv("WEALTHDASH_STORAGE_STORAGE_KEY", "  ledger_v2 ")
        assert StorageSettings().storage_key == "ledger_v2"


class TestValidateAllSettings:
    """Startup checks never raise."""

    def test_missing_key_is_reported(self):
        results = validate_all_settings()

        assert results["gemini"] is False
        assert "GEMINI_API_KEY" in results["gemini_error"]
        assert results["storage"] is True
        assert results["app"] is True
