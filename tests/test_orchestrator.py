"""Tests for configuration and component wiring."""

import pytest

from financeflow.config import AppSettings, SyncSettings, get_settings, validate_all_settings
from financeflow.orchestrator import create_app_components


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GOOGLE_SHEETS_CREDENTIALS_PATH", "GOOGLE_SHEETS_SPREADSHEET_ID", "LEGACY_API_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for pydantic-settings classes."""

    def test_log_level_is_normalized(self):
        assert AppSettings(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValueError):
            AppSettings(log_level="LOUD")

    def test_sync_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("SYNC_RETRY_QUEUE_SIZE", "7")
        assert SyncSettings().retry_queue_size == 7

    def test_missing_google_sheets_settings_reported(self):
        status = validate_all_settings()
        assert status["google_sheets"] is False
        assert "google_sheets_error" in status
        assert status["local_storage"] is True


class TestCreateAppComponents:
    """Tests for the factory."""

    @pytest.mark.asyncio
    async def test_local_only_components(self):
        components = create_app_components(use_remote=False, use_files=False)
        assert components.remote_store is None
        assert components.legacy_client is None
        assert await components.controller.load() == "local"
        assert len(components.controller.divisions) == 4

    def test_unconfigured_remote_falls_back_to_local_only(self):
        components = create_app_components(use_remote=True, use_files=False)
        assert components.remote_store is None

    @pytest.mark.asyncio
    async def test_configured_remote_and_legacy(self, monkeypatch, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")
        monkeypatch.setenv("LEGACY_API_ENABLED", "true")
        monkeypatch.setenv("LOCAL_STORAGE_DATA_DIR", str(tmp_path / "data"))

        components = create_app_components()

        assert components.remote_store is not None
        assert components.legacy_client is not None
        assert components.legacy_client.base_url == "http://localhost:3001"
        await components.controller.load()
        assert (tmp_path / "data" / "financeflow_divisions.json").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
