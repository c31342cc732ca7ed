"""Tests for environment-driven settings."""

import logging

import pytest
from pydantic import ValidationError

from DWH.common.config import Settings
from DWH.common.logging import configure_logging, create_run_log_file, set_batch_context


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DWH_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.watermark_buffer_days == 1
        assert settings.metadata_max_workers == 1
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DWH_DATABASE_URL", "sqlite:///warehouse.db")
        monkeypatch.setenv("DWH_METADATA_MAX_WORKERS", "4")
        monkeypatch.setenv("DWH_LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.database_url == "sqlite:///warehouse.db"
        assert settings.metadata_max_workers == 4
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("name,value", [
        ("DWH_METADATA_MAX_WORKERS", "0"),
        ("DWH_LOG_LEVEL", "LOUD"),
    ])
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    set_batch_context(None)


class TestLogging:

    def test_batch_id_stamped_on_records(self, tmp_path, restore_root_logging):
        log_file = create_run_log_file(str(tmp_path / "logs"))
        configure_logging("INFO", log_file)
        set_batch_context(12)

        logging.getLogger("DWH.orchestrator").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_file, encoding="utf-8") as f:
            content = f.read()
        assert "[batch 12]" in content
        assert "DWH.orchestrator: hello" in content
