"""
Tests for environment-driven settings.
"""

import pytest

from footwear_erp import ReadyTrigger, Settings


class TestSettingsFromEnv:
    def test_defaults_when_unset(self):
        settings = Settings.from_env({})

        assert settings == Settings()
        assert settings.ready_trigger is ReadyTrigger.ANY_ALLOCATION
        assert settings.seed_demo_data is True

    def test_values_are_parsed(self):
        settings = Settings.from_env(
            {
                "FOOTWEAR_ERP_DATABASE": "/tmp/erp.db",
                "FOOTWEAR_ERP_LOG_LEVEL": "debug",
                "FOOTWEAR_ERP_SEED_DEMO": "off",
                "FOOTWEAR_ERP_READY_TRIGGER": "FULL_SET",
                "FOOTWEAR_ERP_DEFAULT_PRIORITY": "3",
            }
        )

        assert settings.database_path == "/tmp/erp.db"
        assert settings.log_level == "DEBUG"
        assert settings.seed_demo_data is False
        assert settings.ready_trigger is ReadyTrigger.FULL_SET
        assert settings.default_priority == 3

    @pytest.mark.parametrize(
        "key, value",
        [
            ("FOOTWEAR_ERP_LOG_LEVEL", "LOUD"),
            ("FOOTWEAR_ERP_SEED_DEMO", "maybe"),
            ("FOOTWEAR_ERP_READY_TRIGGER", "sometimes"),
            ("FOOTWEAR_ERP_DEFAULT_PRIORITY", "high"),
        ],
    )
    def test_invalid_values_raise(self, key, value):
        with pytest.raises(ValueError):
            Settings.from_env({key: value})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("FOOTWEAR_ERP_DATABASE", "env.sqlite3")

        assert Settings.from_env().database_path == "env.sqlite3"
