# tests/test_config.py
"""
Tests for environment settings, YAML preferences and logging setup.
"""
import logging
import os

import pytest
import yaml

from core.config import DEFAULT_CONFIG, ConfigError, ConfigManager, load_settings
from core.logging_setup import LOG_FILENAME, setup_logging


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------

def test_settings_from_env():
    settings = load_settings({
        "AWS_REGION": "eu-west-1",
        "AWS_ACCESS_KEY_ID": "AKIA",
        "AWS_SECRET_ACCESS_KEY": "secret",
        "AWS_BUCKET_NAME": " camera-bucket ",
    })
    assert settings.bucket_name == "camera-bucket"
    assert settings.region == "eu-west-1"
    assert settings.access_key_id == "AKIA"
    assert settings.endpoint_url is None


def test_vite_prefixed_fallback():
    settings = load_settings({
        "VITE_AWS_BUCKET_NAME": "legacy-bucket",
        "VITE_AWS_REGION": "us-east-2",
        "AWS_REGION": "eu-central-1",
    })
    assert settings.bucket_name == "legacy-bucket"
    assert settings.region == "eu-central-1"


def test_endpoint_url():
    settings = load_settings({"AWS_BUCKET_NAME": "b", "AWS_ENDPOINT_URL": "http://localhost:9000"})
    assert settings.endpoint_url == "http://localhost:9000"


def test_missing_bucket():
    with pytest.raises(ConfigError):
        load_settings({"AWS_REGION": "eu-west-1"})


def test_dotenv_file(tmp_path, monkeypatch):
    monkeypatch.delenv("AWS_BUCKET_NAME", raising=False)
    monkeypatch.delenv("VITE_AWS_BUCKET_NAME", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("AWS_BUCKET_NAME=from-dotenv\n")

    try:
        assert load_settings(dotenv_path=str(env_file)).bucket_name == "from-dotenv"
    finally:
        os.environ.pop("AWS_BUCKET_NAME", None)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

class TestConfigManager:

    def test_defaults_when_missing(self, tmp_path):
        config = ConfigManager(str(tmp_path / "none.yaml"))
        assert config.config == DEFAULT_CONFIG
        assert config.refresh_interval == 30

    def test_merges_user_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"refresh_interval": 10, "download_dir": "~/pics"}))

        config = ConfigManager(str(path))
        assert config.refresh_interval == 10
        assert config.get("url_ttl") == 3600
        assert config.download_dir == os.path.expanduser("~/pics")

    def test_invalid_interval_falls_back(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"refresh_interval": 42}))
        assert ConfigManager(str(path)).refresh_interval == 30

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("refresh_interval: [unclosed\n")
        with pytest.raises(ConfigError):
            ConfigManager(str(path))

    def test_set_persists(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        config = ConfigManager(str(path))
        config.set("refresh_interval", 60)
        config.set("ui.theme", "dark")

        reloaded = ConfigManager(str(path))
        assert reloaded.refresh_interval == 60
        assert reloaded.get("ui.theme") == "dark"
        assert reloaded.get("ui.missing", "fallback") == "fallback"

    def test_defaults_not_mutated(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.yaml"))
        config.set("refresh_interval", 5)
        assert DEFAULT_CONFIG["refresh_interval"] == 30


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def test_setup_logging_writes_file(tmp_path):
    log_path = setup_logging("DEBUG", str(tmp_path / "logs"))
    try:
        assert log_path == str(tmp_path / "logs" / LOG_FILENAME)
        logging.getLogger("core.test").info("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_path) as f:
            content = f.read()
        assert "[INFO] core.test - hello from the test" in content
        assert logging.getLogger("botocore").level == logging.WARNING
    finally:
        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)
