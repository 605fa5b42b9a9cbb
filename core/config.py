"""
Configuration Module
Storage settings from the environment and user preferences from a YAML file.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

import yaml
from dotenv import load_dotenv


REFRESH_INTERVALS = (0, 5, 10, 15, 30, 60, 300)

DEFAULT_CONFIG = {
    "refresh_interval": 30,
    "url_ttl": 3600,
    "sign_batch_size": 16,
    "download_dir": "~/Downloads",
    "logging_level": "INFO",
    "log_dir": "~/.bucketwatch",
}


class ConfigError(Exception):
    """Exception raised for missing or invalid configuration."""
    pass


@dataclass(frozen=True)
class Settings:
    """Storage connection settings, read once at startup."""
    bucket_name: str
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None


def _lookup(env: Mapping[str, str], name: str) -> Optional[str]:
    # VITE_-prefixed names from a frontend .env are accepted as fallbacks
    value = env.get(name) or env.get(f"VITE_{name}")
    return value.strip() if value else None


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> Settings:
    """
    Build storage settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ after loading .env.
        dotenv_path: Optional explicit .env file.

    Raises:
        ConfigError: If the bucket name is missing.
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    bucket_name = _lookup(env, "AWS_BUCKET_NAME")
    if not bucket_name:
        raise ConfigError("AWS_BUCKET_NAME is not set")

    return Settings(
        bucket_name=bucket_name,
        region=_lookup(env, "AWS_REGION"),
        access_key_id=_lookup(env, "AWS_ACCESS_KEY_ID"),
        secret_access_key=_lookup(env, "AWS_SECRET_ACCESS_KEY"),
        endpoint_url=_lookup(env, "AWS_ENDPOINT_URL"),
    )


def _default_config_path() -> str:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(xdg_config_home, "bucketwatch", "config.yaml")


def _deep_merge(base: dict, override: dict) -> dict:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ConfigManager:
    """User preferences stored as YAML, merged over DEFAULT_CONFIG."""

    def __init__(self, config_path: str | None = None):
        self.config_path = config_path or _default_config_path()
        self.config = self.load_config()

    def load_config(self) -> dict:
        try:
            with open(self.config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            return dict(DEFAULT_CONFIG)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed config at {self.config_path}") from exc
        if not isinstance(user_config, dict):
            raise ConfigError(f"Malformed config at {self.config_path}")
        return _deep_merge(DEFAULT_CONFIG, user_config)

    def save_config(self, config: dict) -> None:
        os.makedirs(os.path.dirname(self.config_path), exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False)

    def get(self, key, default=None):
        keys = key.split('.')
        value = self.config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default

    def set(self, key, value) -> None:
        keys = key.split('.')
        node = self.config
        for k in keys[:-1]:
            node = node.setdefault(k, {})
        node[keys[-1]] = value
        self.save_config(self.config)

    @property
    def refresh_interval(self) -> int:
        interval = self.get("refresh_interval", DEFAULT_CONFIG["refresh_interval"])
        if interval not in REFRESH_INTERVALS:
            return DEFAULT_CONFIG["refresh_interval"]
        return interval

    @property
    def download_dir(self) -> str:
        return os.path.expanduser(self.get("download_dir", DEFAULT_CONFIG["download_dir"]))

    @property
    def logging_level(self) -> str:
        return self.get("logging_level", "INFO")
