"""
Configuration management for the Funnel Tracking System.
Handles loading, validating, and providing access to tracking settings.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class TrackingConfig:
    """Event capture and local persistence settings."""
    max_events: int
    events_key: str
    user_data_key: str
    session_key: str
    export_prefix: str
    default_price: float
    default_conversion_type: str


@dataclass
class RemoteConfig:
    """Remote document store settings."""
    backend: str
    mongo_uri: str
    database: str
    events_collection: str
    users_collection: str
    default_country: str
    language: str
    query_limit: int
    server_selection_timeout_ms: int


@dataclass
class AutoInstrumentationConfig:
    """Heuristic DOM instrumentation settings."""
    enabled: bool
    language: str


@dataclass
class AppConfig:
    """Admin server configuration settings."""
    host: str
    port: int
    debug: bool


@dataclass
class PathsConfig:
    """Path configuration settings."""
    profile_dir: str
    export_dir: str


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "tracking_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                    # Merge file config with defaults
                    self._merge_config(file_config)
            except (json.JSONDecodeError, FileNotFoundError):
                # Keep default config if file is invalid or not found
                pass

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "tracking": {
                "max_events": 10000,
                "events_key": "funnel_events",
                "user_data_key": "funnel_user_data",
                "session_key": "funnel_session_id",
                "export_prefix": "funnel_events_",
                "default_price": 19.90,
                "default_conversion_type": "chat_reached"
            },
            "remote": {
                "backend": "none",
                "mongo_uri": "mongodb://localhost:27017",
                "database": "funnel_tracking",
                "events_collection": "events",
                "users_collection": "users",
                "default_country": "MX",
                "language": "es",
                "query_limit": 1000,
                "server_selection_timeout_ms": 5000
            },
            "auto_instrumentation": {
                "enabled": True,
                "language": "pt"
            },
            "app": {
                "host": "127.0.0.1",
                "port": 22590,
                "debug": False
            },
            "paths": {
                "profile_dir": "client_data",
                "export_dir": "exports"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config:
                if isinstance(values, dict):
                    self._config[section].update(values)
                else:
                    self._config[section] = values
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # Tracking settings
        if os.getenv("MAX_EVENTS"):
            self._config["tracking"]["max_events"] = int(os.getenv("MAX_EVENTS"))

        # Remote store settings
        if os.getenv("REMOTE_BACKEND"):
            self._config["remote"]["backend"] = os.getenv("REMOTE_BACKEND").lower()

        if os.getenv("MONGO_URI"):
            self._config["remote"]["mongo_uri"] = os.getenv("MONGO_URI")

        if os.getenv("MONGO_DB"):
            self._config["remote"]["database"] = os.getenv("MONGO_DB")

        if os.getenv("DEFAULT_COUNTRY"):
            self._config["remote"]["default_country"] = os.getenv("DEFAULT_COUNTRY")

        # Auto-instrumentation settings
        if os.getenv("AUTO_INSTRUMENTATION"):
            self._config["auto_instrumentation"]["enabled"] = os.getenv("AUTO_INSTRUMENTATION").lower() == "true"

        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

    def get_tracking_config(self) -> TrackingConfig:
        """Get tracking configuration."""
        tracking_config = self._config["tracking"]
        return TrackingConfig(
            max_events=tracking_config["max_events"],
            events_key=tracking_config["events_key"],
            user_data_key=tracking_config["user_data_key"],
            session_key=tracking_config["session_key"],
            export_prefix=tracking_config["export_prefix"],
            default_price=tracking_config["default_price"],
            default_conversion_type=tracking_config["default_conversion_type"]
        )

    def get_remote_config(self) -> RemoteConfig:
        """Get remote store configuration."""
        remote_config = self._config["remote"]
        return RemoteConfig(
            backend=remote_config["backend"],
            mongo_uri=remote_config["mongo_uri"],
            database=remote_config["database"],
            events_collection=remote_config["events_collection"],
            users_collection=remote_config["users_collection"],
            default_country=remote_config["default_country"],
            language=remote_config["language"],
            query_limit=remote_config["query_limit"],
            server_selection_timeout_ms=remote_config["server_selection_timeout_ms"]
        )

    def get_auto_instrumentation_config(self) -> AutoInstrumentationConfig:
        """Get auto-instrumentation configuration."""
        ai_config = self._config["auto_instrumentation"]
        return AutoInstrumentationConfig(
            enabled=ai_config["enabled"],
            language=ai_config["language"]
        )

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"]
        )

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        return PathsConfig(
            profile_dir=paths_config["profile_dir"],
            export_dir=paths_config["export_dir"]
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)


# Global configuration instance
config_manager = ConfigManager()


def get_tracking_config() -> TrackingConfig:
    """Get tracking configuration."""
    return config_manager.get_tracking_config()


def get_remote_config() -> RemoteConfig:
    """Get remote store configuration."""
    return config_manager.get_remote_config()


def get_auto_instrumentation_config() -> AutoInstrumentationConfig:
    """Get auto-instrumentation configuration."""
    return config_manager.get_auto_instrumentation_config()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def get_paths_config() -> PathsConfig:
    """Get paths configuration."""
    return config_manager.get_paths_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save configuration to file."""
    config_manager.save_config()
