"""Configuration management with environment support and JSON schema validation."""

import json
import os
from typing import Any, Dict, List, Optional
import logging
from dotenv import load_dotenv

from .image_embedder import DEFAULT_USER_AGENT
from .utils.exceptions import ConfigurationError
from .utils.validation import validate_settings_structure

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages application configuration with validation and environment support."""

    def __init__(self, config_dir: str = "config") -> None:
        """Initialize configuration manager."""
        self.config_dir = config_dir
        self._config_cache: Dict[str, Dict[str, Any]] = {}
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env files."""
        try:
            env_file = os.path.join(os.getcwd(), ".env")
            if os.path.exists(env_file):
                load_dotenv(env_file)
                logger.debug("Loaded environment from .env file")

            env = os.getenv("ENVIRONMENT", "development")
            env_specific_file = os.path.join(self.config_dir, f"{env}.env")

            if os.path.exists(env_specific_file):
                load_dotenv(env_specific_file)
                logger.debug(f"Loaded environment from {env_specific_file}")

        except OSError as e:
            logger.warning(f"Failed to load environment configuration: {e}")

    def get_default_settings(self) -> Dict[str, Any]:
        """Get default filler settings."""
        return {
            "version": "1.0",
            "filler": {
                "worksheet": None,
                "include_fill_log": False,
                "image": {
                    "timeout_seconds": 30,
                    "user_agent": DEFAULT_USER_AGENT,
                    "row_height": 80,
                    "column_width": 15,
                    "image_width": 70,
                    "image_height": 105,
                },
            },
        }

    def load_settings(self, settings_name: str = "default_settings") -> Dict[str, Any]:
        """Load settings from ``<config_dir>/<settings_name>.json`` with caching."""
        if settings_name in self._config_cache:
            return self._config_cache[settings_name]

        settings_file = os.path.join(self.config_dir, f"{settings_name}.json")

        if not os.path.exists(settings_file):
            if settings_name == "default_settings":
                settings = self._apply_environment_overrides(self.get_default_settings())
                self._config_cache[settings_name] = settings
                return settings
            raise ConfigurationError(f"Settings file not found: {settings_file}")

        try:
            with open(settings_file, "r", encoding="utf-8") as file:
                settings = json.load(file)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(f"Failed to load settings '{settings_name}': {e}")

        settings = self.merge_configs(self.get_default_settings(), settings)
        validate_settings_structure(settings)
        settings = self._apply_environment_overrides(settings)

        self._config_cache[settings_name] = settings
        logger.info(f"Loaded settings: {settings_name}")
        return settings

    def save_settings(self, settings: Dict[str, Any], settings_name: str) -> None:
        """Validate and save settings to the config directory."""
        validate_settings_structure(settings)

        try:
            os.makedirs(self.config_dir, exist_ok=True)
            settings_file = os.path.join(self.config_dir, f"{settings_name}.json")
            with open(settings_file, "w", encoding="utf-8") as file:
                json.dump(settings, file, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to save settings '{settings_name}': {e}")

        self._config_cache[settings_name] = settings
        logger.info(f"Saved settings: {settings_name}")

    def _apply_environment_overrides(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to filler settings."""
        filler = settings.setdefault("filler", {})
        image = filler.setdefault("image", {})

        worksheet = self._get_env_str("TEMPLATE_WORKSHEET", "")
        if worksheet:
            filler["worksheet"] = int(worksheet) if worksheet.isdigit() else worksheet

        filler["include_fill_log"] = self._get_env_bool(
            "INCLUDE_FILL_LOG", filler.get("include_fill_log", False)
        )

        image["timeout_seconds"] = self._get_env_float(
            "IMAGE_FETCH_TIMEOUT", image.get("timeout_seconds", 30)
        )
        image["user_agent"] = self._get_env_str(
            "IMAGE_USER_AGENT", image.get("user_agent", DEFAULT_USER_AGENT)
        )
        image["row_height"] = self._get_env_float(
            "IMAGE_ROW_HEIGHT", image.get("row_height", 80)
        )
        image["column_width"] = self._get_env_float(
            "IMAGE_COLUMN_WIDTH", image.get("column_width", 15)
        )
        image["image_width"] = self._get_env_int(
            "IMAGE_WIDTH_PX", image.get("image_width", 70)
        )
        image["image_height"] = self._get_env_int(
            "IMAGE_HEIGHT_PX", image.get("image_height", 105)
        )

        return settings

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_env_float(self, key: str, default: float) -> float:
        """Get float value from environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment variable."""
        return os.getenv(key, default)

    def _get_env_list(
        self, key: str, default: List[str], separator: str = ","
    ) -> List[str]:
        """Get list value from environment variable."""
        value = os.getenv(key)
        if value:
            return [item.strip() for item in value.split(separator) if item.strip()]
        return default

    def get_app_config(self) -> Dict[str, Any]:
        """Get application-wide configuration settings."""
        return {
            "development_mode": self._get_env_bool("DEVELOPMENT_MODE", False),
            "log_level": self._get_env_str("LOG_LEVEL", "INFO"),
            "api_key": self._get_env_str("API_KEY", ""),
            "max_file_size_mb": self._get_env_int("MAX_FILE_SIZE_MB", 50),
            "allowed_extensions": self._get_env_list("ALLOWED_EXTENSIONS", ["xlsx"]),
            "flask_config": {
                "host": self._get_env_str("FLASK_HOST", "0.0.0.0"),
                "port": self._get_env_int("FLASK_PORT", 5000),
                "debug": self._get_env_bool("FLASK_DEBUG", False),
            },
        }

    def get_filler_settings(self, settings_name: str = "default_settings") -> Dict[str, Any]:
        """Get the ``filler`` section of the named settings."""
        return self.load_settings(settings_name)["filler"]

    def merge_configs(
        self, base_config: Dict[str, Any], override_config: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge two configurations with override taking precedence."""
        merged = base_config.copy()

        for key, value in override_config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._config_cache.clear()
        logger.debug("Configuration cache cleared")

    def get_cached_configs(self) -> List[str]:
        """Get list of cached configuration names."""
        return list(self._config_cache.keys())
