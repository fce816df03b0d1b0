import logging
import os
import yaml

from settings_schema import SettingsSchema, validate_settings

APP_VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path or os.environ.get("SPOTTER_SETTINGS", "settings.yaml")

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        validate_settings(data)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)

    def settings(self) -> SettingsSchema:
        """Return the validated settings, filling in defaults."""
        return validate_settings(self.load())


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and API processes."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
