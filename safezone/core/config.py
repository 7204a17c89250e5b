"""
Configuration management for Safezone.

Handles loading and saving configuration from YAML files.
"""

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field, asdict

logger = logging.getLogger(__name__)


# Default config directory
CONFIG_DIR = Path.home() / ".safezone"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DATA_DIR = CONFIG_DIR / "data"

# Attendance backend
DEV_URL = "http://localhost:4000/api/v1"
PROD_URL = "https://hyphen-backend-qbkv.onrender.com/api/v1"


@dataclass
class BackendConfig:
    """Attendance backend connection."""
    base_url: str = PROD_URL
    timeout: float = 30.0  # Seconds per request


@dataclass
class Defaults:
    """Term settings used where a timetable has none of its own."""
    min_attendance: float = 75.0
    total_weeks: int = 16
    simulated_absences: int = 0
    user_batch: str = "All"


@dataclass
class Config:
    """Main configuration class."""
    backend: BackendConfig = field(default_factory=BackendConfig)
    defaults: Defaults = field(default_factory=Defaults)

    # User info
    user_id: str = ""
    student_name: str = ""

    def is_configured(self) -> bool:
        """Check if the backend can be queried."""
        return bool(self.backend.base_url and self.user_id)

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        """Create config from dictionary."""
        config = cls()

        if 'backend' in data:
            config.backend = BackendConfig(**data['backend'])

        if 'defaults' in data:
            config.defaults = Defaults(**data['defaults'])

        # Simple fields
        for field_name in ['user_id', 'student_name']:
            if field_name in data:
                setattr(config, field_name, data[field_name] or "")

        return config


def ensure_config_dir():
    """Ensure configuration directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def apply_env_overrides(config: Config) -> Config:
    """Override config values from SAFEZONE_* environment variables."""
    user_id = os.getenv("SAFEZONE_USER_ID")
    if user_id:
        config.user_id = user_id

    backend_url = os.getenv("SAFEZONE_BACKEND_URL")
    if backend_url:
        config.backend.base_url = backend_url

    return config


def load_config(config_path: Path = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file (uses default if None)

    Returns:
        Config object, with defaults when the file is missing or unreadable
    """
    if config_path is None:
        config_path = CONFIG_FILE

    ensure_config_dir()

    if not config_path.exists():
        return apply_env_overrides(Config())

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
        config = Config.from_dict(data)
    except (OSError, yaml.YAMLError, TypeError) as e:
        logger.warning("Error loading config %s: %s", config_path, e)
        config = Config()

    return apply_env_overrides(config)


def save_config(config: Config, config_path: Path = None):
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save
        config_path: Path to save to (uses default if None)
    """
    if config_path is None:
        config_path = CONFIG_FILE

    ensure_config_dir()

    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.debug("Saved config to %s", config_path)


def get_data_path(filename: str) -> Path:
    """Get path to a data file."""
    ensure_config_dir()
    return DATA_DIR / filename
