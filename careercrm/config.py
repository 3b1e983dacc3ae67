"""Configuration management."""

import os
import tempfile
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.yaml"


class Config(BaseModel):
    """Application configuration."""

    gemini_api_key: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    gemini_model: str = "gemini-2.5-flash"
    max_results: int = 20
    auto_scan_hours: int = 24
    matcher: Literal["substring", "exact"] = "substring"
    status_policy: Literal["most_recent", "highest_rank"] = "most_recent"
    request_timeout: int = 30
    log_level: str = "INFO"
    spreadsheet_id: Optional[str] = None
    sheet_name: str = "Applications"
    contacts_sheet_name: str = "Contacts"


def config_path_from_env() -> Path:
    """Resolve the config file path, honouring CAREERCRM_CONFIG."""
    override = os.environ.get("CAREERCRM_CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = config_path_from_env()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. "
            "Run `careercrm setup` to enter your Gemini API key and Google client id."
        )

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not data.get("gemini_api_key"):
        data["gemini_api_key"] = os.environ.get("GEMINI_API_KEY", "")

    return Config(**data)


def save_config(config: Config, config_path: Optional[Path] = None) -> None:
    """Write configuration to YAML, replacing the previous file atomically."""
    if config_path is None:
        config_path = config_path_from_env()

    config_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(config.model_dump(), f, sort_keys=False)
        os.replace(tmp_name, config_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def reset_config(config_path: Optional[Path] = None) -> None:
    """Remove stored configuration; setup must run again before the next scan."""
    if config_path is None:
        config_path = config_path_from_env()
    config_path.unlink(missing_ok=True)
