"""
Configuration support for Vote Gate.

Settings come from a YAML file (or ``[tool.vote-gate]`` in pyproject.toml),
with environment variables (optionally loaded from ``.env``) taking precedence.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = [
    ".vote-gate.yml",
    ".vote-gate.yaml",
    "vote-gate.yml",
    "vote-gate.yaml",
    "pyproject.toml",  # For [tool.vote-gate] section
]

DEFAULT_DATABASE_PATH = Path.home() / ".vote_gate" / "vote_gate.db"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "GITHUB_WEBHOOK_SECRET": "webhook_secret",
    "GITHUB_APP_ID": "app_id",
    "GITHUB_PRIVATE_KEY": "private_key",
    "GITHUB_APP_PRIVATE_KEY": "private_key",
    "VOTE_GATE_DATABASE_PATH": "database_path",
    "VOTE_GATE_CHECK_NAME": "check_name",
    "VOTE_GATE_VOTE_DURATION_HOURS": "vote_duration_hours",
    "VOTE_GATE_LOG_LEVEL": "log_level",
    "VOTE_GATE_HOST": "host",
    "PORT": "port",
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Runtime settings for the webhook server."""
    webhook_secret: Optional[str] = None
    app_id: Optional[str] = None
    private_key: Optional[str] = None
    database_path: Path = DEFAULT_DATABASE_PATH
    check_name: str = "Legislation Vote"
    vote_required_label: str = "vote-required"
    vote_start_label: str = "vote-start"
    vote_duration_hours: int = Field(default=48, gt=0)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=8000, gt=0, lt=65536)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = str(v).upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level '{v}'. Available: {list(VALID_LOG_LEVELS)}")
        return v

    @field_validator("app_id", mode="before")
    @classmethod
    def coerce_app_id(cls, v):
        # YAML reads an unquoted id as an int
        return str(v) if v is not None else v

    @field_validator("database_path", mode="before")
    @classmethod
    def expand_database_path(cls, v):
        return Path(v).expanduser()


def find_config_file(start_path: Path = None) -> Optional[Path]:
    """
    Find configuration file by searching up the directory tree.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    # Search up the directory tree
    while current != current.parent:  # Stop at root
        for config_name in DEFAULT_CONFIG_FILES:
            config_path = current / config_name
            if config_path.exists() and config_path.is_file():
                if config_path.suffix == ".toml" and not load_toml_config(config_path):
                    # pyproject.toml without our section
                    continue
                logger.debug(f"Found config file: {config_path}")
                return config_path
        current = current.parent

    return None


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from a YAML or TOML file.
    """
    if config_path.suffix.lower() in [".yml", ".yaml"]:
        return load_yaml_config(config_path)
    elif config_path.suffix.lower() == ".toml":
        return load_toml_config(config_path)
    else:
        logger.warning(f"Unsupported config file format: {config_path}")
        return {}


def load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    logger.info(f"Loaded config from {config_path}")
    return config


def load_toml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from TOML file (pyproject.toml)."""
    import tomli

    try:
        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}")

    # Extract [tool.vote-gate] section
    config = data.get("tool", {}).get("vote-gate", {})
    if config:
        logger.info(f"Loaded config from {config_path} [tool.vote-gate]")
    return config


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect settings from environment variables."""
    if environ is None:
        environ = os.environ

    overrides = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            overrides[field_name] = value
    return overrides


def merge_config(
    file_config: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Merge configuration from file with overrides.
    Overrides take precedence over file configuration.
    """
    merged = file_config.copy()

    # Only non-None values override
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value

    return merged


def load_settings(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """
    Build Settings from config file, environment and explicit overrides.

    Args:
        config_path: Config file to read. Searched for from the cwd if omitted.
        env_file: .env file to load into the environment before reading it
        environ: Environment mapping (defaults to os.environ)
        **overrides: Highest-precedence values, e.g. from CLI options
    """
    if environ is None:
        load_dotenv(env_file)

    if config_path is None:
        config_path = find_config_file()

    file_config = load_config_file(config_path) if config_path else {}
    merged = merge_config(file_config, env_overrides(environ))
    merged = merge_config(merged, overrides)

    return Settings(**merged)


def create_sample_config() -> str:
    """Create a sample configuration file content."""
    return """# Vote Gate Configuration File
# Save as .vote-gate.yml next to where the server runs.
# Secrets are best kept in the environment (GITHUB_WEBHOOK_SECRET,
# GITHUB_APP_ID, GITHUB_APP_PRIVATE_KEY) or a .env file.

# Name of the check run registered on voted pull requests
check_name: Legislation Vote

# Labels that drive the workflow
vote_required_label: vote-required
vote_start_label: vote-start

# Advertised length of a vote
vote_duration_hours: 48

# SQLite database holding check run state
database_path: ~/.vote_gate/vote_gate.db

# Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
log_level: INFO

# Server bind address
host: 0.0.0.0
port: 8000
"""
