"""
Configuration loader.

Everything has a default: an unattended run with no config file binds the
listener and writes the outcome record to the local CMTrace log file.
Settings come from the YAML file only; the process environment is never
consulted, so host-wide variables such as LOG_LEVEL cannot change a run.

Optional config file location: %ProgramData%\\WinRM-Cert-Agent\\config.yaml
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError
from .log_sinks import DEFAULT_EVENT_ID, DEFAULT_EVENT_SOURCE

logger = logging.getLogger(__name__)

PROGRAM_DATA = Path(os.environ.get("ProgramData", r"C:\ProgramData"))
AGENT_DATA_DIR = PROGRAM_DATA / "WinRM-Cert-Agent"
DEFAULT_CONFIG_PATH = AGENT_DATA_DIR / "config.yaml"
DEFAULT_LOG_FILE = AGENT_DATA_DIR / "winrm-cert-agent.log"


class AgentConfig(BaseModel):
    """winrm-cert-agent configuration."""

    # ========================================================================
    # Outcome Logging
    # ========================================================================

    log_sink: str = Field(
        default="file",
        description="Outcome sink: file, eventlog, or both"
    )

    log_file: Path = Field(
        default=DEFAULT_LOG_FILE,
        description="CMTrace log file for the file sink"
    )

    event_source: str = Field(
        default=DEFAULT_EVENT_SOURCE,
        min_length=1,
        description="Application event log source name"
    )

    event_id: int = Field(
        default=DEFAULT_EVENT_ID,
        ge=0,
        le=65535,
        description="Event ID for every outcome entry"
    )

    # ========================================================================
    # Diagnostics
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Diagnostic log level (stderr)"
    )

    # ========================================================================
    # Behaviour
    # ========================================================================

    dry_run: bool = Field(
        default=False,
        description="Decide and log the outcome without touching the listener"
    )

    powershell_executable: str = Field(
        default="powershell.exe",
        description="PowerShell host used for store and WSMan calls"
    )

    @field_validator('log_sink')
    @classmethod
    def validate_log_sink(cls, v):
        v = v.lower()
        if v not in ['file', 'eventlog', 'both']:
            raise ValueError('log_sink must be file, eventlog, or both')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
            raise ValueError('log_level must be DEBUG, INFO, WARNING, or ERROR')
        return v.upper()

    model_config = ConfigDict(
        extra='forbid'  # Reject unknown fields
    )


def load_config(config_path: Optional[Path] = None) -> AgentConfig:
    """
    Load configuration from YAML (optional).

    Args:
        config_path: Explicit config file. When None, the default location
            is used if it exists.

    Returns:
        AgentConfig instance

    Raises:
        ConfigError: If an explicit file is missing or any value is invalid
    """
    config_dict = {}

    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        logger.info(f"Loading config from {path}")
        try:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")
        config_dict.update(loaded or {})

    try:
        return AgentConfig(**config_dict)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
