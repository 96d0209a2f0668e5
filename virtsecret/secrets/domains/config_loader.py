"""Configuration loader for virtsecret."""
import os
import logging
from pathlib import Path
from typing import Dict, Any
import yaml

from .preferences import get_config_path

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    return Path.home() / ".config" / "virtsecret" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/virtsecret/preferences.json)
    2. Default location: ~/.config/virtsecret/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path = get_config_path()
    if config_path:
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   virtsecret config set-path /path/to/your/config.yml\n\n"
        "3. Skip the config file and set the VIRTSECRET_URI environment variable\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - connection: dict with uri and readonly

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If config file is unreadable or invalid
    """
    # Resolved on every call so preference changes apply immediately
    config_path = _get_config_path()

    if not os.path.exists(config_path):
        raise ConfigError(f"Configuration file not found at: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict) or 'connection' not in config:
        raise ConfigError(
            f"Missing 'connection' section in config at {config_path}\n"
            f"Required format:\n"
            f"connection:\n"
            f"  uri: qemu:///system\n"
            f"  readonly: false"
        )

    connection = config['connection']
    if not isinstance(connection, dict):
        raise ConfigError("'connection' section must be a mapping")

    if not connection.get('uri'):
        raise ConfigError("Missing 'connection.uri' in config")

    readonly = connection.setdefault('readonly', False)
    if not isinstance(readonly, bool):
        raise ConfigError(f"'connection.readonly' must be true or false, got: {readonly!r}")

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using libvirt URI: {connection['uri']} (readonly={readonly})")

    return config
