"""
Storage configuration loading

Loads the storage section of a TOML config file, substituting ${VAR_NAME}
placeholders with environment variables so that credentials can stay out of
the file. Pass the result to objclient.createClient().
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import tomli

from .exceptions import StorageConfigError

logger = logging.getLogger(__name__)

ENV_PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_-]*)\}")


def replaceMatchToEnv(match: re.Match[str]) -> str:
    """Replace environment variable placeholder with its value, keep it if the variable is not set."""
    key = match.group(1)
    return os.getenv(key, match.group(0))


def substituteEnvVars(value: Any) -> Any:
    """
    Recursively substitute environment variable placeholders in configuration values.

    Strings, dictionaries and lists are processed, other values are returned unchanged.

    Args:
        value: The configuration value to process

    Returns:
        The value with ${VAR_NAME} placeholders replaced
    """
    if isinstance(value, str):
        return ENV_PLACEHOLDER_PATTERN.sub(replaceMatchToEnv, value)
    elif isinstance(value, dict):
        return {k: substituteEnvVars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substituteEnvVars(item) for item in value]
    return value


def loadDotEnv(path: str) -> Dict[str, str]:
    """
    Simple dotenv file loader.

    Reads KEY=VALUE lines, skipping comments and blank lines. Variables which are
    already set in the environment are not overridden.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the file
    """
    ret: Dict[str, str] = {}
    with open(path, "rt", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            ret[key.strip()] = value.strip().strip('"').strip("'")

    for k, v in ret.items():
        os.environ.setdefault(k, v)
    return ret


def loadStorageConfig(path: str, section: str = "storage", dotEnvFile: Optional[str] = None) -> Dict[str, Any]:
    """
    Load storage configuration section from a TOML file.

    Args:
        path: Path to the TOML config file
        section: Name of the top-level table holding storage configuration
        dotEnvFile: Optional .env file loaded into the environment before substitution

    Returns:
        The storage section with environment variables substituted

    Raises:
        StorageConfigError: If the file cannot be read or parsed, or has no such section
    """
    if dotEnvFile is not None and Path(dotEnvFile).exists():
        loadDotEnv(dotEnvFile)
        logger.debug(f"Loaded environment from {dotEnvFile}, dood!")

    configFile = Path(path)
    if not configFile.exists():
        raise StorageConfigError(f"Configuration file {path} not found")

    try:
        with open(configFile, "rb") as f:
            config = tomli.load(f)
    except Exception as e:
        raise StorageConfigError(f"Failed to load configuration from {path}: {e}") from e

    storageConfig = config.get(section)
    if not isinstance(storageConfig, dict):
        raise StorageConfigError(f"Section [{section}] not found in {path}")

    logger.info(f"Loaded storage config from {path}, dood!")
    return substituteEnvVars(storageConfig)
