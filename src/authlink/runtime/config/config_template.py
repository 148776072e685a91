"""Configuration template substitution utilities."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.authlink.runtime.config.config_data import ConfigData


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """
    def replacer(match):
        var_expr = match.group(1)

        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        elif ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name}: {error_msg}")
            return value

        else:
            var_name = var_expr
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name} not set")
            return value

    pattern = r'\$\{([^}]+)\}'
    return re.sub(pattern, replacer, text)


def load_templated_yaml(file_path: Path, environment: str = "development") -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Variables prefixed with the upper-cased environment name (for example
    ``TEST_DATABASE_URL`` when running in ``test``) override their unprefixed
    counterparts before substitution.

    Args:
        file_path: Path to the YAML file
        environment: Active environment name

    Returns:
        Parsed and validated configuration

    Raises:
        ValueError: If required environment variables are missing or the
            file does not contain a valid configuration
        FileNotFoundError: If the YAML file doesn't exist
    """
    with open(file_path) as f:
        content = f.read()

    logger.info("Loading configuration for environment: {}", environment)

    prefix = f"{environment.upper()}_"
    overrides = {
        var[len(prefix):]: value
        for var, value in os.environ.items()
        if var.startswith(prefix)
    }
    if overrides:
        logger.debug("Applying environment-specific overrides: {}", sorted(overrides))
    os.environ.update(overrides)

    substituted_content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(substituted_content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    try:
        config_data = loaded.get("config", {}) or {}
        config = ConfigData(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if config.app.environment != environment:
        config.app.environment = environment

    return config
