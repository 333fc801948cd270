"""
Configuration loader for the LLM relay.

Loads relay.yaml (if any), validates it against the Pydantic schema, and
resolves each provider's credential from the environment. A provider whose
key is missing stays in the registry but is unavailable — startup never
fails for a missing credential.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import ValidationError

from relay.config.schema import RelayConfig
from relay.exceptions import ConfigurationError
from relay.llm.registry import ProviderRegistry

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "RELAY_CONFIG_PATH"


def load_relay_config(config_path: Optional[str | Path] = None) -> RelayConfig:
    """
    Load and validate the relay configuration.

    Args:
        config_path: Optional explicit path to a YAML file. If not given,
                     RELAY_CONFIG_PATH is consulted; with neither, the
                     built-in defaults are returned.

    Raises:
        ConfigurationError: If the file is missing, empty or invalid.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV) or None
    if config_path is None:
        return RelayConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(
            f"Config not found: {config_path}",
            config_path=str(config_path),
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Config is not valid YAML: {config_path}\n{e}",
            config_path=str(config_path),
        ) from e

    if raw is None:
        raise ConfigurationError(
            f"Config file is empty: {config_path}",
            config_path=str(config_path),
        )

    try:
        config = RelayConfig(**raw)
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid relay config in {config_path}:\n{e}",
            config_path=str(config_path),
        ) from e

    logger.info(
        "config_loaded",
        extra={"config_path": str(config_path), "providers": len(config.providers)},
    )
    return config


def resolve_credentials(
    config: RelayConfig,
    env: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Map provider name → credential ("" when the variable is unset)."""
    env = os.environ if env is None else env
    return {
        p.name: (env.get(p.api_key_env) or "").strip()
        for p in config.providers
    }


def build_registry(
    config: RelayConfig,
    env: Optional[Mapping[str, str]] = None,
) -> ProviderRegistry:
    """Create the provider registry with credentials taken from `env`."""
    credentials = resolve_credentials(config, env)
    registry = ProviderRegistry(
        p.to_descriptor(credentials[p.name]) for p in config.providers
    )

    missing = [name for name, key in credentials.items() if not key]
    if missing:
        logger.info(
            "providers_without_credentials",
            extra={"providers": missing},
        )
    return registry
