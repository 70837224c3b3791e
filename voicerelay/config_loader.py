"""Read the relay's YAML configuration and fill ``${VAR}`` placeholders.

Lookup order for the file: an explicit path, then ``VOICERELAY_CONFIG``, then
the default shipped inside the package. Placeholders are filled from a
``.env`` file next to the config (or an explicit one), then from the process
environment; the process environment itself is never modified.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("voicerelay")

CONFIG_ENV_VAR = "VOICERELAY_CONFIG"
PACKAGED_CONFIG = Path(__file__).parent / "configs" / "config_default.yaml"

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def locate_config(path: Optional[str] = None) -> Path:
    chosen = path or os.getenv(CONFIG_ENV_VAR)
    if not chosen:
        return PACKAGED_CONFIG
    return Path(chosen).expanduser()


def dotenv_for(config_path: Path, env_path: Optional[str] = None) -> Path:
    """The .env file consulted for ``config_path``'s placeholders."""
    if env_path:
        return Path(env_path).expanduser()
    return config_path.with_name(".env")


def read_dotenv(env_path: Path) -> dict[str, str]:
    if not env_path.is_file():
        return {}
    return {key: value for key, value in dotenv_values(env_path).items() if value is not None}


def load_config(
    path: Optional[str] = None,
    env_path: Optional[str] = None,
    substitute_env: bool = True,
) -> dict:
    """Return the relay configuration as a plain dict.

    Raises ConfigurationError when the file is missing, is not valid YAML,
    or does not hold a mapping at the top level.
    """
    config_path = locate_config(path)
    if not config_path.is_file():
        logger.error("No relay config at %s", config_path)
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file {config_path} is not valid YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )

    if substitute_env:
        env_file = dotenv_for(config_path, env_path)
        dotenv = read_dotenv(env_file)
        if dotenv:
            logger.info("Using %d value(s) from %s", len(dotenv), env_file)
        data = expand_placeholders(data, dotenv)

    logger.info("Relay config loaded from %s", config_path)
    return data


def expand_placeholders(value: Any, dotenv: Optional[Mapping[str, str]] = None) -> Any:
    """Fill ``${VAR}`` and ``$VAR`` in every string nested inside ``value``.

    ``dotenv`` wins over the process environment. A variable set in neither
    is left as written so ``is_unresolved_placeholder`` can spot it later.
    """
    dotenv = dotenv or {}

    if isinstance(value, dict):
        return {key: expand_placeholders(item, dotenv) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_placeholders(item, dotenv) for item in value]
    if not isinstance(value, str):
        return value

    def _fill(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        resolved = dotenv.get(name, os.getenv(name))
        if resolved is None:
            logger.warning("Config placeholder %s is unset; keeping it verbatim", match.group(0))
            return match.group(0)
        return resolved

    return _PLACEHOLDER.sub(_fill, value)


def is_unresolved_placeholder(value: str) -> bool:
    """True when a config string still contains a ``$VAR`` reference."""
    return bool(_PLACEHOLDER.search(value or ""))
