"""Configuration loading and validation.

Reads the JSON configuration (from a file or an inline string), expands
``${ENV_VAR}`` placeholders and validates it against :class:`ProxyConfig`.
Every failure surfaces as :class:`ConfigurationError` before any backend
is contacted.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mcp_metaproxy.config.env import expand_env_vars
from mcp_metaproxy.config.schema import ProxyConfig
from mcp_metaproxy.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"]) or "(root)"
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def _parse_json(text: str, source: str) -> Dict[str, Any]:
    try:
        raw_data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Unable to parse JSON configuration ({source}): {exc}") from exc

    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            f"Top-level configuration content must be a JSON object ({source})."
        )
    return raw_data


def validate_config(raw_data: Optional[Dict[str, Any]]) -> ProxyConfig:
    """Expand env vars in *raw_data* and validate it.

    Raises:
        ConfigurationError: With all validation errors reported at once.
    """
    raw_data = expand_env_vars(raw_data or {})
    try:
        config = ProxyConfig.model_validate(raw_data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n{error_summary}"
        ) from exc

    logger.info(
        "Configuration validated: %d backend(s), discover limit %d.",
        len(config.mcp_servers),
        config.discover_limit,
    )
    return config


def load_config_file(cfg_fpath: str) -> ProxyConfig:
    """Load and validate a JSON configuration file."""
    logger.debug("Loading configuration file: %s", cfg_fpath)
    cfg_fpath = os.path.abspath(cfg_fpath)
    if not os.path.exists(cfg_fpath):
        raise ConfigurationError(f"Configuration file does not exist: {cfg_fpath}")

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    return validate_config(_parse_json(text, cfg_fpath))


def load_config_string(text: str) -> ProxyConfig:
    """Load and validate configuration passed inline as a JSON string."""
    logger.debug("Loading inline JSON configuration (%d chars).", len(text))
    return validate_config(_parse_json(text, "inline JSON"))
