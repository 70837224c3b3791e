"""Typed view over the relay configuration."""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..config_loader import is_unresolved_placeholder
from .exceptions import ConfigurationError
from .retry import DEFAULT_BACKOFF_SCHEDULE
from .upstream import DEFAULT_API_BASE, DEFAULT_TIMEOUT, Upstream

logger = logging.getLogger("voicerelay")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_KEEPALIVE_INTERVAL = 15.0
DEFAULT_MAX_BODY_BYTES = 50 * 1024 * 1024
DEFAULT_TTS_MAX_INPUT_BYTES = 60_000
DEFAULT_VOICE = "alloy"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_SEARCH_INSTRUCTIONS = (
    "Search the web for: {query}.\n"
    "Summarise the findings and cite 3 sources (title + URL)."
)


@dataclass
class ModelSettings:
    chat: str = "gpt-4o-mini"
    search: str = "gpt-4.1-mini"
    tts: str = "gpt-4o-mini-tts"
    stt: str = "whisper-1"


@dataclass
class RelaySettings:
    """Everything the route handlers need, parsed once at startup."""

    upstream: Upstream
    models: ModelSettings = field(default_factory=ModelSettings)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    tts_max_input_bytes: int = DEFAULT_TTS_MAX_INPUT_BYTES
    default_voice: str = DEFAULT_VOICE
    retry_schedule: tuple[float, ...] = DEFAULT_BACKOFF_SCHEDULE
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    search_instructions: str = DEFAULT_SEARCH_INSTRUCTIONS
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RelaySettings":
        upstream_cfg = _section(config, "upstream")
        models_cfg = _section(config, "models")
        relay_cfg = _section(config, "relay_settings")
        server_cfg = _section(config, "server")
        cors_cfg = _section(config, "cors")

        api_key = str(upstream_cfg.get("api_key") or "").strip()
        if is_unresolved_placeholder(api_key):
            api_key = ""
        if not api_key:
            api_key = os.getenv("OPENAI_API_KEY", "")
        upstream = Upstream(
            base_url=str(upstream_cfg.get("api_base") or DEFAULT_API_BASE).strip(),
            api_key=api_key,
            timeout=_to_float(upstream_cfg.get("request_timeout"), DEFAULT_TIMEOUT),
        )

        defaults = ModelSettings()
        models = ModelSettings(
            chat=str(models_cfg.get("chat") or defaults.chat),
            search=str(models_cfg.get("search") or defaults.search),
            tts=str(models_cfg.get("tts") or defaults.tts),
            stt=str(models_cfg.get("stt") or defaults.stt),
        )

        schedule_raw = relay_cfg.get("retry_schedule")
        if schedule_raw is None:
            retry_schedule = DEFAULT_BACKOFF_SCHEDULE
        elif isinstance(schedule_raw, (list, tuple)) and schedule_raw:
            try:
                retry_schedule = tuple(float(delay) for delay in schedule_raw)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"invalid retry_schedule: {schedule_raw!r}") from exc
        else:
            raise ConfigurationError("retry_schedule must be a non-empty list of seconds")

        origins = cors_cfg.get("allow_origins")
        if isinstance(origins, str):
            origins = [origins]
        if not isinstance(origins, list) or not origins:
            origins = ["*"]

        return cls(
            upstream=upstream,
            models=models,
            host=_resolve_host(server_cfg),
            port=_resolve_port(server_cfg),
            keepalive_interval=_to_float(
                relay_cfg.get("keepalive_interval"), DEFAULT_KEEPALIVE_INTERVAL
            ),
            max_body_bytes=_to_int(relay_cfg.get("max_body_bytes"), DEFAULT_MAX_BODY_BYTES),
            tts_max_input_bytes=_to_int(
                relay_cfg.get("tts_max_input_bytes"), DEFAULT_TTS_MAX_INPUT_BYTES
            ),
            default_voice=str(relay_cfg.get("default_voice") or DEFAULT_VOICE),
            retry_schedule=retry_schedule,
            system_prompt=str(relay_cfg.get("system_prompt") or DEFAULT_SYSTEM_PROMPT),
            search_instructions=str(
                relay_cfg.get("search_instructions") or DEFAULT_SEARCH_INSTRUCTIONS
            ),
            cors_allow_origins=[str(origin) for origin in origins],
        )


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return value


def _to_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric config value %r", value)
        return default


def _to_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer config value %r", value)
        return default


def _resolve_host(server_cfg: Mapping[str, Any]) -> str:
    # Environment variables take priority over the config file
    host: Optional[str] = os.getenv("VOICERELAY_HOST")
    if host is None:
        host = str(server_cfg.get("host", DEFAULT_HOST))
    return host


def _resolve_port(server_cfg: Mapping[str, Any]) -> int:
    for env_name in ("VOICERELAY_PORT", "PORT"):
        raw = os.getenv(env_name)
        if raw is None:
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s=%r", env_name, raw)
    return _to_int(server_cfg.get("port"), DEFAULT_PORT)
