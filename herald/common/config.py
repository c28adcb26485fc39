"""
Configuration Management for Herald

Loads configuration from ~/.herald/config.json and environment variables.
The loaded config is treated as read-only once the pipeline is built.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger("herald.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".herald"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
ATTENTION_DIR = CONFIG_DIR / "attention"

DEFAULT_THRESHOLD = 5.0


@dataclass
class GuardrailsConfig:
    """Constraints applied to every reasoning-service call.

    ``None`` means "derive at runtime" (see GuardedReasoningService).
    """
    policy_uri: Optional[str] = None
    max_output_tokens: Optional[int] = None
    allow_tools: List[str] = field(default_factory=list)
    base_url: Optional[str] = None
    model: Optional[str] = None
    api_key: Optional[str] = None
    require_api_key: Optional[bool] = None
    send_protocol_headers: Optional[bool] = None
    provider: Optional[str] = None  # "codex", "ollama", "anthropic", "openai", "google"
    timeout_seconds: float = 30.0


@dataclass
class SlackTargetConfig:
    """Where the Slack transport posts attention notifications"""
    channel_id: str = ""
    thread_ts: Optional[str] = None
    mention_user_id: Optional[str] = None
    suppress_mentions: bool = False
    use_dedicated_token: bool = False
    bot_token: str = ""


@dataclass
class DispatchTargetsConfig:
    """Per-channel delivery targets"""
    slack: SlackTargetConfig = field(default_factory=SlackTargetConfig)


@dataclass
class AttentionConfig:
    """Attention pipeline configuration"""
    thresholds: Dict[str, float] = field(default_factory=dict)  # "source:kind" -> threshold
    default_threshold: float = DEFAULT_THRESHOLD
    channel_preferences: Dict[str, List[str]] = field(default_factory=dict)  # source -> channels
    guardrails: GuardrailsConfig = field(default_factory=GuardrailsConfig)
    dispatch_targets: DispatchTargetsConfig = field(default_factory=DispatchTargetsConfig)


@dataclass
class ServerConfig:
    """HTTP receiver configuration"""
    host: str = "0.0.0.0"
    port: int = 8090


@dataclass
class HeraldConfig:
    """Main Herald configuration"""
    attention: AttentionConfig = field(default_factory=AttentionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_guardrails_config(data: dict) -> GuardrailsConfig:
    """Parse guardrails section from attention dict"""
    g = data.get("guardrails") or {}
    max_tokens = g.get("max_output_tokens")
    return GuardrailsConfig(
        policy_uri=g.get("policy_uri"),
        max_output_tokens=int(max_tokens) if max_tokens is not None else None,
        allow_tools=list(g.get("allow_tools") or []),
        base_url=g.get("base_url"),
        model=g.get("model"),
        api_key=g.get("api_key"),
        require_api_key=g.get("require_api_key"),
        send_protocol_headers=g.get("send_protocol_headers"),
        provider=g.get("provider"),
        timeout_seconds=float(g.get("timeout_seconds", 30.0)),
    )


def _parse_dispatch_targets_config(data: dict) -> DispatchTargetsConfig:
    """Parse dispatch_targets section from attention dict"""
    slack_data = (data.get("dispatch_targets") or {}).get("slack") or {}
    return DispatchTargetsConfig(
        slack=SlackTargetConfig(
            channel_id=slack_data.get("channel_id", ""),
            thread_ts=slack_data.get("thread_ts"),
            mention_user_id=slack_data.get("mention_user_id"),
            suppress_mentions=bool(slack_data.get("suppress_mentions", False)),
            use_dedicated_token=bool(slack_data.get("use_dedicated_token", False)),
            bot_token=slack_data.get("bot_token", ""),
        )
    )


def _parse_attention_config(data: dict) -> AttentionConfig:
    """Parse attention section from config dict"""
    attention_data = data.get("attention", {})
    thresholds = {
        str(key): float(value)
        for key, value in (attention_data.get("thresholds") or {}).items()
    }
    channel_preferences = {}
    for source, channels in (attention_data.get("channel_preferences") or {}).items():
        if isinstance(channels, str):
            channels = [channels]
        channel_preferences[str(source)] = [str(c) for c in channels]
    return AttentionConfig(
        thresholds=thresholds,
        default_threshold=float(attention_data.get("default_threshold", DEFAULT_THRESHOLD)),
        channel_preferences=channel_preferences,
        guardrails=_parse_guardrails_config(attention_data),
        dispatch_targets=_parse_dispatch_targets_config(attention_data),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=int(server_data.get("port", 8090)),
    )


def load_config() -> HeraldConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.herald/config.json)
    3. Default values
    """
    config = HeraldConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.attention = _parse_attention_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError, TypeError, ValueError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("HERALD_DEFAULT_THRESHOLD"):
        config.attention.default_threshold = float(os.getenv("HERALD_DEFAULT_THRESHOLD"))
    if os.getenv("HERALD_HOST"):
        config.server.host = os.getenv("HERALD_HOST")
    if os.getenv("HERALD_PORT"):
        config.server.port = int(os.getenv("HERALD_PORT"))

    # Guardrail env var overrides (track env-sourced keys)
    _env_guardrail_map = {
        "CODEX_API_KEY": "api_key",
        "CODEX_BASE_URL": "base_url",
        "CODEX_MODEL": "model",
        "CODEX_POLICY_URI": "policy_uri",
        "HERALD_REASONING_PROVIDER": "provider",
    }
    for env_var, attr in _env_guardrail_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.attention.guardrails, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def _config_to_dict(config: HeraldConfig) -> dict:
    env_sourced = getattr(config, "_env_sourced_keys", set())
    attention = config.attention
    guardrails = attention.guardrails
    slack = attention.dispatch_targets.slack

    guardrails_section = {
        "policy_uri": guardrails.policy_uri,
        "max_output_tokens": guardrails.max_output_tokens,
        "allow_tools": list(guardrails.allow_tools),
        "base_url": guardrails.base_url,
        "model": guardrails.model,
        "api_key": guardrails.api_key,
        "require_api_key": guardrails.require_api_key,
        "send_protocol_headers": guardrails.send_protocol_headers,
        "provider": guardrails.provider,
        "timeout_seconds": guardrails.timeout_seconds,
    }
    # Secrets that came from the environment are never persisted
    if "api_key" in env_sourced:
        guardrails_section["api_key"] = None

    return {
        "attention": {
            "thresholds": dict(attention.thresholds),
            "default_threshold": attention.default_threshold,
            "channel_preferences": {k: list(v) for k, v in attention.channel_preferences.items()},
            "guardrails": guardrails_section,
            "dispatch_targets": {
                "slack": {
                    "channel_id": slack.channel_id,
                    "thread_ts": slack.thread_ts,
                    "mention_user_id": slack.mention_user_id,
                    "suppress_mentions": slack.suppress_mentions,
                    "use_dedicated_token": slack.use_dedicated_token,
                    "bot_token": slack.bot_token,
                },
            },
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }


def save_config(config: HeraldConfig) -> None:
    """Save configuration to file.

    Guardrail secrets that were sourced from environment variables are
    written as null so that they are not persisted to disk.
    """
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)

    with open(CONFIG_PATH, "w") as f:
        json.dump(_config_to_dict(config), f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_defaults() -> bool:
    """Write a default config file if none exists.

    Returns:
        True if a new file was written
    """
    if CONFIG_PATH.exists():
        return False
    save_config(HeraldConfig())
    logger.info("Wrote default config to %s", CONFIG_PATH)
    return True


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    ATTENTION_DIR.mkdir(parents=True, exist_ok=True)
