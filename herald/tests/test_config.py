"""Tests for config loading, env overrides and persistence."""

import json
import os
import pytest
from unittest.mock import patch


class TestDefaults:
    def test_attention_config_defaults(self):
        from herald.common.config import AttentionConfig
        cfg = AttentionConfig()
        assert cfg.thresholds == {}
        assert cfg.default_threshold == 5
        assert cfg.channel_preferences == {}
        assert cfg.guardrails.provider is None
        assert cfg.guardrails.allow_tools == []
        assert cfg.dispatch_targets.slack.channel_id == ""

    def test_herald_config_has_sections(self):
        from herald.common.config import HeraldConfig, AttentionConfig, ServerConfig
        cfg = HeraldConfig()
        assert isinstance(cfg.attention, AttentionConfig)
        assert isinstance(cfg.server, ServerConfig)
        assert cfg.server.port == 8090


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        from herald.common.config import load_config
        with patch("herald.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        assert cfg.attention.default_threshold == 5
        assert cfg.attention.thresholds == {}

    def test_load_attention_section(self, tmp_path):
        from herald.common.config import load_config
        config_data = {
            "attention": {
                "thresholds": {"chat:mention": 7, "monitoring:alert": 2.5},
                "default_threshold": 6,
                "channel_preferences": {"chat": ["slack", "email"]},
                "guardrails": {
                    "provider": "ollama",
                    "base_url": "http://localhost:11434",
                    "max_output_tokens": 256,
                    "allow_tools": ["search"],
                    "policy_uri": "policy://attention",
                },
                "dispatch_targets": {
                    "slack": {"channel_id": "C123", "mention_user_id": "U999"},
                },
            },
            "server": {"port": 9000},
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.attention.thresholds == {"chat:mention": 7.0, "monitoring:alert": 2.5}
        assert cfg.attention.default_threshold == 6.0
        assert cfg.attention.channel_preferences == {"chat": ["slack", "email"]}
        assert cfg.attention.guardrails.provider == "ollama"
        assert cfg.attention.guardrails.max_output_tokens == 256
        assert cfg.attention.guardrails.allow_tools == ["search"]
        assert cfg.attention.dispatch_targets.slack.channel_id == "C123"
        assert cfg.attention.dispatch_targets.slack.mention_user_id == "U999"
        assert cfg.server.port == 9000

    def test_invalid_json_falls_back_to_defaults(self, tmp_path, caplog):
        import logging
        from herald.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True), \
             caplog.at_level(logging.WARNING, logger="herald.common.config"):
            cfg = load_config()

        assert cfg.attention.default_threshold == 5
        assert "Failed to load config file" in caplog.text

    def test_env_var_overrides(self, tmp_path):
        from herald.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"attention": {"default_threshold": 4}}))

        env = {
            "HERALD_DEFAULT_THRESHOLD": "8",
            "HERALD_PORT": "9100",
            "CODEX_API_KEY": "sk-env",
            "HERALD_REASONING_PROVIDER": "anthropic",
        }
        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.attention.default_threshold == 8.0
        assert cfg.server.port == 9100
        assert cfg.attention.guardrails.api_key == "sk-env"
        assert cfg.attention.guardrails.provider == "anthropic"
        assert "api_key" in cfg._env_sourced_keys

    def test_bare_string_channel_preference_wrapped(self, tmp_path):
        from herald.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"attention": {"channel_preferences": {"chat": "slack"}}}))

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.attention.channel_preferences == {"chat": ["slack"]}


class TestSaveConfig:
    def test_save_round_trips_through_load(self, tmp_path):
        from herald.common.config import HeraldConfig, load_config, save_config
        config_file = tmp_path / "config.json"

        cfg = HeraldConfig()
        cfg.attention.thresholds["chat:mention"] = 7
        cfg.attention.channel_preferences["chat"] = ["slack"]

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            save_config(cfg)
            loaded = load_config()

        assert loaded.attention.thresholds == {"chat:mention": 7.0}
        assert loaded.attention.channel_preferences == {"chat": ["slack"]}
        assert oct(config_file.stat().st_mode & 0o777) == "0o600"

    def test_save_omits_env_sourced_api_key(self, tmp_path):
        from herald.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {"CODEX_API_KEY": "sk-from-env"}, clear=True):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["attention"]["guardrails"]["api_key"] is None

    def test_save_keeps_file_sourced_api_key(self, tmp_path):
        from herald.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"attention": {"guardrails": {"api_key": "sk-file"}}}))

        with patch("herald.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["attention"]["guardrails"]["api_key"] == "sk-file"


class TestEnsureDefaults:
    def test_writes_file_when_absent(self, tmp_path):
        from herald.common.config import ensure_defaults
        config_file = tmp_path / "nested" / "config.json"

        with patch("herald.common.config.CONFIG_PATH", config_file):
            assert ensure_defaults() is True

        saved = json.loads(config_file.read_text())
        assert saved["attention"]["default_threshold"] == 5

    def test_leaves_existing_file(self, tmp_path):
        from herald.common.config import ensure_defaults
        config_file = tmp_path / "config.json"
        config_file.write_text('{"attention": {"default_threshold": 2}}')

        with patch("herald.common.config.CONFIG_PATH", config_file):
            assert ensure_defaults() is False

        assert json.loads(config_file.read_text())["attention"]["default_threshold"] == 2
