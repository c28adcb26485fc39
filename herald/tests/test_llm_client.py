"""Tests for LLMClient provider abstraction."""

import pytest
from unittest.mock import Mock
from herald.common.llm_client import LLMClient


class TestLLMClientInit:
    def test_missing_anthropic_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="herald.common.llm_client"):
            client = LLMClient(provider="anthropic")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_openai_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="herald.common.llm_client"):
            client = LLMClient(provider="openai")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_google_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="herald.common.llm_client"):
            client = LLMClient(provider="google")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        import logging
        with caplog.at_level(logging.WARNING, logger="herald.common.llm_client"):
            client = LLMClient(provider="codex", api_key="sk-test")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_provider_is_lowercased(self):
        client = LLMClient(provider="OpenAI")
        assert client.provider == "openai"


class TestLLMClientGenerate:
    def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="anthropic")
        with pytest.raises(RuntimeError, match="not available"):
            client.generate("test")

    def test_generate_anthropic_passes_bounds(self):
        client = LLMClient(provider="anthropic", model="claude-test")
        block = Mock()
        block.text = '  {"urgencyScore": 4}  '
        sdk = Mock()
        sdk.messages.create.return_value = Mock(content=[block])
        client._client = sdk

        text = client.generate("prompt", system="sys", max_tokens=128, timeout=5.0)

        assert text == '{"urgencyScore": 4}'
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["max_tokens"] == 128
        assert kwargs["timeout"] == 5.0
        assert kwargs["system"] == "sys"
        assert kwargs["model"] == "claude-test"

    def test_generate_openai_builds_messages(self):
        client = LLMClient(provider="openai", model="gpt-test")
        choice = Mock()
        choice.message.content = "ok"
        sdk = Mock()
        sdk.chat.completions.create.return_value = Mock(choices=[choice])
        client._client = sdk

        assert client.generate("hello", system="sys", max_tokens=64) == "ok"
        messages = sdk.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "sys"}
        assert messages[1] == {"role": "user", "content": "hello"}
