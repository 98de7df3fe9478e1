"""
Tests for the LLM client and the healthcheck helpers.

No network calls are made: provider methods are patched.
"""

from unittest.mock import patch

import pytest

from automation.llm_client import LLMClient, LLMConfig, LLMResponse, Message, split_data_url
from automation.llm_healthcheck import (
    FatalLLMError,
    MissingCredentialsError,
    ProviderMisconfiguredError,
    QuotaExhaustedError,
    TransientLLMError,
    check_credentials,
    check_llm_ready,
    classify_llm_error,
)


def ok_response(content="OK"):
    return LLMResponse(content=content, model="test", usage={}, finish_reason="stop")


@pytest.fixture
def no_keys(monkeypatch):
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "HWSCENE_PROVIDER", "HWSCENE_MODEL",
                "HWSCENE_VISION_MODEL", "HWSCENE_API_BASE"):
        monkeypatch.delenv(var, raising=False)


class TestClassifyLLMError:
    """Tests for classify_llm_error()."""

    def test_quota_before_rate_limit(self):
        error = classify_llm_error(Exception("429: You exceeded your current quota"), "openai")
        assert isinstance(error, QuotaExhaustedError)

    def test_rate_limit_is_transient(self):
        assert isinstance(classify_llm_error(Exception("429 Too Many Requests")), TransientLLMError)

    def test_timeout_is_transient(self):
        assert isinstance(classify_llm_error(TimeoutError("read")), TransientLLMError)

    def test_auth_failure(self):
        error = classify_llm_error(Exception("401 Unauthorized"), "anthropic")
        assert isinstance(error, MissingCredentialsError)
        assert error.env_var == "ANTHROPIC_API_KEY"

    def test_bad_model(self):
        assert isinstance(classify_llm_error(Exception("model not found")), ProviderMisconfiguredError)

    def test_unknown_is_fatal(self):
        original = Exception("something odd")
        error = classify_llm_error(original)
        assert type(error) is FatalLLMError
        assert error.__cause__ is original

    def test_llm_errors_pass_through(self):
        error = TransientLLMError("again")
        assert classify_llm_error(error) is error


class TestCheckCredentials:
    """Tests for check_credentials() and check_llm_ready()."""

    def test_missing_key(self, no_keys):
        with pytest.raises(MissingCredentialsError, match="OPENAI_API_KEY"):
            check_credentials("openai")

    def test_key_from_env(self, no_keys, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        check_credentials("anthropic")

    def test_unknown_provider(self):
        with pytest.raises(ProviderMisconfiguredError):
            check_credentials("acme")

    def test_local_needs_api_base(self, no_keys):
        with pytest.raises(ProviderMisconfiguredError, match="api_base"):
            check_llm_ready(LLMConfig(provider="local"))

    def test_ready(self, no_keys):
        result = check_llm_ready(LLMConfig(provider="openai", api_key="sk-test"))
        assert result.ready
        assert result.ping_latency_ms is None


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_from_env(self, no_keys, monkeypatch):
        monkeypatch.setenv("HWSCENE_PROVIDER", "anthropic")
        monkeypatch.setenv("HWSCENE_MODEL", "claude-test")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")

        config = LLMConfig.from_env(model="override")

        assert config.provider == "anthropic"
        assert config.model == "override"
        assert config.api_key == "sk-ant"

    def test_split_data_url(self):
        assert split_data_url("data:image/png;base64,AAAA") == ("image/png", "AAAA")
        assert split_data_url("AAAA") == ("image/jpeg", "AAAA")


class TestLLMClient:
    """Tests for LLMClient retries and request building."""

    def _client(self, **overrides):
        config = LLMConfig(provider="openai", api_key="sk-test", retry_delay=0.0, **overrides)
        return LLMClient(config=config)

    def test_transient_error_retried(self):
        client = self._client()
        with patch.object(LLMClient, "_call_openai", side_effect=[TransientLLMError("timeout"), ok_response("hi")]) as call:
            assert client.invoke("ping") == "hi"
        assert call.call_count == 2

    def test_retries_exhausted(self):
        client = self._client(max_retries=2)
        with patch.object(LLMClient, "_call_openai", side_effect=Exception("503 overloaded")) as call:
            with pytest.raises(TransientLLMError):
                client.invoke("ping")
        assert call.call_count == 3

    def test_fatal_error_not_retried(self):
        client = self._client()
        with patch.object(LLMClient, "_call_openai", side_effect=Exception("insufficient_quota")) as call:
            with pytest.raises(QuotaExhaustedError):
                client.invoke("ping")
        assert call.call_count == 1

    def test_system_prompt_and_vision_model(self):
        client = self._client(system_prompt="Be brief", vision_model="gpt-vision")
        with patch.object(LLMClient, "_call_openai", return_value=ok_response()) as call:
            client.invoke("describe", image="AAAA")

        messages, model = call.call_args[0][0], call.call_args[0][1]
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[1].image == "AAAA"
        assert model == "gpt-vision"

    def test_openai_image_content(self):
        messages = LLMClient._openai_messages([
            Message(role="user", content="look", image="AAAA"),
        ])
        parts = messages[0]["content"]
        assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,AAAA"

    def test_unknown_provider(self):
        client = LLMClient(config=LLMConfig(provider="acme", api_key="x"))
        with pytest.raises(ValueError, match="Unsupported provider"):
            client.invoke("hi")
