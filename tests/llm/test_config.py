# test_config.py
# =============================================================================
# LLM 配置加载测试 / LLM config loading tests
# =============================================================================

import pytest

from parallel_thought.llm.config import (
    ConfigurationError,
    LLMConfigLoader,
    ModelEndpointConfig,
    _expand_env_vars,
    _mask_key,
)


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """避免自动发现工作目录下的配置文件。 / Keep auto-discovery away from the real cwd."""
    monkeypatch.chdir(tmp_path)


class TestModelEndpointConfig:
    def test_from_string_infers_platform(self):
        cfg = ModelEndpointConfig.from_dict("claude-sonnet-4")
        assert cfg.model_platform == "anthropic"
        assert cfg.model_name == "claude-sonnet-4"

    def test_anthropic_without_url_uses_messages_api(self):
        cfg = ModelEndpointConfig.from_dict({"model_name": "claude-sonnet-4"})
        assert cfg.api_mode == "anthropic"

    def test_anthropic_with_proxy_url_uses_chat_completions(self):
        cfg = ModelEndpointConfig.from_dict({
            "model_name": "claude-sonnet-4",
            "url": "https://proxy.example.com/v1",
        })
        assert cfg.api_mode == "chat_completions"

    def test_rejects_unknown_api_mode(self):
        with pytest.raises(ConfigurationError, match="api_mode"):
            ModelEndpointConfig.from_dict({"model_name": "gpt-4o", "api_mode": "responses"})

    def test_unknown_keys_go_to_extra(self):
        cfg = ModelEndpointConfig.from_dict({"model_name": "gpt-4o", "seed": 7})
        assert cfg.extra == {"seed": 7}

    def test_retries_are_off_by_default(self):
        cfg = ModelEndpointConfig.from_dict({"model_name": "gpt-4o"})
        assert cfg.max_retries == 0
        assert ModelEndpointConfig.from_dict(
            {"model_name": "gpt-4o", "max_retries": 2}
        ).max_retries == 2


class TestLLMConfigLoader:
    def test_code_config_overrides_file(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            "_default:\n"
            "  model_name: gpt-4o-mini\n"
            "  api_key: file-key\n"
            "  url: https://api.openai.com/v1\n"
            "synthesizer:\n"
            "  model_name: gpt-4o\n",
            encoding="utf-8",
        )
        loader = LLMConfigLoader(
            llm_config={"synthesizer": {"temperature": 0.2}},
            config_file=str(config_file),
        )
        analyzer = loader.resolve("analyzer")
        synthesizer = loader.resolve("synthesizer")
        assert analyzer.model_name == "gpt-4o-mini"
        assert analyzer.api_key == "file-key"
        assert synthesizer.model_name == "gpt-4o"
        assert synthesizer.temperature == 0.2

    def test_auto_discovers_llm_config_yaml(self, tmp_path):
        (tmp_path / "llm_config.yaml").write_text(
            "analyzer: deepseek-chat\n", encoding="utf-8",
        )
        loader = LLMConfigLoader()
        cfg = loader.resolve("analyzer")
        assert cfg.model_name == "deepseek-chat"
        assert cfg.model_platform == "deepseek"

    def test_missing_model_raises(self):
        loader = LLMConfigLoader(llm_config={"_default": {"api_key": "k"}})
        with pytest.raises(ConfigurationError, match="analyzer"):
            loader.resolve("analyzer")

    def test_missing_config_file_is_tolerated(self, tmp_path):
        loader = LLMConfigLoader(
            llm_config={"analyzer": "gpt-4o"},
            config_file=str(tmp_path / "nope.yaml"),
        )
        assert loader.resolve("analyzer").model_name == "gpt-4o"

    def test_non_mapping_yaml_raises(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            LLMConfigLoader(config_file=str(config_file))

    def test_summary_masks_keys(self):
        loader = LLMConfigLoader(llm_config={
            "_default": {"api_key": "sk-1234567890abcdef"},
            "analyzer": {"model_name": "gpt-4o"},
        })
        summary = loader.summary()
        assert summary["analyzer"]["api_key"] == "sk-12345...cdef"
        assert summary["analyzer"]["api_mode"] == "chat_completions"


class TestEnvExpansion:
    def test_expands_set_variable(self, monkeypatch):
        monkeypatch.setenv("PT_TEST_KEY", "secret")
        assert _expand_env_vars({"k": ["${PT_TEST_KEY}"]}) == {"k": ["secret"]}

    def test_uses_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("PT_TEST_MISSING", raising=False)
        assert _expand_env_vars("${PT_TEST_MISSING:-fallback}") == "fallback"

    def test_leaves_unset_reference_untouched(self, monkeypatch):
        monkeypatch.delenv("PT_TEST_MISSING", raising=False)
        assert _expand_env_vars("${PT_TEST_MISSING}") == "${PT_TEST_MISSING}"

    def test_yaml_file_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PT_TEST_KEY", "from-env")
        config_file = tmp_path / "env.yaml"
        config_file.write_text(
            "analyzer:\n  model_name: gpt-4o\n  api_key: ${PT_TEST_KEY}\n",
            encoding="utf-8",
        )
        loader = LLMConfigLoader(config_file=str(config_file))
        assert loader.resolve("analyzer").api_key == "from-env"


def test_mask_key_short_and_empty():
    assert _mask_key(None) == "(env)"
    assert _mask_key("abcdef") == "abc***"
