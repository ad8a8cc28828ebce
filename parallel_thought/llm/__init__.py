# llm/__init__.py
# 模型路由、LLM 配置管理与结构化输出适配器 / Model routing, LLM config & structured-output adapters

from parallel_thought.llm.anthropic_adapter import AnthropicAdapter
from parallel_thought.llm.chat_completions_adapter import ChatCompletionsAdapter
from parallel_thought.llm.config import (
    ConfigurationError,
    LLMConfigLoader,
    ModelEndpointConfig,
)
from parallel_thought.llm.router import ModelRouter, StructuredGenerator
from parallel_thought.llm.schema import schema_descriptor, validate_payload

__all__ = [
    "AnthropicAdapter",
    "ChatCompletionsAdapter",
    "ConfigurationError",
    "LLMConfigLoader",
    "ModelEndpointConfig",
    "ModelRouter",
    "StructuredGenerator",
    "schema_descriptor",
    "validate_payload",
]
