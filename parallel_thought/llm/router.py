# router.py
# =============================================================================
# LLM 模型路由模块
#
# 职责：
#   - 根据流水线角色（analyzer / synthesizer）选择 LLM 适配器
#     （ChatCompletions / Anthropic），按角色缓存
#   - 统计各角色的调用尝试与成功次数（仅用于日志与审计）
#   - 生成供 Agent 使用的结构化生成函数（StructuredGenerator）
#
# 配置优先级（高→低）：
#   1. 代码传入 llm_config 字典
#   2. 配置文件 llm_config.yaml
#   3. 环境变量（通过 ${VAR} 在 YAML 中引用）
#
# 不做调用次数限制，也不做任何重试决策：重试只在适配器传输层对 5xx 生效。
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from parallel_thought.llm.config import ConfigurationError, LLMConfigLoader

logger = logging.getLogger(__name__)

# async (system_prompt, user_prompt, schema, schema_name) -> JSON object
StructuredGenerator = Callable[..., Awaitable[Dict[str, Any]]]


class ModelRouter:
    """模型路由器 — 根据角色选择适配器，记录调用次数。

    所有适配器暴露统一接口：
        async generate(system_prompt, user_message, schema, schema_name) -> dict
    """

    def __init__(
        self,
        llm_config: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
    ) -> None:
        """初始化路由器。

        Args:
            llm_config: 用户自定义模型配置字典（最高优先级）。支持简写和完整格式：
                - 简写: {"analyzer": "gpt-4o-mini", "synthesizer": "gpt-4o"}
                - 完整: {"synthesizer": {"model_name": "claude-sonnet-4-20250514",
                                         "api_key": "sk-ant-xxx"}}
            config_file: LLM 配置文件路径（可选，不传则自动搜索）。
        """
        self._config_loader = LLMConfigLoader(
            llm_config=llm_config, config_file=config_file
        )
        self._model_cache: Dict[str, Any] = {}
        self.attempts_by_role: Dict[str, int] = {}
        self.calls_by_role: Dict[str, int] = {}

        for role, info in self._config_loader.summary().items():
            logger.info(
                "模型路由: %s → %s/%s (mode=%s, url=%s, key=%s)",
                role,
                info["platform"],
                info["model"],
                info["api_mode"],
                info["url"],
                info["api_key"],
            )

    @property
    def config_loader(self) -> LLMConfigLoader:
        return self._config_loader

    def get_model_backend(self, role: str) -> Any:
        """获取角色对应的适配器实例（带缓存）。

        Raises:
            ConfigurationError: 角色配置缺失、不完整或 api_mode 不支持。
        """
        if role in self._model_cache:
            return self._model_cache[role]

        config = self._config_loader.resolve(role)
        try:
            adapter = self._create_adapter(config)
        except ValueError as e:
            raise ConfigurationError(f"角色 '{role}' 配置不完整: {e}") from e

        self._model_cache[role] = adapter
        logger.info(
            "LLM 适配器已创建: role=%s, api_mode=%s, model=%s, url=%s",
            role,
            config.api_mode,
            config.model_name,
            config.url or "(default)",
        )
        return adapter

    @staticmethod
    def _create_adapter(config) -> Any:
        if config.api_mode == "chat_completions":
            from parallel_thought.llm.chat_completions_adapter import (
                ChatCompletionsAdapter,
            )
            return ChatCompletionsAdapter.from_endpoint_config(config)

        if config.api_mode == "anthropic":
            from parallel_thought.llm.anthropic_adapter import AnthropicAdapter
            return AnthropicAdapter.from_endpoint_config(config)

        raise ConfigurationError(
            f"不支持的 api_mode: '{config.api_mode}'。"
            f"仅支持: chat_completions, anthropic。"
        )

    def clear_model_cache(self) -> None:
        self._model_cache.clear()

    def make_generator(self, role: str) -> StructuredGenerator:
        """创建指定角色的结构化生成函数。

        返回 async def(*, system_prompt, user_prompt, schema, schema_name) -> dict，
        供 PerspectiveAnalyzer / Synthesizer 使用。
        """

        async def generator(
            *,
            system_prompt: str = "",
            user_prompt: str = "",
            schema: Dict[str, Any],
            schema_name: str = "response",
        ) -> Dict[str, Any]:
            adapter = self.get_model_backend(role)
            self.attempts_by_role[role] = self.attempts_by_role.get(role, 0) + 1
            logger.info(f"[{role}] LLM 调用 #{self.attempts_by_role[role]} ({schema_name})")
            payload = await adapter.generate(
                system_prompt, user_prompt, schema, schema_name
            )
            self.calls_by_role[role] = self.calls_by_role.get(role, 0) + 1
            return payload

        return generator
