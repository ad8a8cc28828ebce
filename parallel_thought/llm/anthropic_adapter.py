# anthropic_adapter.py
# =============================================================================
# Anthropic Messages API 适配器（结构化输出）
#
# 职责：
#   - 将 (system_prompt, user_message, schema) 转换为 Messages API 请求
#   - 结构化输出通过单个强制调用的工具实现：工具的 input_schema 即输出 schema，
#     模型返回的 tool_use.input 即结构化结果
#   - 直连 https://api.anthropic.com/v1/messages
#
# 请求格式：
#   {"model": "...", "max_tokens": 4096, "system": "...",
#    "messages": [{"role": "user", "content": "..."}],
#    "tools": [{"name": "<schema_name>", "input_schema": {...}}],
#    "tool_choice": {"type": "tool", "name": "<schema_name>"}}
#   -> response["content"][i] (type == "tool_use")["input"]
#
# 认证方式：
#   - x-api-key: <key>
#   - anthropic-version: 2023-06-01
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from parallel_thought.errors import (
    EmptyResponse,
    GenerationError,
    ParseFailure,
    ServiceUnavailable,
    error_from_status,
)

logger = logging.getLogger(__name__)

_DEFAULT_ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"

_ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter:
    """Anthropic Messages API 适配器。

    通过 httpx 异步直连调用 Messages API，以强制工具调用获取结构化输出。
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        max_retries: int = 0,
    ):
        self._endpoint = self._resolve_endpoint(url)
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._max_retries = max_retries

    async def generate(
        self,
        system_prompt: str,
        user_message: str,
        schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """调用 Messages API 并返回工具输入（结构化结果）。

        Raises:
            GenerationError: 任一子类，见 parallel_thought.errors。
        """
        request_body = self._build_request(
            system_prompt, user_message, schema, schema_name
        )

        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": _ANTHROPIC_VERSION,
        }

        last_error: Optional[GenerationError] = None
        for attempt in range(self._max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._endpoint,
                        headers=headers,
                        json=request_body,
                    )
                    response.raise_for_status()
                    result = response.json()
                return self._extract_tool_input(result, schema_name)

            except httpx.HTTPStatusError as e:
                error = error_from_status(
                    e.response.status_code,
                    e.response.text,
                    e.response.headers.get("retry-after"),
                )
                logger.warning(
                    "Anthropic Messages API 调用失败 (HTTP %d, %s)，第 %d/%d 次: %s",
                    e.response.status_code,
                    error.kind,
                    attempt + 1,
                    self._max_retries + 1,
                    e.response.text[:200],
                )
                if not isinstance(error, ServiceUnavailable):
                    raise error from e
                last_error = error
            except httpx.RequestError as e:
                logger.warning(
                    "Anthropic Messages API 请求异常，第 %d/%d 次: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    e,
                )
                last_error = ServiceUnavailable(detail=str(e))
            except ValueError as e:
                raise ParseFailure(detail=str(e)) from e

        raise last_error

    # =========================================================================
    # URL 解析
    # =========================================================================

    @staticmethod
    def _resolve_endpoint(url: Optional[str]) -> str:
        """url 为空时使用官方端点；路径中不含 /messages 时自动追加。"""
        if not url:
            return _DEFAULT_ANTHROPIC_URL

        from urllib.parse import urlparse, urlunparse

        parsed = urlparse(url)
        path = parsed.path
        if "/messages" not in path:
            path = path.rstrip("/") + "/messages"
        return urlunparse(parsed._replace(path=path))

    # =========================================================================
    # 请求构建与响应解析
    # =========================================================================

    def _build_request(
        self,
        system_prompt: str,
        user_message: str,
        schema: Dict[str, Any],
        schema_name: str,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": user_message}],
            "temperature": self._temperature,
            "tools": [
                {
                    "name": schema_name,
                    "description": "Record the structured analysis result.",
                    "input_schema": schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": schema_name},
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    @staticmethod
    def _extract_tool_input(
        response_data: Dict[str, Any], schema_name: str
    ) -> Dict[str, Any]:
        """取出名为 schema_name 的 tool_use 块的 input。"""
        if not isinstance(response_data, dict):
            raise ParseFailure(
                f"Unexpected response body: {type(response_data).__name__}"
            )
        content = response_data.get("content") or []
        if not isinstance(content, list):
            raise ParseFailure("Unexpected response body: malformed content")
        for block in content:
            if (
                isinstance(block, dict)
                and block.get("type") == "tool_use"
                and block.get("name") == schema_name
            ):
                payload = block.get("input")
                if not payload:
                    raise EmptyResponse()
                if not isinstance(payload, dict):
                    raise ParseFailure(
                        f"Tool input is not an object: {type(payload).__name__}"
                    )
                return payload

        if response_data.get("stop_reason") == "max_tokens":
            raise ParseFailure(
                "The AI response was truncated before the structured output was complete."
            )
        raise EmptyResponse()

    @classmethod
    def from_endpoint_config(cls, config) -> AnthropicAdapter:
        """从 ModelEndpointConfig 创建适配器实例。

        Raises:
            ValueError: 缺少 api_key。
        """
        if not config.api_key:
            raise ValueError(
                "Anthropic API 模式需要显式配置 api_key，"
                "请在 llm_config 中设置 api_key 或通过环境变量 ANTHROPIC_API_KEY 提供。"
            )

        return cls(
            api_key=config.api_key,
            model=config.model_name,
            url=config.url,
            temperature=config.temperature,
            max_tokens=config.max_tokens or 4096,
            timeout=config.timeout or 120.0,
            max_retries=config.max_retries,
        )
