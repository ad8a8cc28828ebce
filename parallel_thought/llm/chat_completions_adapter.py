# chat_completions_adapter.py
# =============================================================================
# OpenAI Chat Completions API 适配器（结构化输出）
#
# 职责：
#   - 将 (system_prompt, user_message, schema) 转换为带
#     response_format=json_schema 的 Chat Completions 请求
#   - 解析返回的 JSON 文本；空内容 / 拒答 / 非法 JSON 映射为 GenerationError 子类
#   - 兼容多种端点来源：
#     · 标准 OpenAI（api.openai.com）
#     · OpenAI 兼容端点（DeepSeek、Qwen、Moonshot 等）
#     · Azure OpenAI（cognitiveservices.azure.com）
#
# URL 兼容性：
#   1. 基础 URL：https://api.openai.com/v1 -> 自动追加 /chat/completions
#   2. 完整路径 / 带 query 参数的 URL -> 直接使用
#
# 认证方式：
#   - 标准端点：Authorization: Bearer <key>
#   - Azure 端点：api-key: <key>（自动检测 Azure 域名）
#
# 重试策略：默认不重试（max_retries=0），重试由调用方决定；显式配置时仅对
#   ServiceUnavailable（5xx / 网络异常）重试，其余错误首次即抛出。
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import httpx

from parallel_thought.errors import (
    EmptyResponse,
    GenerationError,
    ParseFailure,
    SchemaRejected,
    ServiceUnavailable,
    error_from_status,
)
from parallel_thought.utils.json_parser import parse_json_payload

logger = logging.getLogger(__name__)

_AZURE_DOMAIN_SUFFIXES = (
    "cognitiveservices.azure.com",
    "openai.azure.com",
    "services.ai.azure.com",
)


class ChatCompletionsAdapter:
    """OpenAI Chat Completions API 适配器。

    通过 httpx 异步直连调用 Chat Completions 端点，使用 json_schema
    response_format 约束输出结构。
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 120.0,
        max_retries: int = 0,
        api_version: Optional[str] = None,
    ):
        """初始化适配器。

        Args:
            url: API 端点 URL（基础 URL 或完整 /chat/completions 路径）。
            api_key: API 密钥。
            model: 模型名称（如 "gpt-4o"）。
            temperature: 生成温度。
            max_tokens: 最大输出 token 数。
            timeout: 请求超时时间（秒），即流水线继承的唯一超时。
            max_retries: 5xx / 网络异常的最大重试次数，默认 0（不重试）。
            api_version: Azure API 版本（可选）。
        """
        self._endpoint = self._resolve_endpoint(url, api_version)
        self._is_azure = self._detect_azure(url)
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._max_retries = max_retries

        if self._is_azure:
            logger.info("检测到 Azure 端点，将使用 api-key 认证头: %s", self._endpoint)

    async def generate(
        self,
        system_prompt: str,
        user_message: str,
        schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """调用 Chat Completions API 并返回解析后的 JSON 对象。

        Raises:
            GenerationError: 任一子类，见 parallel_thought.errors。
        """
        request_body = self._build_request(
            system_prompt, user_message, schema, schema_name
        )

        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self._is_azure:
            headers["api-key"] = self._api_key
        else:
            headers["Authorization"] = f"Bearer {self._api_key}"

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
                return self._extract_payload(result)

            except httpx.HTTPStatusError as e:
                error = error_from_status(
                    e.response.status_code,
                    e.response.text,
                    e.response.headers.get("retry-after"),
                )
                logger.warning(
                    "Chat Completions API 调用失败 (HTTP %d, %s)，第 %d/%d 次: %s",
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
                    "Chat Completions API 请求异常，第 %d/%d 次: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    e,
                )
                last_error = ServiceUnavailable(detail=str(e))
            except ValueError as e:
                # response.json() 失败：响应体不是 JSON / body is not JSON
                raise ParseFailure(detail=str(e)) from e

        raise last_error

    # =========================================================================
    # URL 与认证检测
    # =========================================================================

    @staticmethod
    def _resolve_endpoint(url: str, api_version: Optional[str] = None) -> str:
        """智能解析端点 URL。

        1. 路径中已包含 /chat/completions -> 直接使用
        2. 否则在路径末尾追加 /chat/completions
        3. Azure URL 且 query 中无 api-version -> 自动追加
        """
        parsed = urlparse(url)

        path = parsed.path
        if "/chat/completions" not in path:
            path = path.rstrip("/") + "/chat/completions"

        query_params = parse_qs(parsed.query, keep_blank_values=True)
        if api_version and "api-version" not in query_params:
            hostname = parsed.hostname or ""
            if any(hostname.endswith(d) for d in _AZURE_DOMAIN_SUFFIXES):
                query_params["api-version"] = [api_version]

        return urlunparse(
            parsed._replace(path=path, query=urlencode(query_params, doseq=True))
        )

    @staticmethod
    def _detect_azure(url: str) -> bool:
        hostname = urlparse(url).hostname or ""
        return any(hostname.endswith(d) for d in _AZURE_DOMAIN_SUFFIXES)

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
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        body: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": schema,
                    # 可选字段（如 tradeoff）不满足 strict 模式的全字段必填要求
                    "strict": False,
                },
            },
        }
        if self._max_tokens is not None:
            body["max_tokens"] = self._max_tokens
        return body

    @staticmethod
    def _extract_payload(response_data: Dict[str, Any]) -> Dict[str, Any]:
        """提取 choices[0].message.content 并解析为 JSON 对象。"""
        if not isinstance(response_data, dict):
            raise ParseFailure(
                f"Unexpected response body: {type(response_data).__name__}"
            )
        choices = response_data.get("choices") or []
        if not choices:
            raise EmptyResponse()
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ParseFailure("Unexpected response body: malformed choices")

        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise ParseFailure("Unexpected response body: malformed message")
        if message.get("refusal"):
            raise SchemaRejected(
                f"The model refused the request: {message['refusal']}"
            )

        content = message.get("content")
        if not content:
            raise EmptyResponse()
        if choices[0].get("finish_reason") == "length":
            raise ParseFailure(
                "The AI response was truncated before the structured output was complete."
            )
        return parse_json_payload(content)

    @classmethod
    def from_endpoint_config(cls, config) -> ChatCompletionsAdapter:
        """从 ModelEndpointConfig 创建适配器实例。

        Raises:
            ValueError: 缺少 url / api_key。
        """
        if not config.url:
            raise ValueError(
                "Chat Completions API 模式需要显式配置 url。请在 llm_config 中设置 url。"
            )
        if not config.api_key:
            raise ValueError(
                "Chat Completions API 模式需要显式配置 api_key，"
                "请在 llm_config 中设置 api_key 或通过环境变量提供。"
            )

        return cls(
            url=config.url,
            api_key=config.api_key,
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout or 120.0,
            max_retries=config.max_retries,
            api_version=config.api_version,
        )
