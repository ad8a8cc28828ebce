# config.py
# =============================================================================
# LLM 配置加载与合并模块 / LLM config loading & merging module
#
# 职责 / Responsibilities:
#   - 定义单个模型端点的配置结构（ModelEndpointConfig）
#     / Define the per-endpoint config structure (ModelEndpointConfig)
#   - 三层优先级配置加载：代码传入 > 配置文件 > 环境变量
#     / Three-tier priority loading: code > config file > env vars
#   - 为 ModelRouter 提供 analyzer / synthesizer 两个角色的解析结果
#     / Resolve configs for the analyzer / synthesizer roles
#   - 配置缺失时抛出 ConfigurationError，不提供任何硬编码默认模型
#     / Raise ConfigurationError on missing config; no hardcoded default model
# =============================================================================

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """LLM 配置缺失或不完整。 / LLM config missing or incomplete."""


# 支持的 API 模式 / Supported API modes
API_MODES = ("chat_completions", "anthropic")

# 流水线使用的角色名 / Roles used by the pipeline
KNOWN_ROLES = ("analyzer", "synthesizer")


# =============================================================================
# 数据结构 / Data Structures
# =============================================================================


@dataclass
class ModelEndpointConfig:
    """单个模型端点的完整配置。 / Complete config for a single model endpoint.

    各适配器通过 from_endpoint_config() 读取本配置创建实例。
    / Adapters instantiate via from_endpoint_config().
    """

    model_platform: str  # "openai" / "anthropic" / "deepseek" ...
    model_name: str

    api_key: Optional[str] = None
    url: Optional[str] = None

    # "chat_completions" — OpenAI 兼容格式（默认） / OpenAI-compatible (default)
    # "anthropic"        — Anthropic Messages API
    api_mode: str = "chat_completions"

    temperature: float = 0.7
    max_tokens: Optional[int] = 4096
    # 传输层超时（秒）；流水线自身不设超时 / Transport timeout (s); the pipeline adds none
    timeout: Optional[float] = None
    max_retries: int = 0

    api_version: Optional[str] = None

    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> ModelEndpointConfig:
        """从字典或模型名字符串构建配置。 / Build config from a dict or a model-name string.

        字段优先级 / Field priority: model_name > model
        """
        if isinstance(data, str):
            return cls(model_platform=_infer_platform(data), model_name=data)

        model_name = data.get("model_name") or data.get("model", "")
        model_platform = data.get("model_platform") or _infer_platform(model_name)

        api_mode = data.get("api_mode") or _infer_api_mode(
            model_platform, data.get("url")
        )
        if api_mode not in API_MODES:
            raise ConfigurationError(
                f"不支持的 api_mode: '{api_mode}'。"
                f"仅支持 / supported: {', '.join(API_MODES)}。"
            )

        _known_keys = {
            "model",
            "model_name",
            "model_platform",
            "api_key",
            "url",
            "api_mode",
            "temperature",
            "max_tokens",
            "timeout",
            "max_retries",
            "api_version",
        }

        return cls(
            model_platform=model_platform,
            model_name=model_name,
            api_key=data.get("api_key"),
            url=data.get("url"),
            api_mode=api_mode,
            temperature=float(data.get("temperature", 0.7)),
            max_tokens=data["max_tokens"] if "max_tokens" in data else 4096,
            timeout=data.get("timeout"),
            max_retries=int(data.get("max_retries", 0)),
            api_version=data.get("api_version"),
            extra={k: v for k, v in data.items() if k not in _known_keys},
        )


# =============================================================================
# 平台 / API 模式推断 / Platform & API mode inference
# =============================================================================

_PLATFORM_INFERENCE_RULES: List[tuple] = [
    (["claude"], "anthropic"),
    (["gpt-", "o1-", "o3-", "o4-", "chatgpt"], "openai"),
    (["gemini"], "google"),
    (["deepseek"], "deepseek"),
    (["qwen", "qwq"], "qwen"),
]


def _infer_platform(model_name: str) -> str:
    """根据模型名称推断平台，无法推断时回退 "openai"。 / Infer platform; falls back to "openai"."""
    name_lower = model_name.lower()
    for keywords, platform in _PLATFORM_INFERENCE_RULES:
        if any(kw in name_lower for kw in keywords):
            return platform
    logger.debug("无法从模型名称 '%s' 推断平台，使用默认 'openai'", model_name)
    return "openai"


def _infer_api_mode(platform: str, url: Optional[str] = None) -> str:
    """anthropic 平台且未配置自定义 URL 时走 Messages API，其余走 Chat Completions。
    / Anthropic without a custom URL uses the Messages API; everything else Chat Completions.
    """
    if (platform or "").lower() == "anthropic" and not url:
        return "anthropic"
    return "chat_completions"


# =============================================================================
# 配置加载器 / Config Loader
# =============================================================================


class LLMConfigLoader:
    """LLM 配置加载器 — 三层优先级合并。 / LLM config loader — three-tier priority merging.

    优先级（高→低） / Priority (high→low):
    1. 代码传入 llm_config 字典 / Code-level config dict
    2. 配置文件 llm_config.yaml / Config file
    3. 环境变量（YAML 中的 ${VAR}） / Env vars (${VAR} in YAML)

    llm_config 字典格式 / Dict format:
    {
        "_default": {"model_platform": "openai", "api_key": "${OPENAI_API_KEY}"},
        "analyzer": "gpt-4o-mini",
        "synthesizer": {"model_name": "gpt-4o", "temperature": 0.3},
    }
    """

    _CONFIG_SEARCH_PATHS = [
        "llm_config.yaml",
        "llm_config.yml",
        "config/llm_config.yaml",
        "config/llm_config.yml",
    ]

    def __init__(
        self,
        llm_config: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
    ):
        self._code_config = llm_config or {}
        self._file_config: Dict[str, Any] = {}
        self._load_config_file(config_file)

    def _load_config_file(self, config_file: Optional[str]) -> None:
        if config_file:
            path = Path(config_file)
            if path.exists():
                self._file_config = self._read_yaml(path)
                logger.info("LLM 配置文件已加载: %s", path)
            else:
                logger.warning("指定的 LLM 配置文件不存在: %s", path)
            return

        for search_path in self._CONFIG_SEARCH_PATHS:
            path = Path(search_path)
            if path.exists():
                self._file_config = self._read_yaml(path)
                logger.info("自动发现 LLM 配置文件: %s", path)
                return

        logger.debug("未发现 LLM 配置文件，将依赖代码配置")

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"LLM 配置文件顶层必须是映射: {path}")
        return _expand_env_vars(raw)

    def resolve(self, role: str) -> ModelEndpointConfig:
        """解析指定角色的完整配置。 / Resolve the full config for a role.

        合并顺序（后者覆盖前者） / Merge order (later wins):
        文件 _default → 文件角色 → 代码 _default → 代码角色
        / file _default → file role → code _default → code role

        Raises:
            ConfigurationError: 合并后仍缺少 model_name。 / model_name still missing after merge.
        """
        merged: Dict[str, Any] = {}
        for layer in (
            self._file_config.get("_default", {}),
            self._file_config.get(role, {}),
            self._code_config.get("_default", {}),
            self._code_config.get(role, {}),
        ):
            if isinstance(layer, str):
                merged["model_name"] = layer
                merged["model_platform"] = _infer_platform(layer)
            elif isinstance(layer, dict):
                merged.update({k: v for k, v in layer.items() if v is not None})

        model_name = merged.get("model_name") or merged.get("model", "")
        if not model_name:
            hint = ""
            if role in KNOWN_ROLES:
                hint = (
                    f"\n提示 / hint: '{role}' 是流水线角色，请在 llm_config 参数、"
                    f"llm_config.yaml 或 _default 中为其指定模型。"
                )
            raise ConfigurationError(
                f"角色 '{role}' 的 LLM 模型配置缺失：未找到 model_name。{hint}"
            )
        merged["model_name"] = model_name
        return ModelEndpointConfig.from_dict(merged)

    def all_configured_roles(self) -> List[str]:
        roles = set()
        for cfg in (self._code_config, self._file_config):
            roles.update(k for k in cfg.keys() if not k.startswith("_"))
        return sorted(roles)

    def summary(self) -> Dict[str, Dict[str, str]]:
        """配置摘要（隐藏 API Key），用于日志。 / Config summary with masked API keys, for logging."""
        result = {}
        for role in self.all_configured_roles():
            try:
                cfg = self.resolve(role)
            except ConfigurationError as e:
                logger.debug("跳过无法解析的角色 %s: %s", role, e)
                continue
            result[role] = {
                "platform": cfg.model_platform,
                "model": cfg.model_name,
                "api_mode": cfg.api_mode,
                "url": cfg.url or "(auto)",
                "api_key": _mask_key(cfg.api_key),
            }
        return result


# =============================================================================
# 工具函数 / Utility Functions
# =============================================================================

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(obj: Any) -> Any:
    """递归展开 ${VAR} 与 ${VAR:-default}。 / Recursively expand ${VAR} and ${VAR:-default}."""
    if isinstance(obj, str):

        def _replace(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default = var_expr.split(":-", 1)
                return os.environ.get(var_name.strip(), default.strip())
            return os.environ.get(var_expr.strip(), match.group(0))

        return _ENV_REF.sub(_replace, obj)

    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def _mask_key(key: Optional[str]) -> str:
    """仅显示前 8 位和后 4 位。 / Show only the first 8 and last 4 chars."""
    if not key:
        return "(env)"
    if len(key) <= 12:
        return key[:3] + "***"
    return key[:8] + "..." + key[-4:]
