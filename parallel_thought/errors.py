# errors.py
# =============================================================================
# 异常分类 / Error taxonomy
#
# 职责 / Responsibilities:
#   - 定义结构化生成失败的统一异常族 GenerationError 及其子类
#     / Define the GenerationError family for structured-generation failures
#   - 将传输层信号（HTTP 状态码、错误文本）映射为异常子类
#     / Map transport signals (HTTP status, error text) to subclasses
#   - 定义本地前置校验失败 ValidationError
#     / Define local precondition failure ValidationError
#
# 流水线不做任何自动重试；retryable 仅供调用方决策。
# / The pipeline never retries; `retryable` only informs the caller.
# =============================================================================

from __future__ import annotations

from typing import Optional, Type


class GenerationError(Exception):
    """结构化生成失败的基类。 / Base class for structured-generation failures."""

    kind = "generation_error"
    retryable = False
    default_message = (
        "An unexpected error occurred while communicating with the AI."
    )

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        detail: str = "",
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.retry_after = retry_after
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
        }


class RateLimited(GenerationError):
    kind = "rate_limited"
    retryable = True
    default_message = (
        "Rate limit exceeded (429). The AI service is currently busy. "
        "Please wait 30-60 seconds before trying again."
    )


class PermissionDenied(GenerationError):
    kind = "permission_denied"
    default_message = (
        "Access denied (403). Your API key might not have permission "
        "for this model or region."
    )


class SchemaRejected(GenerationError):
    kind = "schema_rejected"
    default_message = (
        "Schema validation failed (400). The structured output definition "
        "was rejected by the model."
    )


class ServiceUnavailable(GenerationError):
    kind = "service_unavailable"
    retryable = True
    default_message = (
        "AI Service Error (5xx). The model provider is experiencing issues. "
        "Please try again later."
    )


class AuthInvalid(GenerationError):
    kind = "auth_invalid"
    default_message = (
        "API Key Error. Please ensure a valid API key is configured."
    )


class EmptyResponse(GenerationError):
    kind = "empty_response"
    retryable = True
    default_message = "Received an empty response from the AI."


class ParseFailure(GenerationError):
    kind = "parse_failure"
    retryable = True
    default_message = "The AI response could not be parsed as structured data."


class SchemaViolation(ParseFailure):
    """响应可解析但不符合输出 schema。 / Decodable payload that does not match the schema."""

    kind = "schema_violation"
    default_message = "The AI response did not match the expected structure."


class ValidationError(Exception):
    """本地前置校验失败，不会触达模型。 / Local precondition failure; never reaches the model."""

    kind = "validation_error"
    retryable = False

    def __init__(self, message: str = "Please enter a problem statement."):
        self.message = message
        super().__init__(message)


class AnalysisInProgressError(RuntimeError):
    """同一会话已有分析在运行。 / A run is already in flight for this session."""


# =============================================================================
# 传输信号 → 异常子类 / Transport signal → subclass
# =============================================================================

_STATUS_MAP = {
    400: SchemaRejected,
    401: AuthInvalid,
    403: PermissionDenied,
    422: SchemaRejected,
    429: RateLimited,
}


def classify_status(status_code: int, body: str = "") -> Type[GenerationError]:
    """根据 HTTP 状态码与错误文本选择异常子类。 / Pick a subclass from HTTP status and error text."""
    if status_code in _STATUS_MAP:
        return _STATUS_MAP[status_code]
    if status_code >= 500:
        return ServiceUnavailable

    text = body.lower()
    if "quota" in text or "rate limit" in text:
        return RateLimited
    if "permission" in text:
        return PermissionDenied
    if "api key" in text or "api_key" in text:
        return AuthInvalid
    return GenerationError


def error_from_status(
    status_code: int,
    body: str = "",
    retry_after: Optional[str] = None,
) -> GenerationError:
    """构建带诊断信息的异常实例。 / Build an exception instance carrying diagnostics."""
    error_cls = classify_status(status_code, body)
    delay: Optional[float] = None
    if retry_after:
        try:
            delay = float(retry_after)
        except ValueError:
            delay = None
    message = None
    if error_cls is GenerationError and body:
        message = body[:300]
    return error_cls(
        message,
        status_code=status_code,
        retry_after=delay,
        detail=body[:500],
    )
