# share.py
# =============================================================================
# 分享链接编解码 — (problem, context, weights) ⇄ URL query。
# / Share-link codec — (problem, context, weights) ⇄ URL query.
#
# 格式 / Format:  ?p=<problem>&c=<context>&w=<weights JSON>
#   w 使用紧凑 JSON，键按 DIMENSIONS 顺序，输出确定。
#   / w is compact JSON keyed in DIMENSIONS order, so output is deterministic.
#
# 解码是全函数：缺失或非法字段回退到调用方提供的当前状态，从不抛异常。
# / Decoding is total: missing or invalid fields fall back to the caller's state.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from parallel_thought.primitives.models import DIMENSIONS, PriorityWeights

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedState:
    """可分享的输入状态。 / Shareable input state."""

    problem: str
    context: str
    weights: PriorityWeights


def encode_share_query(
    problem: str, context: str, weights: PriorityWeights
) -> str:
    weights_json = json.dumps(
        {d: weights[d] for d in DIMENSIONS}, separators=(",", ":")
    )
    return urlencode({"p": problem, "c": context, "w": weights_json})


def encode_share_link(
    problem: str,
    context: str,
    weights: PriorityWeights,
    base_url: str = "",
) -> str:
    """生成分享链接；base_url 为空时只返回 query 串。 / Build a share link; query only when base_url is empty."""
    query = encode_share_query(problem, context, weights)
    if not base_url:
        return query
    parsed = urlparse(base_url)
    return urlunparse(parsed._replace(query=query, fragment=""))


def decode_share_link(url_or_query: str, fallback: SharedState) -> SharedState:
    """解析分享链接，非法或缺失字段使用 fallback 的值。

    Args:
        url_or_query: 完整 URL、"?p=..." 或裸 query 串。
        fallback: 当前内存中的状态。

    Returns:
        合并后的 SharedState。
    """
    text = url_or_query or ""
    if "?" in text:
        query = urlparse(text).query if "://" in text else text.split("?", 1)[1]
    else:
        query = text
    params = parse_qs(query, keep_blank_values=True)

    problem = _first(params, "p") or fallback.problem
    context = _first(params, "c") or fallback.context
    weights = _decode_weights(_first(params, "w"), fallback.weights)
    return SharedState(problem=problem, context=context, weights=weights)


def _first(params: Dict[str, list], key: str) -> str:
    values = params.get(key)
    return values[0] if values else ""


def _decode_weights(raw: str, fallback: PriorityWeights) -> PriorityWeights:
    """逐个视角合并：合法的 0-100 整数采用，其余沿用 fallback。
    / Merge per dimension: valid integers in [0, 100] win, the rest keep fallback values.
    """
    if not raw:
        return fallback
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("分享链接中的权重无法解析，沿用当前权重")
        return fallback
    if not isinstance(parsed, dict):
        logger.warning("分享链接中的权重不是对象，沿用当前权重")
        return fallback

    merged = fallback.model_dump()
    for dimension in DIMENSIONS:
        value = parsed.get(dimension)
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 100:
            merged[dimension] = value
    return PriorityWeights.model_validate(merged)
