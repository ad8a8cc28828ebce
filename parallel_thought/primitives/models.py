# models.py
# =============================================================================
# 核心数据模型 / Core data models
#
# 包含：PriorityWeights、PerspectiveAssessment、PerspectiveSet、Synthesis、
#       AnalysisResult、ScenarioRecord。
# / Contains PriorityWeights, PerspectiveAssessment, PerspectiveSet, Synthesis,
#   AnalysisResult and ScenarioRecord.
#
# 面向模型的类型全部 extra="forbid" + frozen：边界处缺字段、多字段、类型错误
# 一律拒绝，不做乐观的属性访问。
# / Model-facing types are extra="forbid" and frozen: missing keys, unknown keys
#   and wrong types are rejected at the boundary.
# =============================================================================

from __future__ import annotations

import time
import uuid
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 五个固定视角，顺序即展示与序列化顺序 / The five fixed perspectives; order is display and wire order
DIMENSIONS: Tuple[str, ...] = (
    "security",
    "performance",
    "cost",
    "developer",
    "business",
)


class _Frozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class _DimensionMapping(_Frozen):
    """五个视角字段的映射式访问。 / Mapping-style access over the five dimension fields."""

    def __getitem__(self, key: str):
        if key not in DIMENSIONS:
            raise KeyError(key)
        return getattr(self, key)

    def keys(self) -> Tuple[str, ...]:
        return DIMENSIONS

    def items(self) -> Iterator[Tuple[str, object]]:
        for key in DIMENSIONS:
            yield key, getattr(self, key)


# =============================================================================
# 优先级权重 / Priority weights
# =============================================================================


class PriorityWeights(_DimensionMapping):
    """每个视角一个 0-100 的整数权重，互相独立，不要求总和。
    / One integer weight in [0, 100] per dimension; independent, no sum invariant.
    """

    security: int = Field(..., ge=0, le=100, strict=True)
    performance: int = Field(..., ge=0, le=100, strict=True)
    cost: int = Field(..., ge=0, le=100, strict=True)
    developer: int = Field(..., ge=0, le=100, strict=True)
    business: int = Field(..., ge=0, le=100, strict=True)

    @classmethod
    def default(cls) -> PriorityWeights:
        return cls(security=80, performance=60, cost=100, developer=40, business=70)

    def ranked(self) -> List[str]:
        """按权重降序排列的视角；同权重保持 DIMENSIONS 顺序。 / Dimensions by descending weight, ties in DIMENSIONS order."""
        return sorted(DIMENSIONS, key=lambda d: -getattr(self, d))

    def with_weight(self, dimension: str, value: int) -> PriorityWeights:
        """返回修改单个权重后的新实例。 / Return a copy with one weight changed."""
        if dimension not in DIMENSIONS:
            raise KeyError(dimension)
        data = self.model_dump()
        data[dimension] = value
        return PriorityWeights.model_validate(data)


# =============================================================================
# 阶段一：视角评估 / Stage one: perspective assessments
# =============================================================================


class Metric(_Frozen):
    label: str
    value: str


class PerspectiveAssessment(_Frozen):
    """单个专家视角的评估。 / One expert assessment."""

    recommendation: str
    confidence: int = Field(..., ge=1, le=10, strict=True)
    reasoning: str
    key_points: List[str] = Field(..., min_length=3, max_length=3)
    metrics: List[Metric] = Field(..., min_length=2, max_length=3)


class PerspectiveSet(_DimensionMapping):
    security: PerspectiveAssessment
    performance: PerspectiveAssessment
    cost: PerspectiveAssessment
    developer: PerspectiveAssessment
    business: PerspectiveAssessment


# =============================================================================
# 阶段二：加权合成 / Stage two: weighted synthesis
# =============================================================================


class ConflictResolution(_Frozen):
    conflict: str
    resolution: str
    tradeoff: Optional[str] = None


class DimensionOutcomes(_DimensionMapping):
    """每个视角的预测结果。 / Predicted outcome per dimension."""

    security: str
    performance: str
    cost: str
    developer: str
    business: str


class Synthesis(_Frozen):
    """加权合成后的最终建议。 / Consolidated recommendation after weighting."""

    final_recommendation: str
    confidence: int = Field(..., ge=1, le=10, strict=True)
    reasoning_chain: List[str] = Field(..., min_length=1)
    consensus_points: List[str] = Field(default_factory=list)
    conflicts_resolved: List[ConflictResolution]
    action_plan: List[str] = Field(..., min_length=1)
    outcomes: DimensionOutcomes

    @field_validator("final_recommendation")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("final_recommendation must not be blank")
        return value


# =============================================================================
# 聚合结果与历史记录 / Aggregate result and history record
# =============================================================================


class AnalysisResult(_Frozen):
    """一次成功运行的完整产出；唯一被持久化和渲染的单元。
    / Full output of one successful run; the only persisted and rendered unit.
    """

    problem: str
    context: str
    perspectives: PerspectiveSet
    synthesis: Synthesis
    weights: PriorityWeights


class ScenarioRecord(_Frozen):
    id: str
    timestamp: int  # epoch 毫秒 / epoch milliseconds
    problem: str
    context: str
    weights: PriorityWeights
    result: Optional[AnalysisResult] = None

    @classmethod
    def create(
        cls,
        problem: str,
        context: str,
        weights: PriorityWeights,
        result: Optional[AnalysisResult] = None,
    ) -> ScenarioRecord:
        return cls(
            id=uuid.uuid4().hex,
            timestamp=int(time.time() * 1000),
            problem=problem,
            context=context,
            weights=weights,
            result=result,
        )

    def to_dict(self) -> Dict[str, object]:
        return self.model_dump(mode="json")
