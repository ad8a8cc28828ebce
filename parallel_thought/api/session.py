# session.py
# =============================================================================
# 公共 API — 分析会话。
#
# AnalysisSession 持有展示层的显式会话状态（当前问题、上下文、权重、结果），
# 是展示层调用流水线的唯一入口。build_session() 负责从 LLM 配置组装完整对象图。
# =============================================================================

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from parallel_thought.agents.analyzer import PerspectiveAnalyzer
from parallel_thought.agents.synthesizer import Synthesizer
from parallel_thought.api.share import (
    SharedState,
    decode_share_link,
    encode_share_link,
)
from parallel_thought.engine.history import ScenarioHistory
from parallel_thought.engine.pipeline import (
    AnalysisPipeline,
    ProgressCallback,
    coerce_weights,
)
from parallel_thought.errors import (
    AnalysisInProgressError,
    GenerationError,
    ValidationError,
)
from parallel_thought.primitives.events import PipelineState
from parallel_thought.primitives.models import (
    AnalysisResult,
    PriorityWeights,
    ScenarioRecord,
)

logger = logging.getLogger(__name__)

_DEFAULT_HISTORY_PATH = "parallel_thought_history.json"


class AnalysisSession:
    """一个用户会话的显式状态。 / Explicit state of one user session.

    同一会话同一时刻最多一个运行；运行期间再次调用 run_analysis 会被拒绝。
    取消与过期响应抑制不在此处处理。
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        problem: str = "",
        context: str = "",
        weights: Optional[PriorityWeights] = None,
    ):
        self._pipeline = pipeline
        self.problem = problem
        self.context = context
        self._weights = weights or PriorityWeights.default()
        self.result: Optional[AnalysisResult] = None
        self.last_error: Optional[Exception] = None
        self._last_inputs: Optional[Tuple[str, str, PriorityWeights]] = None
        self._busy = False

    # -----------------------------------------------------------------
    # 状态访问 / State access
    # -----------------------------------------------------------------

    @property
    def weights(self) -> PriorityWeights:
        return self._weights

    @weights.setter
    def weights(self, value: Union[PriorityWeights, Mapping[str, Any]]) -> None:
        self._weights = coerce_weights(value)

    def set_weight(self, dimension: str, value: int) -> None:
        self._weights = self._weights.with_weight(dimension, value)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def state(self) -> PipelineState:
        return self._pipeline.state

    @property
    def history(self) -> Tuple[ScenarioRecord, ...]:
        return self._pipeline.history.records

    @property
    def pipeline(self) -> AnalysisPipeline:
        return self._pipeline

    # -----------------------------------------------------------------
    # 运行 / Running
    # -----------------------------------------------------------------

    async def run_analysis(
        self,
        problem: Optional[str] = None,
        context: Optional[str] = None,
        weights: Optional[Union[PriorityWeights, Mapping[str, Any]]] = None,
    ) -> AnalysisResult:
        """以当前（或传入的）输入运行一次分析。

        Raises:
            AnalysisInProgressError: 本会话已有运行在进行。
            ValidationError: 问题为空或权重非法。
            GenerationError: 任一阶段失败，原样透传。
        """
        if problem is not None:
            self.problem = problem
        if context is not None:
            self.context = context
        if weights is not None:
            self.weights = weights
        return await self._run(self.problem, self.context, self._weights)

    async def retry(self) -> AnalysisResult:
        """用上一次捕获的输入重新运行。 / Re-run with the last captured inputs."""
        if self._last_inputs is None:
            raise ValidationError("Nothing to retry: no analysis has been run yet.")
        problem, context, weights = self._last_inputs
        return await self._run(problem, context, weights)

    async def _run(
        self, problem: str, context: str, weights: PriorityWeights
    ) -> AnalysisResult:
        if self._busy:
            raise AnalysisInProgressError("An analysis is already running for this session.")
        self._busy = True
        self._last_inputs = (problem, context, weights)
        self.last_error = None
        try:
            result = await self._pipeline.run(problem, context, weights)
        except (GenerationError, ValidationError) as e:
            self.last_error = e
            raise
        finally:
            self._busy = False
        self.result = result
        return result

    # -----------------------------------------------------------------
    # 历史与分享 / History and sharing
    # -----------------------------------------------------------------

    def load_scenario(self, record: ScenarioRecord) -> None:
        """将当前问题、上下文、权重和结果重置为历史记录的值。"""
        self.problem = record.problem
        self.context = record.context
        self._weights = record.weights
        self.result = record.result
        self.last_error = None
        logger.info(f"已载入历史场景: {record.id}")

    def share_link(self, base_url: str = "") -> str:
        return encode_share_link(self.problem, self.context, self._weights, base_url)

    def apply_share_link(self, url_or_query: str) -> SharedState:
        """应用分享链接；非法或缺失字段保持当前值。"""
        state = decode_share_link(
            url_or_query,
            SharedState(self.problem, self.context, self._weights),
        )
        self.problem = state.problem
        self.context = state.context
        self._weights = state.weights
        return state


def build_session(
    llm_config: Optional[Dict[str, Any]] = None,
    config_file: Optional[str] = None,
    history_path: Optional[Union[str, Path]] = _DEFAULT_HISTORY_PATH,
    on_progress: Optional[ProgressCallback] = None,
    problem: str = "",
    context: str = "",
    weights: Optional[PriorityWeights] = None,
) -> AnalysisSession:
    """从 LLM 配置组装会话。

    参数：
        llm_config: LLM 模型配置（最高优先级），角色为 analyzer / synthesizer。
            - 简写: {"analyzer": "gpt-4o-mini", "synthesizer": "gpt-4o"}
            - 完整: {"_default": {"url": "...", "api_key": "sk-xxx"},
                     "synthesizer": {"model_name": "gpt-4o"}}
        config_file: LLM 配置文件路径（可选，不传则自动搜索 llm_config.yaml）。
        history_path: 历史 JSON 文件路径；None 表示仅保存在内存。
        on_progress: 进度回调（同步或异步），接收 PipelineEvent。

    Raises:
        ConfigurationError: 任一角色配置缺失或不完整；此时不会发起任何模型调用。
    """
    from parallel_thought.llm.router import ModelRouter

    router = ModelRouter(llm_config=llm_config, config_file=config_file)
    # 两个角色都在构建时解析，避免分析阶段已消耗调用后才发现合成阶段无法配置
    for role in ("analyzer", "synthesizer"):
        router.get_model_backend(role)
    pipeline = AnalysisPipeline(
        analyzer=PerspectiveAnalyzer(router.make_generator("analyzer")),
        synthesizer=Synthesizer(router.make_generator("synthesizer")),
        history=ScenarioHistory(history_path),
        on_progress=on_progress,
    )
    return AnalysisSession(pipeline, problem=problem, context=context, weights=weights)
