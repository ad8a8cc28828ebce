"""分析流水线编排器。 / Analysis pipeline orchestrator.

职责 / Responsibilities:
1. 编排 —— 严格顺序执行 PerspectiveAnalyzer → Synthesizer
   / Sequence PerspectiveAnalyzer → Synthesizer, strictly one after the other
2. 状态 —— IDLE → ANALYZING → SYNTHESIZING → COMPLETING → IDLE，失败直接回到 IDLE
   / Coarse state machine; any failure returns to IDLE
3. 收尾 —— 组装 AnalysisResult 并写入有界历史
   / Assemble the AnalysisResult and append it to the bounded history

不负责：重试、超时、取消、过期响应抑制（均为调用方职责）。
/ Not responsible for retries, timeouts, cancellation or stale-response suppression.
"""

import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from parallel_thought.agents.analyzer import PerspectiveAnalyzer
from parallel_thought.agents.synthesizer import Synthesizer
from parallel_thought.engine.history import ScenarioHistory
from parallel_thought.errors import GenerationError, ValidationError
from parallel_thought.primitives.events import PipelineEvent, PipelineState
from parallel_thought.primitives.models import (
    AnalysisResult,
    PriorityWeights,
    ScenarioRecord,
)
from parallel_thought.utils.markup import strip_markup

logger = logging.getLogger(__name__)

# 类型别名：支持同步和异步回调 / Type alias: supports sync and async callbacks
ProgressCallback = Union[
    Callable[[PipelineEvent], Awaitable[None]],
    Callable[[PipelineEvent], None],
]

# 各状态对应的进度值，仅用于进度标签 / Progress value per state, for labelling only
_STATE_PROGRESS = {
    PipelineState.IDLE: 0.0,
    PipelineState.ANALYZING: 0.1,
    PipelineState.SYNTHESIZING: 0.5,
    PipelineState.COMPLETING: 0.9,
}


def coerce_weights(
    weights: Union[PriorityWeights, Mapping[str, Any]],
) -> PriorityWeights:
    """校验并复制权重。 / Validate and copy the weights.

    Raises:
        ValidationError: 缺少视角、多余键或取值不在 0-100。
    """
    if isinstance(weights, PriorityWeights):
        return weights
    try:
        return PriorityWeights.model_validate(dict(weights))
    except (PydanticValidationError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid priority weights: {e}") from e


class AnalysisPipeline:
    """两阶段分析流水线。 / Two-stage analysis pipeline."""

    def __init__(
        self,
        analyzer: PerspectiveAnalyzer,
        synthesizer: Synthesizer,
        history: Optional[ScenarioHistory] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._analyzer = analyzer
        self._synthesizer = synthesizer
        self._history = history if history is not None else ScenarioHistory()
        self._on_progress = on_progress
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        """当前状态，仅供进度展示。 / Current state, for progress labelling only."""
        return self._state

    @property
    def history(self) -> ScenarioHistory:
        return self._history

    async def _emit(self, event: PipelineEvent) -> None:
        """触发进度回调（支持同步和异步回调）。 / Emit progress callback (sync and async)."""
        if self._on_progress is None:
            return
        result = self._on_progress(event)
        if inspect.isawaitable(result):
            await result

    async def _transition(
        self,
        state: PipelineState,
        run_id: str,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.debug(f"[{run_id}] {self._state.value} -> {state.value}")
        self._state = state
        await self._emit(PipelineEvent(
            type="state_changed",
            state=state,
            run_id=run_id,
            progress=_STATE_PROGRESS[state],
            detail=detail,
        ))

    async def run(
        self,
        problem: str,
        context: str,
        weights: Union[PriorityWeights, Mapping[str, Any]],
    ) -> AnalysisResult:
        """执行一次完整分析。 / Execute one full analysis.

        problem / context 可以带富文本标记：模型只看到剥离后的纯文本，
        结果与历史记录保留原文。
        / problem and context may carry markup: the model sees plain text,
        the result and history keep the text as entered.

        Raises:
            ValidationError: problem 剥离标记并去除空白后为空，或权重非法；不发起任何调用。
            GenerationError: 任一阶段的原始异常，不做二次包装。
        """
        plain_problem = strip_markup(problem or "")
        if not plain_problem:
            raise ValidationError()
        plain_context = strip_markup(context or "")
        # 运行开始时捕获权重，运行中外部修改不影响本次调用
        captured_weights = coerce_weights(weights)

        run_id = uuid.uuid4().hex[:8]
        logger.info(f"[{run_id}] 开始分析: {plain_problem[:80]!r}")

        try:
            await self._transition(PipelineState.ANALYZING, run_id)
            perspectives = await self._analyzer.analyze(plain_problem, plain_context)

            await self._transition(PipelineState.SYNTHESIZING, run_id)
            synthesis = await self._synthesizer.synthesize(
                plain_problem, perspectives, captured_weights,
            )

            await self._transition(PipelineState.COMPLETING, run_id)
            result = AnalysisResult(
                problem=problem,
                context=context or "",
                perspectives=perspectives,
                synthesis=synthesis,
                weights=captured_weights,
            )
            record = ScenarioRecord.create(
                problem=problem,
                context=context or "",
                weights=captured_weights,
                result=result,
            )
            # 先通知再写历史：回调抛错时不留下半完成的记录
            self._state = PipelineState.IDLE
            await self._emit(PipelineEvent(
                type="completed",
                state=PipelineState.IDLE,
                run_id=run_id,
                progress=1.0,
                detail={"record_id": record.id},
            ))
            self._history.append(record)
        except GenerationError as e:
            failed_state = self._state
            logger.error(
                f"[{run_id}] 分析失败于 {failed_state.value}: {e.kind}: {e.message}"
            )
            self._state = PipelineState.IDLE
            await self._emit(PipelineEvent(
                type="failed",
                state=PipelineState.IDLE,
                run_id=run_id,
                progress=0.0,
                detail={
                    "failed_state": failed_state.value,
                    "error_kind": e.kind,
                    "message": e.message,
                    "retryable": e.retryable,
                },
            ))
            raise
        finally:
            self._state = PipelineState.IDLE

        logger.info(
            f"[{run_id}] 分析完成: {synthesis.final_recommendation[:80]!r} "
            f"(confidence={synthesis.confidence})"
        )
        return result
