"""加权合成 Agent。 / Synthesizer — stage two of the pipeline.

冲突仲裁交给模型完成：权重以上下文形式传入提示词，本地不做数值计算。
因此相同输入不保证得到逐字相同的输出，只保证输出符合 schema。
/ Conflict arbitration is delegated to the model, conditioned on the weights as
context; only schema conformance is guaranteed, not determinism.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict

from parallel_thought.llm.schema import schema_descriptor, validate_payload
from parallel_thought.primitives.models import (
    PerspectiveSet,
    PriorityWeights,
    Synthesis,
)
from parallel_thought.prompts import SYNTHESIS_SYSTEM, SYNTHESIS_USER

logger = logging.getLogger(__name__)

SYNTHESIS_SCHEMA_NAME = "synthesis"


class Synthesizer:
    """加权合成器。 / Weighted synthesizer."""

    def __init__(
        self,
        generator: Callable[..., Awaitable[Dict[str, Any]]],
    ):
        self._generator = generator
        self._schema = schema_descriptor(Synthesis)

    @property
    def schema(self) -> Dict[str, Any]:
        return self._schema

    def build_prompt(
        self,
        problem: str,
        perspectives: PerspectiveSet,
        weights: PriorityWeights,
    ) -> str:
        ranked = weights.ranked()
        return SYNTHESIS_USER.format(
            problem=problem,
            perspectives_json=json.dumps(
                perspectives.model_dump(mode="json"), ensure_ascii=False
            ),
            weights_json=json.dumps(weights.model_dump(mode="json")),
            priority_order=" > ".join(f"{d} ({weights[d]})" for d in ranked),
        )

    async def synthesize(
        self,
        problem: str,
        perspectives: PerspectiveSet,
        weights: PriorityWeights,
    ) -> Synthesis:
        """Consolidate five perspectives into one weighted recommendation.

        Raises:
            GenerationError: 传输、配额、权限、schema 或解析失败。
        """
        payload = await self._generator(
            system_prompt=SYNTHESIS_SYSTEM,
            user_prompt=self.build_prompt(problem, perspectives, weights),
            schema=self._schema,
            schema_name=SYNTHESIS_SCHEMA_NAME,
        )
        synthesis = validate_payload(Synthesis, payload)
        logger.info(
            "合成完成: confidence=%d, conflicts=%d, steps=%d",
            synthesis.confidence,
            len(synthesis.conflicts_resolved),
            len(synthesis.action_plan),
        )
        return synthesis
