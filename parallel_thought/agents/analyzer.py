"""多视角分析 Agent。 / Perspective Analyzer — stage one of the pipeline.

PerspectiveAnalyzer 通过一次结构化生成调用，同时产出安全、性能、成本、
开发体验、商业五个专家视角的独立评估。
/ Produces five independent expert assessments in one structured-generation call.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from parallel_thought.llm.schema import schema_descriptor, validate_payload
from parallel_thought.primitives.models import PerspectiveSet
from parallel_thought.prompts import (
    PERSPECTIVES_EMPTY_CONTEXT,
    PERSPECTIVES_SYSTEM,
    PERSPECTIVES_USER,
)

logger = logging.getLogger(__name__)

PERSPECTIVES_SCHEMA_NAME = "perspective_set"


class PerspectiveAnalyzer:
    """多视角分析器：一次调用、五个视角、固定 schema。 / One call, five perspectives, fixed schema."""

    def __init__(
        self,
        generator: Callable[..., Awaitable[Dict[str, Any]]],
    ):
        self._generator = generator
        self._schema = schema_descriptor(PerspectiveSet)

    @property
    def schema(self) -> Dict[str, Any]:
        return self._schema

    def build_prompt(self, problem: str, context: str) -> str:
        return PERSPECTIVES_USER.format(
            problem=problem,
            context=context or PERSPECTIVES_EMPTY_CONTEXT,
        )

    async def analyze(self, problem: str, context: str) -> PerspectiveSet:
        """产出五个视角的评估。 / Produce the five perspective assessments.

        输入须为纯文本（富文本标记由调用方剥离）。不做重试。
        / Inputs must be plain text; markup is stripped by the caller. No retries.

        Raises:
            GenerationError: 传输、配额、权限、schema 或解析失败。
        """
        payload = await self._generator(
            system_prompt=PERSPECTIVES_SYSTEM,
            user_prompt=self.build_prompt(problem, context),
            schema=self._schema,
            schema_name=PERSPECTIVES_SCHEMA_NAME,
        )
        perspectives = validate_payload(PerspectiveSet, payload)
        logger.info(
            "视角分析完成: %s",
            ", ".join(
                f"{key}={assessment.confidence}"
                for key, assessment in perspectives.items()
            ),
        )
        return perspectives
