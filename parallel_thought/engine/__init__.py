# engine/__init__.py
# =============================================================================
# 流水线编排与场景历史。 / Pipeline orchestration & scenario history.
# =============================================================================

from parallel_thought.engine.history import ScenarioHistory
from parallel_thought.engine.pipeline import AnalysisPipeline, ProgressCallback

__all__ = [
    "AnalysisPipeline",
    "ProgressCallback",
    "ScenarioHistory",
]
