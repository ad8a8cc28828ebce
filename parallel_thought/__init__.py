# parallel_thought/__init__.py
# =============================================================================
# Parallel Thought — 多视角决策分析与加权合成。 / Multi-perspective decision analysis with weighted synthesis.
# =============================================================================

"""Parallel Thought — 多视角决策分析与加权合成。 / Multi-perspective decision analysis with weighted synthesis."""

from parallel_thought.api.session import AnalysisSession, build_session
from parallel_thought.engine.pipeline import AnalysisPipeline
from parallel_thought.errors import GenerationError, ValidationError

__version__ = "0.1.0"
__all__ = [
    "AnalysisPipeline",
    "AnalysisSession",
    "GenerationError",
    "ValidationError",
    "build_session",
    "__version__",
]
