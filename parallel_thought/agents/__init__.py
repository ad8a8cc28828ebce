# agents/__init__.py
# =============================================================================
# 流水线 Agent — 多视角分析器与加权合成器。 / Pipeline agents — analyzer & synthesizer.
# =============================================================================

from .analyzer import PerspectiveAnalyzer
from .synthesizer import Synthesizer

__all__ = [
    "PerspectiveAnalyzer",
    "Synthesizer",
]
