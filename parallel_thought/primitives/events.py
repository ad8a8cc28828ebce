# events.py
# =============================================================================
# 流水线进度事件 — 供外部展示层实时获取运行状态。
# / Pipeline progress events for the presentation layer.
# =============================================================================

"""Pipeline progress events for external integration."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class PipelineState(str, Enum):
    """流水线粗粒度状态。 / Coarse pipeline state.

    IDLE -> ANALYZING -> SYNTHESIZING -> COMPLETING -> IDLE
    任何失败都直接回到 IDLE。 / Any failure returns straight to IDLE.
    """

    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    SYNTHESIZING = "SYNTHESIZING"
    COMPLETING = "COMPLETING"


@dataclass
class PipelineEvent:
    """运行过程中的结构化进度事件。

    外部应用通过注册 on_progress 回调接收此类事件，用于进度标签展示。
    状态值本身不承载额外契约。

    Attributes:
        type: 事件类型。
            - "state_changed": 状态迁移
            - "completed": 运行成功结束
            - "failed": 运行失败（随后回到 IDLE）
        state: 事件发生后的流水线状态。
        run_id: 本次运行的唯一标识。
        timestamp: 单调时钟（秒），用于计算耗时。
        progress: 总进度 (0.0 ~ 1.0)。
        detail: 附加数据；失败时包含 error_kind / message / failed_state。
    """

    type: str
    state: PipelineState
    run_id: str
    timestamp: float = field(default_factory=time.monotonic)
    progress: float = 0.0
    detail: Optional[Dict[str, Any]] = None
