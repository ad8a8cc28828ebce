#!/usr/bin/env python3
"""端到端决策分析示例：五视角分析 + 加权合成。
/ E2E decision analysis example: five perspectives + weighted synthesis.

用法 / Usage:
    python examples/e2e_decision_analysis.py
    python examples/e2e_decision_analysis.py --problem "Should we adopt Kubernetes?" \\
        --weight cost=30 --weight developer=90
    python examples/e2e_decision_analysis.py --share "https://app.example.com/?p=...&w=..."
    python examples/e2e_decision_analysis.py --list-history

需要项目根目录下的 llm_config.yaml（或通过 --config 指定），包含
analyzer / synthesizer 两个角色的模型配置。
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Project root (examples/ is one level below repo root)
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from parallel_thought import build_session  # noqa: E402
from parallel_thought.errors import GenerationError, ValidationError  # noqa: E402
from parallel_thought.llm.config import ConfigurationError  # noqa: E402
from parallel_thought.primitives.events import PipelineEvent  # noqa: E402
from parallel_thought.primitives.models import DIMENSIONS, AnalysisResult  # noqa: E402

logger = logging.getLogger(__name__)

SAMPLE_PROBLEM = "Should we migrate our monolith to microservices?"
SAMPLE_CONTEXT = (
    "<p>Legacy Java monolith, 8 years old, 40 engineers.</p>"
    "<ul><li>Deploys take 3 hours</li><li>Black Friday traffic is 10x normal</li>"
    "<li>Annual infra budget is fixed for the next 12 months</li></ul>"
)

_STATE_CN = {
    "ANALYZING": "多视角分析",
    "SYNTHESIZING": "加权合成",
    "COMPLETING": "整理结果",
}

_BAR_WIDTH = 30


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _progress_bar(progress: float) -> str:
    filled = int(_BAR_WIDTH * progress)
    return f"[{'█' * filled}{'░' * (_BAR_WIDTH - filled)}] {progress:>5.1%}"


def print_progress(event: PipelineEvent) -> None:
    """终端进度回调（同步）。 / Terminal progress callback (sync)."""
    bar = _progress_bar(event.progress)
    if event.type == "state_changed":
        print(f"  {bar}  ▶ {_STATE_CN.get(event.state.value, event.state.value)}")
    elif event.type == "completed":
        print(f"  {bar}  ✓ 完成 — 记录 {(event.detail or {}).get('record_id', '?')}")
    elif event.type == "failed":
        detail = event.detail or {}
        print(
            f"  {bar}  ✗ 失败于 {detail.get('failed_state', '?')} — "
            f"{detail.get('error_kind', '?')}"
        )


def print_result(result: AnalysisResult) -> None:
    print()
    print("=" * 60)
    print("  专家视角 / Expert perspectives")
    print("=" * 60)
    for key, assessment in result.perspectives.items():
        print(f"  [{key:11s}] {assessment.recommendation} (confidence {assessment.confidence}/10)")
        for point in assessment.key_points:
            print(f"      • {point}")
        metrics = ", ".join(f"{m.label}: {m.value}" for m in assessment.metrics)
        print(f"      {metrics}")

    synthesis = result.synthesis
    print()
    print("=" * 60)
    print(f"  最终建议 / Recommendation ({synthesis.confidence}/10)")
    print("=" * 60)
    print(f"  {synthesis.final_recommendation}")
    print()
    print("  推理链 / Reasoning chain:")
    for i, step in enumerate(synthesis.reasoning_chain, 1):
        print(f"    {i}. {step}")
    if synthesis.consensus_points:
        print("  共识 / Consensus:")
        for point in synthesis.consensus_points:
            print(f"    • {point}")
    if synthesis.conflicts_resolved:
        print("  冲突仲裁 / Conflicts resolved:")
        for c in synthesis.conflicts_resolved:
            line = f"    • {c.conflict} → {c.resolution}"
            if c.tradeoff:
                line += f" (tradeoff: {c.tradeoff})"
            print(line)
    print("  行动计划 / Action plan:")
    for i, step in enumerate(synthesis.action_plan, 1):
        print(f"    {i}. {step}")
    print("  预期结果 / Predicted outcomes:")
    for key in DIMENSIONS:
        print(f"    {key:11s} {synthesis.outcomes[key]}")
    print("=" * 60)


def _parse_weights(items: List[str]) -> Dict[str, int]:
    weights: Dict[str, int] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or name not in DIMENSIONS:
            raise argparse.ArgumentTypeError(
                f"权重格式应为 <dimension>=<0-100>，dimension ∈ {', '.join(DIMENSIONS)}: {item}"
            )
        weights[name] = int(value)
    return weights


def _config_file_path(explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return explicit
    p = REPO_ROOT / "llm_config.yaml"
    return str(p) if p.exists() else None


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parallel Thought 端到端决策分析示例（五视角 + 加权合成）。",
    )
    parser.add_argument("--problem", default=SAMPLE_PROBLEM, help="待分析的问题（可含 HTML）")
    parser.add_argument("--context", default=SAMPLE_CONTEXT, help="补充上下文（可含 HTML）")
    parser.add_argument(
        "--weight",
        action="append",
        default=[],
        metavar="DIM=VALUE",
        help="覆盖单个视角权重，可重复，例如 --weight cost=30",
    )
    parser.add_argument("--config", default=None, help="llm_config.yaml 路径")
    parser.add_argument(
        "--history",
        default=str(REPO_ROOT / "parallel_thought_history.json"),
        help="历史记录 JSON 文件路径",
    )
    parser.add_argument("--share", default=None, help="先应用一个分享链接再运行")
    parser.add_argument("--share-base", default="", help="打印分享链接时使用的基础 URL")
    parser.add_argument(
        "--list-history", action="store_true", help="仅列出历史记录，不运行分析",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出 DEBUG 日志")
    return parser


async def main() -> int:
    args = create_arg_parser().parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        session = build_session(
            config_file=_config_file_path(args.config),
            history_path=args.history,
            on_progress=print_progress,
            problem=args.problem,
            context=args.context,
        )
    except ConfigurationError as e:
        print(f"  ⚠ LLM 配置错误: {e}")
        return 2

    if args.list_history:
        if not session.history:
            print("  (历史为空)")
        for record in session.history:
            verdict = record.result.synthesis.final_recommendation if record.result else "-"
            print(f"  {record.id}  {record.timestamp}  {record.problem[:50]!r} → {verdict[:60]}")
        return 0

    if args.share:
        session.apply_share_link(args.share)
    try:
        for name, value in _parse_weights(args.weight).items():
            session.set_weight(name, value)
    except (argparse.ArgumentTypeError, ValueError) as e:
        print(f"  ⚠ {e}")
        return 2

    ranked = " > ".join(f"{d}({session.weights[d]})" for d in session.weights.ranked())
    logger.info("权重优先级: %s", ranked)

    try:
        result = await session.run_analysis()
    except ValidationError as e:
        print(f"  ⚠ {e.message}")
        return 2
    except ConfigurationError as e:
        print(f"  ⚠ LLM 配置错误: {e}")
        return 2
    except GenerationError as e:
        hint = "（可稍后重试）" if e.retryable else ""
        print(f"  ✗ {e.message}{hint}")
        return 1

    print_result(result)
    print()
    print(f"  分享链接 / Share link: {session.share_link(args.share_base)}")
    print(f"  历史记录 / History: {len(session.history)} 条 → {args.history}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
