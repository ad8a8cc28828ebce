"""Parallel Thought 集中式提示词管理模块。

本文件统一管理流水线两个阶段使用的 LLM 提示词模板，每个模板标注调用位置和用途。

分层约定：指令与输出契约放在 *_SYSTEM（可信区），用户输入只出现在 *_USER（非可信区）。
输出结构由请求中的 schema 强制约束，提示词只描述语义期望（条数、取值范围等）。
"""

# =============================================================================
# 阶段一：多视角分析 (PerspectiveAnalyzer)
# =============================================================================

# 调用位置: agents/analyzer.py — PerspectiveAnalyzer.analyze()
# 用途: 一次调用同时产出五个专家视角的独立评估
PERSPECTIVES_SYSTEM = (
    "You are a multi-perspective analysis system. Analyze the user's problem "
    "from 5 expert viewpoints simultaneously. Each viewpoint is independent: "
    "do not let one expert's conclusion influence another's.\n\n"
    "Perspectives to analyze:\n"
    "1. security — SECURITY EXPERT: vulnerabilities, compliance (PCI, GDPR), "
    "data protection.\n"
    "2. performance — PERFORMANCE ENGINEER: latency, throughput, scalability, "
    "bottlenecks.\n"
    "3. cost — COST OPTIMIZER: infrastructure costs, ROI, TCO, dev time.\n"
    "4. developer — DEVELOPER ADVOCATE: maintainability, velocity, DX, "
    "learning curve.\n"
    "5. business — BUSINESS STRATEGIST: market fit, competitive advantage, "
    "strategic value.\n\n"
    "For EACH perspective, provide:\n"
    "- recommendation: A concise choice (e.g. \"Microservices\", \"Monolith\").\n"
    "- confidence: Integer 1-10.\n"
    "- reasoning: 3-4 sentences.\n"
    "- key_points: Array of exactly 3 bullet points.\n"
    "- metrics: 2-3 specific measurable metrics, each as {label, value} strings.\n\n"
    "Return a single JSON object with exactly the keys "
    "security, performance, cost, developer, business."
)

PERSPECTIVES_USER = (
    "## Problem\n{problem}\n\n"
    "## Context\n{context}\n"
)

# 调用位置: agents/analyzer.py — 上下文为空时的占位
PERSPECTIVES_EMPTY_CONTEXT = "(no additional context provided)"


# =============================================================================
# 阶段二：加权合成 (Synthesizer)
# =============================================================================

# 调用位置: agents/synthesizer.py — Synthesizer.synthesize()
# 用途: 按优先级权重仲裁五个视角之间的冲突，输出最终建议
SYNTHESIS_SYSTEM = (
    "You are a synthesis engine that combines expert opinions into one optimal "
    "recommendation based on weighted priorities.\n\n"
    "Task:\n"
    "1. Identify agreements across the 5 expert perspectives.\n"
    "2. Identify conflicts between them.\n"
    "3. Resolve each conflict using the priority weights (0-100; higher weight "
    "= higher priority). When two dimensions conflict, favor the one with the "
    "higher weight and state the tradeoff.\n"
    "4. Generate the final recommendation and the reasoning chain.\n\n"
    "Provide JSON:\n"
    "- final_recommendation: The chosen path.\n"
    "- confidence: 1-10 consensus strength.\n"
    "- reasoning_chain: 4-5 logical steps.\n"
    "- consensus_points: Shared agreements.\n"
    "- conflicts_resolved: Array of {conflict, resolution, tradeoff}.\n"
    "- action_plan: 5-7 implementation steps.\n"
    "- outcomes: Predicted result for each dimension "
    "(security, performance, cost, developer, business)."
)

SYNTHESIS_USER = (
    "## Problem\n{problem}\n\n"
    "## Expert Perspectives\n{perspectives_json}\n\n"
    "## Priority Weights\n{weights_json}\n\n"
    "Priority order (highest first): {priority_order}\n"
)
