# tests/conftest.py
# 共享的模型响应样例 / Shared canned model responses

import copy

import pytest

from parallel_thought.primitives.models import DIMENSIONS, PriorityWeights


def make_assessment(recommendation="Microservices", confidence=7):
    return {
        "recommendation": recommendation,
        "confidence": confidence,
        "reasoning": "Independent deployability outweighs the migration cost.",
        "key_points": ["Point one", "Point two", "Point three"],
        "metrics": [
            {"label": "Deploy time", "value": "< 15 min"},
            {"label": "MTTR", "value": "30 min"},
        ],
    }


def make_perspectives_payload(security_confidence=8):
    payload = {d: make_assessment() for d in DIMENSIONS}
    payload["security"] = make_assessment("Monolith first", security_confidence)
    payload["cost"] = make_assessment("Modular monolith", 6)
    return payload


def make_synthesis_payload(final="Adopt a strangler-fig migration to microservices"):
    return {
        "final_recommendation": final,
        "confidence": 8,
        "reasoning_chain": [
            "Cost carries the highest weight.",
            "Security and business both favour a gradual path.",
            "Performance gains arrive incrementally.",
            "A strangler-fig approach limits risk.",
        ],
        "consensus_points": ["Deployments are too slow today"],
        "conflicts_resolved": [
            {
                "conflict": "Cost vs performance",
                "resolution": "Migrate the checkout service first",
                "tradeoff": "Slower overall performance gains",
            },
            {
                "conflict": "Security vs developer velocity",
                "resolution": "Shared auth gateway",
            },
        ],
        "action_plan": [
            "Map bounded contexts",
            "Extract checkout",
            "Introduce API gateway",
            "Set up per-service CI",
            "Decommission legacy modules",
        ],
        "outcomes": {d: f"{d} outcome" for d in DIMENSIONS},
    }


@pytest.fixture
def perspectives_payload():
    return copy.deepcopy(make_perspectives_payload())


@pytest.fixture
def synthesis_payload():
    return copy.deepcopy(make_synthesis_payload())


@pytest.fixture
def weights():
    return PriorityWeights(
        security=80, performance=60, cost=100, developer=40, business=70,
    )
