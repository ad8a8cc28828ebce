# tests/primitives/test_models.py
# 核心数据模型测试 / Core data model tests

"""核心数据模型测试。 / Core data model tests."""
import pytest
from pydantic import ValidationError as PydanticValidationError

from parallel_thought.primitives.models import (
    DIMENSIONS,
    AnalysisResult,
    PerspectiveAssessment,
    PerspectiveSet,
    PriorityWeights,
    ScenarioRecord,
    Synthesis,
)


class TestPriorityWeights:
    """权重 0-100 整数约束。 / Integer weights in [0, 100]."""

    def test_default_weights(self):
        w = PriorityWeights.default()
        assert [w[d] for d in DIMENSIONS] == [80, 60, 100, 40, 70]

    def test_weights_need_not_sum_to_anything(self):
        w = PriorityWeights(security=0, performance=0, cost=0, developer=0, business=0)
        assert sum(v for _, v in w.items()) == 0

    @pytest.mark.parametrize("bad", [-1, 101, 50.5, "50", True])
    def test_rejects_out_of_range_or_non_integer(self, bad):
        with pytest.raises(PydanticValidationError):
            PriorityWeights(
                security=bad, performance=1, cost=1, developer=1, business=1,
            )

    def test_rejects_unknown_dimension(self):
        with pytest.raises(PydanticValidationError):
            PriorityWeights(
                security=1, performance=1, cost=1, developer=1, business=1,
                latency=5,
            )

    def test_ranked_orders_by_weight_with_stable_ties(self, weights):
        assert weights.ranked() == [
            "cost", "security", "business", "performance", "developer",
        ]
        tied = PriorityWeights(security=50, performance=50, cost=50, developer=50, business=50)
        assert tied.ranked() == list(DIMENSIONS)

    def test_with_weight_returns_new_instance(self, weights):
        updated = weights.with_weight("developer", 90)
        assert updated.developer == 90
        assert weights.developer == 40

    def test_weights_are_frozen(self, weights):
        with pytest.raises(PydanticValidationError):
            weights.cost = 10


class TestPerspectiveAssessment:
    def test_accepts_valid_assessment(self, perspectives_payload):
        a = PerspectiveAssessment.model_validate(perspectives_payload["security"])
        assert a.confidence == 8
        assert len(a.key_points) == 3

    @pytest.mark.parametrize("confidence", [0, 11])
    def test_confidence_bounded_1_to_10(self, perspectives_payload, confidence):
        data = perspectives_payload["security"]
        data["confidence"] = confidence
        with pytest.raises(PydanticValidationError):
            PerspectiveAssessment.model_validate(data)

    def test_requires_exactly_three_key_points(self, perspectives_payload):
        data = perspectives_payload["security"]
        data["key_points"] = ["only", "two"]
        with pytest.raises(PydanticValidationError):
            PerspectiveAssessment.model_validate(data)

    def test_requires_two_to_three_metrics(self, perspectives_payload):
        data = perspectives_payload["security"]
        data["metrics"] = data["metrics"][:1]
        with pytest.raises(PydanticValidationError):
            PerspectiveAssessment.model_validate(data)


class TestPerspectiveSet:
    def test_all_five_keys_required(self, perspectives_payload):
        del perspectives_payload["business"]
        with pytest.raises(PydanticValidationError):
            PerspectiveSet.model_validate(perspectives_payload)

    def test_extra_keys_rejected(self, perspectives_payload):
        perspectives_payload["legal"] = perspectives_payload["security"]
        with pytest.raises(PydanticValidationError):
            PerspectiveSet.model_validate(perspectives_payload)

    def test_mapping_access(self, perspectives_payload):
        ps = PerspectiveSet.model_validate(perspectives_payload)
        assert ps["security"].recommendation == "Monolith first"
        assert tuple(ps.keys()) == DIMENSIONS
        with pytest.raises(KeyError):
            ps["legal"]


class TestSynthesis:
    def test_tradeoff_is_optional(self, synthesis_payload):
        s = Synthesis.model_validate(synthesis_payload)
        assert s.conflicts_resolved[0].tradeoff == "Slower overall performance gains"
        assert s.conflicts_resolved[1].tradeoff is None

    def test_consensus_points_default_empty(self, synthesis_payload):
        del synthesis_payload["consensus_points"]
        assert Synthesis.model_validate(synthesis_payload).consensus_points == []

    @pytest.mark.parametrize("field", ["reasoning_chain", "action_plan"])
    def test_chains_must_be_non_empty(self, synthesis_payload, field):
        synthesis_payload[field] = []
        with pytest.raises(PydanticValidationError):
            Synthesis.model_validate(synthesis_payload)

    def test_missing_final_recommendation_rejected(self, synthesis_payload):
        del synthesis_payload["final_recommendation"]
        with pytest.raises(PydanticValidationError):
            Synthesis.model_validate(synthesis_payload)

    def test_outcomes_need_every_dimension(self, synthesis_payload):
        del synthesis_payload["outcomes"]["developer"]
        with pytest.raises(PydanticValidationError):
            Synthesis.model_validate(synthesis_payload)

    def test_outcomes_mapping_access(self, synthesis_payload):
        s = Synthesis.model_validate(synthesis_payload)
        assert s.outcomes["cost"] == "cost outcome"


class TestScenarioRecord:
    def test_create_generates_unique_ids_and_ms_timestamp(self, weights):
        a = ScenarioRecord.create("p", "c", weights)
        b = ScenarioRecord.create("p", "c", weights)
        assert a.id != b.id
        assert a.timestamp > 1_600_000_000_000
        assert a.result is None

    def test_json_round_trip_with_result(
        self, weights, perspectives_payload, synthesis_payload,
    ):
        result = AnalysisResult(
            problem="<b>Should we migrate?</b>",
            context="Legacy system",
            perspectives=PerspectiveSet.model_validate(perspectives_payload),
            synthesis=Synthesis.model_validate(synthesis_payload),
            weights=weights,
        )
        record = ScenarioRecord.create(result.problem, result.context, weights, result)
        restored = ScenarioRecord.model_validate(record.to_dict())
        assert restored == record
