# tests/api/test_share.py
"""分享链接编解码测试。 / Share-link codec tests."""

from urllib.parse import parse_qs, urlparse

import pytest

from parallel_thought.api.share import (
    SharedState,
    decode_share_link,
    encode_share_link,
    encode_share_query,
)
from parallel_thought.primitives.models import PriorityWeights


@pytest.fixture
def fallback():
    return SharedState(
        problem="Current problem",
        context="Current context",
        weights=PriorityWeights.default(),
    )


class TestEncode:
    def test_query_fields(self, weights):
        query = encode_share_query("Should we migrate?", "Legacy system", weights)
        params = parse_qs(query)
        assert params["p"] == ["Should we migrate?"]
        assert params["c"] == ["Legacy system"]
        assert params["w"] == [
            '{"security":80,"performance":60,"cost":100,"developer":40,"business":70}'
        ]

    def test_deterministic(self, weights):
        assert encode_share_query("a", "b", weights) == encode_share_query("a", "b", weights)

    def test_base_url_query_replaced(self, weights):
        link = encode_share_link(
            "Q?", "", weights, base_url="https://app.example.com/analyze?old=1#results",
        )
        parsed = urlparse(link)
        assert parsed.netloc == "app.example.com"
        assert parsed.path == "/analyze"
        assert "old" not in parse_qs(parsed.query)
        assert parsed.fragment == ""

    def test_without_base_url_returns_query(self, weights):
        assert encode_share_link("Q?", "", weights) == encode_share_query("Q?", "", weights)


class TestRoundTrip:
    def test_full_url(self, weights, fallback):
        link = encode_share_link(
            "Should we migrate?", "Legacy system", weights,
            base_url="https://app.example.com/",
        )
        state = decode_share_link(link, fallback)
        assert state == SharedState("Should we migrate?", "Legacy system", weights)

    def test_special_characters(self, weights, fallback):
        problem = "Cost & risk: 50% > 30%? <b>yes</b> / 中文 #1"
        context = "line one\nline two=3&x"
        state = decode_share_link("?" + encode_share_query(problem, context, weights), fallback)
        assert state.problem == problem
        assert state.context == context
        assert state.weights == weights

    def test_relative_path(self, weights, fallback):
        state = decode_share_link(
            "/analyze?" + encode_share_query("Q?", "C", weights), fallback,
        )
        assert state.problem == "Q?"
        assert state.weights == weights


class TestDecodeFallbacks:
    def test_empty_input_returns_fallback(self, fallback):
        assert decode_share_link("", fallback) == fallback

    def test_missing_fields_fall_back(self, fallback):
        state = decode_share_link("p=New+problem", fallback)
        assert state.problem == "New problem"
        assert state.context == "Current context"
        assert state.weights == fallback.weights

    def test_blank_problem_falls_back(self, fallback):
        state = decode_share_link("p=&c=New+context", fallback)
        assert state.problem == "Current problem"
        assert state.context == "New context"

    @pytest.mark.parametrize("raw_w", ["not-json", "%5B1%2C2%5D", "42"])
    def test_malformed_weights_fall_back(self, fallback, raw_w):
        state = decode_share_link(f"p=Q&w={raw_w}", fallback)
        assert state.weights == fallback.weights
        assert state.problem == "Q"

    def test_partial_weights_merge_per_dimension(self, fallback):
        query = "w=%7B%22cost%22%3A5%2C%22security%22%3A500%2C%22business%22%3Atrue%7D"
        state = decode_share_link(query, fallback)
        assert state.weights.cost == 5
        assert state.weights.security == fallback.weights.security
        assert state.weights.business == fallback.weights.business

    def test_non_integer_weight_ignored(self, fallback):
        query = "w=%7B%22developer%22%3A12.5%2C%22performance%22%3A%2250%22%7D"
        state = decode_share_link(query, fallback)
        assert state.weights == fallback.weights

    def test_unknown_keys_ignored(self, fallback):
        query = "w=%7B%22latency%22%3A1%2C%22developer%22%3A0%7D"
        state = decode_share_link(query, fallback)
        assert state.weights.developer == 0
