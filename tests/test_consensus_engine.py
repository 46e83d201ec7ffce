"""
Tests for the weighted-voting consensus engine.
"""

import pytest

from quorum.consensus import (
    FAILURE_TEXT,
    ConsensusEngine,
    agreement_level,
    jaccard_similarity,
    tokenize,
)
from quorum.providers import ErrorCode, ProviderConfig, ProviderRegistry, ProviderResponse


def _ok(name, text, latency_ms=100, model=None):
    return ProviderResponse(
        provider_name=name,
        model=model or f"{name}-model",
        response_text=text,
        latency_ms=latency_ms,
    )


def _failed(name, latency_ms=50):
    return ProviderResponse(
        provider_name=name,
        model=f"{name}-model",
        latency_ms=latency_ms,
        error=f"{name} exploded",
        error_code=ErrorCode.NETWORK,
    )


@pytest.fixture
def abc_registry():
    return ProviderRegistry(
        [
            ProviderConfig(name="A", model="model-a", priority=1),
            ProviderConfig(name="B", model="model-b", priority=2),
            ProviderConfig(name="C", model="model-c", priority=3),
        ]
    )


@pytest.mark.unit
class TestSimilarity:
    def test_tokenize_drops_short_tokens_and_lowercases(self):
        assert tokenize("The Sky is BLUE at 5 am") == {"the", "sky", "blue"}

    def test_identical_token_sets_score_one(self):
        assert jaccard_similarity(
            "the sky is blue and clear today", "today the sky is clear and blue"
        ) == 1.0

    def test_both_empty_token_sets_score_zero(self):
        assert jaccard_similarity("a an to", "is it") == 0.0

    def test_partial_overlap(self):
        # {red, apple} vs {green, apple}: 1 shared out of 3
        assert jaccard_similarity("red apple", "green apple") == pytest.approx(1 / 3)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("the quick brown fox", "the lazy brown dog"),
            ("", "something here"),
            ("Paris France capital", "capital city of France"),
            ("one two three four", "four five six"),
        ],
    )
    def test_similarity_is_symmetric(self, a, b):
        assert jaccard_similarity(a, b) == jaccard_similarity(b, a)

    def test_agreement_levels(self):
        assert agreement_level(0.71) == "high"
        assert agreement_level(0.7) == "moderate"
        assert agreement_level(0.41) == "moderate"
        assert agreement_level(0.4) == "low"
        assert agreement_level(0.0) == "low"


@pytest.mark.unit
class TestDegenerateInput:
    def test_no_responses_returns_failure_sentinel(self, abc_registry):
        result = ConsensusEngine(abc_registry).build([])

        assert result.consensus_text == FAILURE_TEXT
        assert result.confidence == 0.0
        assert result.vote_breakdown == []
        assert result.selected_provider is None
        assert not result.succeeded

    def test_all_failed_returns_sentinel_with_failures_visible(self, abc_registry):
        responses = [_failed("A"), _failed("B")]
        result = ConsensusEngine(abc_registry).build(responses)

        assert result.consensus_text == FAILURE_TEXT
        assert result.confidence == 0.0
        assert result.reasoning == "No valid responses from any provider."
        assert [r.provider_name for r in result.responses] == ["A", "B"]

    def test_blank_text_is_not_valid(self, abc_registry):
        result = ConsensusEngine(abc_registry).build([_ok("A", "   \n ")])

        assert result.consensus_text == FAILURE_TEXT
        assert result.confidence == 0.0

    def test_single_valid_response(self, abc_registry):
        responses = [_failed("A"), _ok("B", "Only answer")]
        result = ConsensusEngine(abc_registry).build(responses)

        assert result.consensus_text == "Only answer"
        assert result.confidence == 0.7
        assert len(result.vote_breakdown) == 1
        assert result.vote_breakdown[0].provider_name == "B"
        assert result.vote_breakdown[0].weight == 1.0
        assert result.reasoning == "Single provider response from B."
        assert len(result.responses) == 2


@pytest.mark.unit
class TestWeightedVote:
    def test_two_agreeing_providers_one_failed(self, abc_registry):
        responses = [
            _ok("A", "the sky is blue and clear today", latency_ms=200, model="model-a"),
            _ok("B", "today the sky is clear and blue", latency_ms=800, model="model-b"),
            _failed("C"),
        ]
        engine = ConsensusEngine(abc_registry)
        result = engine.build(responses)

        weights = {v.provider_name: v.weight for v in result.vote_breakdown}
        assert weights["A"] == pytest.approx(0.984 / 1.770, abs=1e-9)
        assert weights["B"] == pytest.approx(0.786 / 1.770, abs=1e-9)
        assert weights["A"] == pytest.approx(0.556, abs=1e-3)
        assert weights["B"] == pytest.approx(0.444, abs=1e-3)

        assert result.consensus_text == "the sky is blue and clear today"
        assert result.selected_provider == "A"
        assert result.confidence == pytest.approx(0.95)
        assert result.agreement_level == "high"
        assert result.reasoning == (
            "2 providers responded with high agreement. "
            "Best response from A (model-a) with 95% confidence."
        )
        assert len(result.responses) == 3

    def test_weights_sum_to_one(self, abc_registry):
        responses = [
            _ok("A", "alpha beta gamma", latency_ms=10),
            _ok("B", "delta epsilon", latency_ms=4999),
            _ok("C", "gamma delta zeta", latency_ms=12000),
            _ok("unregistered", "beta zeta theta", latency_ms=700),
        ]
        weights = ConsensusEngine(abc_registry).calculate_weights(responses)

        assert sum(weights) == pytest.approx(1.0, abs=1e-9)
        assert all(w > 0 for w in weights)

    def test_slow_provider_latency_weight_floors(self, abc_registry):
        weights = ConsensusEngine(abc_registry).calculate_weights(
            [_ok("A", "x" * 5, latency_ms=0), _ok("A", "y" * 5, latency_ms=60000)]
        )
        # raw: 0.6 + 0.4 * 1.0 = 1.0 vs 0.6 + 0.4 * 0.1 = 0.64
        assert weights[0] == pytest.approx(1.0 / 1.64)
        assert weights[1] == pytest.approx(0.64 / 1.64)

    def test_vote_breakdown_follows_response_order(self, abc_registry):
        responses = [
            _ok("C", "first answer words"),
            _failed("A"),
            _ok("B", "second answer words"),
        ]
        result = ConsensusEngine(abc_registry).build(responses)

        assert [v.provider_name for v in result.vote_breakdown] == ["C", "B"]

    def test_tie_breaks_to_first_seen(self):
        registry = ProviderRegistry(
            [
                ProviderConfig(name="x", model="m", priority=2),
                ProviderConfig(name="y", model="m", priority=2),
            ]
        )
        responses = [
            _ok("x", "identical answer text", latency_ms=300),
            _ok("y", "identical answer text", latency_ms=300),
        ]
        result = ConsensusEngine(registry).build(responses)

        assert result.selected_provider == "x"

        result_swapped = ConsensusEngine(registry).build(list(reversed(responses)))
        assert result_swapped.selected_provider == "y"

    def test_selection_is_deterministic(self, abc_registry):
        responses = [
            _ok("A", "water boils at one hundred degrees", latency_ms=900),
            _ok("B", "boils at hundred degrees celsius water", latency_ms=150),
            _ok("C", "completely unrelated sentence here", latency_ms=50),
        ]
        engine = ConsensusEngine(abc_registry)

        first = engine.build(responses)
        second = engine.build(responses)

        assert first.consensus_text == second.consensus_text
        assert first.vote_breakdown == second.vote_breakdown

    def test_disagreement_gives_low_confidence(self, abc_registry):
        responses = [
            _ok("A", "apples oranges bananas"),
            _ok("B", "cars trucks motorcycles"),
        ]
        result = ConsensusEngine(abc_registry).build(responses)

        assert result.agreement_level == "low"
        assert result.confidence == pytest.approx(0.5)
        # No agreement to break the tie, so priority decides
        assert result.selected_provider == "A"

    @pytest.mark.parametrize(
        "texts",
        [
            ["same words here", "same words here", "same words here"],
            ["one", "two"],
            ["alpha beta gamma delta", "alpha beta", "gamma delta epsilon"],
        ],
    )
    def test_confidence_is_bounded(self, abc_registry, texts):
        names = ["A", "B", "C"]
        responses = [_ok(names[i], t, latency_ms=100 * i) for i, t in enumerate(texts)]
        result = ConsensusEngine(abc_registry).build(responses)

        assert 0.0 <= result.confidence <= 0.95

    def test_text_is_never_merged(self, abc_registry):
        texts = ["first provider answer", "second provider reply"]
        responses = [_ok("A", texts[0]), _ok("B", texts[1])]
        result = ConsensusEngine(abc_registry).build(responses)

        assert result.consensus_text in texts

    def test_unknown_provider_gets_neutral_priority(self):
        engine = ConsensusEngine()
        weights = engine.calculate_weights(
            [_ok("ghost", "some text", latency_ms=0), _ok("other", "more text", latency_ms=0)]
        )

        assert weights == [pytest.approx(0.5), pytest.approx(0.5)]

    def test_priority_reads_current_registry(self, abc_registry):
        engine = ConsensusEngine(abc_registry)
        responses = [_ok("A", "text one", latency_ms=0), _ok("C", "text two", latency_ms=0)]

        before = engine.calculate_weights(responses)
        abc_registry.reconfigure("C", priority=1)
        after = engine.calculate_weights(responses)

        assert before[0] > before[1]
        assert after[0] == pytest.approx(after[1])
