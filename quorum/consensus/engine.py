"""
Consensus Engine for Multi-Provider Answer Selection

Selects one representative answer from several provider responses using
weighted voting over token-set agreement, priority and latency.

The result is always one provider's verbatim text: consensus here means
representative selection, never merging or rewriting of answers.
"""

import math
from typing import Dict, List, Literal, Optional, Sequence, Set

from pydantic import BaseModel, Field

from quorum.observability.logging import get_logger
from quorum.providers.interfaces import ProviderResponse
from quorum.providers.registry import ProviderRegistry

logger = get_logger(__name__)

FAILURE_TEXT = "Unable to generate response. All providers failed."
FAILURE_REASONING = "No valid responses from any provider."
SINGLE_RESPONSE_CONFIDENCE = 0.7
MAX_CONFIDENCE = 0.95
LATENCY_CEILING_MS = 5000.0
MIN_LATENCY_WEIGHT = 0.1
UNKNOWN_PRIORITY_WEIGHT = 0.5

AgreementLevel = Literal["high", "moderate", "low", "none"]


class VoteWeight(BaseModel):
    """
    Normalized trust assigned to one provider's answer.

    Attributes:
        provider_name: Provider that produced the answer
        weight: Share of the vote (0.0-1.0)
    """

    provider_name: str = Field(..., description="Provider name", min_length=1)
    weight: float = Field(..., description="Normalized weight", ge=0.0, le=1.0)


class ConsensusResult(BaseModel):
    """
    Result of a consensus round.

    Attributes:
        consensus_text: The selected representative answer (verbatim)
        confidence: Overall confidence (0.0-0.95)
        responses: Every provider response, failures included, for audit
        reasoning: Human-readable explanation
        vote_breakdown: Normalized weight per valid response, in response order
        selected_provider: Provider whose answer was selected (None on failure)
        agreement_level: Qualitative agreement across providers

    Example:
        >>> result = engine.build(responses)
        >>> print(f"{result.consensus_text} ({result.confidence:.0%})")
    """

    consensus_text: str = Field(..., description="Selected answer")
    confidence: float = Field(..., description="Confidence", ge=0.0, le=1.0)
    responses: List[ProviderResponse] = Field(
        default_factory=list, description="All provider responses"
    )
    reasoning: str = Field(..., description="Explanation")
    vote_breakdown: List[VoteWeight] = Field(
        default_factory=list, description="Normalized vote weights"
    )
    selected_provider: Optional[str] = Field(None, description="Selected provider")
    agreement_level: AgreementLevel = Field("none", description="Agreement level")

    @property
    def succeeded(self) -> bool:
        return self.selected_provider is not None


def tokenize(text: str) -> Set[str]:
    """
    Token set used for agreement scoring.

    Lowercases, splits on whitespace and drops tokens of length <= 2.
    """
    return {token for token in text.lower().split() if len(token) > 2}


def jaccard_similarity(text1: str, text2: str) -> float:
    """
    Token-set (Jaccard) similarity between two texts.

    Returns:
        |intersection| / |union|, or 0.0 when both token sets are empty

    Example:
        >>> jaccard_similarity("the sky is blue", "blue sky the")
        1.0
    """
    words1 = tokenize(text1)
    words2 = tokenize(text2)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def agreement_level(avg_similarity: float) -> AgreementLevel:
    if avg_similarity > 0.7:
        return "high"
    if avg_similarity > 0.4:
        return "moderate"
    return "low"


class ConsensusEngine:
    """
    Weighted-voting consensus over provider responses.

    Total over its input: failures, a single answer, identical answers
    and blank text all produce a result instead of an exception.

    Example:
        >>> engine = ConsensusEngine(registry)
        >>> result = engine.build(responses)
        >>> for vote in result.vote_breakdown:
        ...     print(vote.provider_name, round(vote.weight, 3))
    """

    def __init__(self, registry: Optional[ProviderRegistry] = None):
        """
        Initialize consensus engine.

        Args:
            registry: Source of provider priorities (unknown providers
                get a neutral priority weight)
        """
        self._registry = registry

    def build(self, responses: Sequence[ProviderResponse]) -> ConsensusResult:
        """
        Select a consensus answer.

        Args:
            responses: Every response from one dispatch, in provider order

        Returns:
            ConsensusResult (never raises for degenerate input)
        """
        all_responses = list(responses)
        valid = [r for r in all_responses if r.is_valid]

        if not valid:
            return ConsensusResult(
                consensus_text=FAILURE_TEXT,
                confidence=0.0,
                responses=all_responses,
                reasoning=FAILURE_REASONING,
                vote_breakdown=[],
            )

        if len(valid) == 1:
            sole = valid[0]
            return ConsensusResult(
                consensus_text=sole.response_text,
                confidence=SINGLE_RESPONSE_CONFIDENCE,
                responses=all_responses,
                reasoning=f"Single provider response from {sole.provider_name}.",
                vote_breakdown=[VoteWeight(provider_name=sole.provider_name, weight=1.0)],
                selected_provider=sole.provider_name,
            )

        return self._weighted_vote(valid, all_responses)

    def _weighted_vote(
        self,
        valid: List[ProviderResponse],
        all_responses: List[ProviderResponse],
    ) -> ConsensusResult:
        weights = self.calculate_weights(valid)
        similarities = self.calculate_similarities(valid)

        # Strict ">" keeps the first-seen response on ties
        best_index = 0
        best_score = -1.0
        for index, (weight, similarity) in enumerate(zip(weights, similarities)):
            score = 0.5 * weight + 0.5 * similarity
            if score > best_score:
                best_score = score
                best_index = index

        best = valid[best_index]
        overall_similarity = sum(similarities) / len(similarities)
        confidence = min(MAX_CONFIDENCE, 0.5 + 0.5 * overall_similarity)
        level = agreement_level(overall_similarity)
        percent = math.floor(confidence * 100 + 0.5)

        reasoning = (
            f"{len(valid)} providers responded with {level} agreement. "
            f"Best response from {best.provider_name} ({best.model}) "
            f"with {percent}% confidence."
        )

        logger.debug(
            "consensus_selected",
            provider=best.provider_name,
            score=round(best_score, 4),
            confidence=round(confidence, 4),
            agreement=level,
            candidates=len(valid),
        )

        return ConsensusResult(
            consensus_text=best.response_text,
            confidence=confidence,
            responses=all_responses,
            reasoning=reasoning,
            vote_breakdown=[
                VoteWeight(provider_name=r.provider_name, weight=w)
                for r, w in zip(valid, weights)
            ],
            selected_provider=best.provider_name,
            agreement_level=level,
        )

    def calculate_weights(self, responses: Sequence[ProviderResponse]) -> List[float]:
        """
        Normalized vote weight per response.

        ``raw = 0.6 * priority_weight + 0.4 * latency_weight`` where
        ``priority_weight = max(0, (5 - priority) / 4)`` and
        ``latency_weight = max(0.1, 1 - latency_ms / 5000)``.
        Weights are normalized to sum to 1.
        """
        priorities = self._priorities()
        raw_weights: List[float] = []
        for response in responses:
            priority = priorities.get(response.provider_name)
            if priority is None:
                priority_weight = UNKNOWN_PRIORITY_WEIGHT
            else:
                priority_weight = max(0.0, (5 - priority) / 4)
            latency_weight = max(
                MIN_LATENCY_WEIGHT, 1 - response.latency_ms / LATENCY_CEILING_MS
            )
            raw_weights.append(0.6 * priority_weight + 0.4 * latency_weight)

        total = sum(raw_weights)
        if total <= 0:
            return [1.0 / len(raw_weights)] * len(raw_weights) if raw_weights else []
        return [w / total for w in raw_weights]

    def calculate_similarities(self, responses: Sequence[ProviderResponse]) -> List[float]:
        """
        Mean pairwise Jaccard similarity of each response to all others.
        """
        count = len(responses)
        if count < 2:
            return [0.0] * count

        texts = [r.response_text for r in responses]
        pairwise: Dict[tuple, float] = {}
        averages: List[float] = []
        for i in range(count):
            total = 0.0
            for j in range(count):
                if i == j:
                    continue
                key = (min(i, j), max(i, j))
                if key not in pairwise:
                    pairwise[key] = jaccard_similarity(texts[i], texts[j])
                total += pairwise[key]
            averages.append(total / (count - 1))
        return averages

    def _priorities(self) -> Dict[str, int]:
        if self._registry is None:
            return {}
        return {config.name: config.priority for config in self._registry.snapshot()}


__all__ = [
    "ConsensusEngine",
    "ConsensusResult",
    "VoteWeight",
    "AgreementLevel",
    "FAILURE_TEXT",
    "jaccard_similarity",
    "tokenize",
    "agreement_level",
]
