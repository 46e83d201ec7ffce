"""
Consensus Module for Multi-Provider Answer Selection

Selects one trusted answer, with confidence and an auditable vote record,
from the responses of several providers.
"""

from quorum.consensus.engine import (
    FAILURE_TEXT,
    ConsensusEngine,
    ConsensusResult,
    VoteWeight,
    agreement_level,
    jaccard_similarity,
    tokenize,
)

__all__ = [
    "FAILURE_TEXT",
    "ConsensusEngine",
    "ConsensusResult",
    "VoteWeight",
    "agreement_level",
    "jaccard_similarity",
    "tokenize",
]
