"""Vote aggregation with at-most-one-vote-per-user toggles."""

from stackrank.store.models import VoteOutcome, VoteResult, VoteSnapshot
from stackrank.votes.aggregator import VoteAggregator


__all__ = [
    "VoteAggregator",
    "VoteOutcome",
    "VoteResult",
    "VoteSnapshot",
]
