import logging
from typing import Dict, Iterable, List

from buyerspread.core.constants import ACCUMULATION_THRESHOLD
from buyerspread.ingestion.models import NormalizedTrade, OwnerStats

logger = logging.getLogger("buyerspread.engines.aggregator")


def fold(trades: Iterable[NormalizedTrade]) -> Dict[str, OwnerStats]:
    """Per-owner running totals. Pure addition, so trade order does not matter."""
    stats: Dict[str, OwnerStats] = {}
    for trade in trades:
        owner_stats = stats.get(trade.owner)
        if owner_stats is None:
            owner_stats = stats[trade.owner] = OwnerStats(owner=trade.owner)
        owner_stats.apply(trade)
    return stats


def aggregate(trades: Iterable[NormalizedTrade], threshold: float = ACCUMULATION_THRESHOLD) -> List[OwnerStats]:
    """
    Owners whose net token amount (bought minus sold) is at least threshold.
    No ordering is guaranteed.
    """
    stats = fold(trades)
    accumulators = [s for s in stats.values() if s.net_token_amount >= threshold]
    logger.info(f"{len(accumulators)} of {len(stats)} owners reached net {threshold:,.0f} tokens")
    return accumulators
