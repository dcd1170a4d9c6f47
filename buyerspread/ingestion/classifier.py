import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from buyerspread.core.constants import JUPITER_PROGRAM_ID, RAYDIUM_PROGRAM_ID, PUMP_PROGRAM_ID
from buyerspread.ingestion.models import Venue

logger = logging.getLogger("buyerspread.ingestion.classifier")

# Checked in order; the first marker found wins.
VENUE_MARKERS = (
    (Venue.JUPITER, JUPITER_PROGRAM_ID),
    (Venue.RAYDIUM, RAYDIUM_PROGRAM_ID),
    (Venue.PUMP_FUN, PUMP_PROGRAM_ID),
)


def classify(log_messages: Sequence[str]) -> Venue:
    for venue, marker in VENUE_MARKERS:
        if any(marker in msg for msg in log_messages):
            return venue
    return Venue.UNKNOWN


def log_messages_of(detail: Dict[str, Any]) -> List[str]:
    meta = detail.get("meta") or {}
    return meta.get("logMessages") or []


def categorize(details: Iterable[Optional[Dict[str, Any]]]) -> Dict[Venue, List[Dict[str, Any]]]:
    """Group resolved transactions by venue. Absent details are ignored."""
    categories: Dict[Venue, List[Dict[str, Any]]] = {venue: [] for venue in Venue}
    for detail in details:
        if detail is None:
            continue
        categories[classify(log_messages_of(detail))].append(detail)

    logger.info(
        "Categorized transactions: "
        + ", ".join(f"{venue.value}={len(txs)}" for venue, txs in categories.items())
    )
    return categories
