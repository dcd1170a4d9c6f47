"""
First Buyer Spread Pipeline
===========================
History -> Details -> Classify -> Decode -> Aggregate -> Enrich

Every stage completes before the next one starts and its output is written
to LOGS_DIR so a run can be inspected afterwards.

Usage:
    RPC_URL=... python -m buyerspread.workers.pipeline [ADDRESS]
"""
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from buyerspread.core import artifacts
from buyerspread.core.artifacts import ArtifactWriter
from buyerspread.core.config import PipelineConfig, load_config, load_env_file
from buyerspread.core.errors import ConfigurationError, PipelineError
from buyerspread.core.jupiter import PriceClient
from buyerspread.core.logger import get_logger, log_event
from buyerspread.engines.aggregator import aggregate
from buyerspread.engines.portfolio import EnrichmentReport, PortfolioEnricher
from buyerspread.engines.store import PortfolioStore
from buyerspread.ingestion.classifier import categorize
from buyerspread.ingestion.decoders import DecoderRegistry, TokenBalanceDecoder
from buyerspread.ingestion.details import DetailFetcher
from buyerspread.ingestion.history import HistoryFetcher
from buyerspread.ingestion.models import NormalizedTrade, OwnerStats, Venue
from buyerspread.ingestion.rpc import RpcClient, Sleep

logger = logging.getLogger("buyerspread.workers.pipeline")

# Decoding order; also the order trades appear in the aggregated dump.
VENUE_OUTPUTS = (
    (Venue.RAYDIUM, artifacts.RAYDIUM_PROCESSED),
    (Venue.PUMP_FUN, artifacts.PUMPFUN_PROCESSED),
    (Venue.JUPITER, artifacts.JUPITER_PROCESSED),
)


@dataclass
class PipelineResult:
    address: str
    signatures: int = 0
    resolved: int = 0
    skipped: int = 0
    venue_counts: Dict[str, int] = field(default_factory=dict)
    trades: List[NormalizedTrade] = field(default_factory=list)
    accumulators: List[OwnerStats] = field(default_factory=list)
    enrichment: Optional[EnrichmentReport] = None


def default_decoders(config: PipelineConfig) -> DecoderRegistry:
    registry = DecoderRegistry()
    decoder = TokenBalanceDecoder(config.tracked_mint)
    for venue, _ in VENUE_OUTPUTS:
        registry.register(venue, decoder)
    return registry


class Pipeline:

    def __init__(
        self,
        config: PipelineConfig,
        rpc: RpcClient,
        prices: PriceClient,
        decoders: DecoderRegistry,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.decoders = decoders
        self.artifacts = ArtifactWriter(config.logs_dir)
        self.history = HistoryFetcher(rpc, config, sleep=sleep)
        self.details = DetailFetcher(rpc, config, sleep=sleep)
        self.enricher = PortfolioEnricher(
            rpc, prices, PortfolioStore(self.artifacts.path(artifacts.PORTFOLIOS)), config, sleep=sleep
        )

    def decode(self, categories: Dict[Venue, List[dict]]) -> List[NormalizedTrade]:
        trades: List[NormalizedTrade] = []
        for venue, filename in VENUE_OUTPUTS:
            decoder = self.decoders.get(venue)
            if decoder is None:
                logger.warning(f"No decoder registered for {venue.value}; {len(categories[venue])} transactions ignored")
                continue

            decoded = decoder.decode(categories[venue])
            if decoded:
                self.artifacts.write(filename, [t.to_dict() for t in decoded])
                trades.extend(decoded)
            else:
                logger.warning(f"No {venue.value} transactions to process.")
        return trades

    async def run(self, address: Optional[str] = None) -> PipelineResult:
        address = address or self.config.tracked_mint
        result = PipelineResult(address=address)

        signatures = await self.history.fetch_window(address)
        result.signatures = len(signatures)

        details = await self.details.resolve_details([s.signature for s in signatures])
        result.resolved = sum(1 for d in details.values() if d is not None)
        result.skipped = len(details) - result.resolved

        categories = categorize(details.values())
        result.venue_counts = {venue.value: len(txs) for venue, txs in categories.items()}
        self.artifacts.write(artifacts.CATEGORIZED, {venue.value: txs for venue, txs in categories.items()})

        result.trades = self.decode(categories)
        if result.trades:
            self.artifacts.write(artifacts.AGGREGATED, [t.to_dict() for t in result.trades])
        else:
            logger.warning("No aggregated transactions to process.")

        if categories[Venue.UNKNOWN]:
            self.artifacts.write(artifacts.UNKNOWN, categories[Venue.UNKNOWN])
        else:
            logger.warning("No Unknown transactions to process.")

        result.accumulators = aggregate(result.trades, self.config.accumulation_threshold)
        log_event(logger, "accumulators", {
            "address": address,
            "owners": [s.to_dict() for s in result.accumulators],
        })

        result.enrichment = await self.enricher.enrich(result.accumulators)

        log_event(logger, "pipeline_complete", {
            "address": address,
            "signatures": result.signatures,
            "resolved": result.resolved,
            "skipped": result.skipped,
            "venues": result.venue_counts,
            "trades": len(result.trades),
            "accumulators": len(result.accumulators),
            "enriched": len(result.enrichment.enriched),
            "enrichment_skipped": len(result.enrichment.skipped),
            "priced_mints": f"{result.enrichment.priced_mints}/{result.enrichment.total_mints}",
        })
        return result


async def main(argv: List[str]) -> int:
    # Every module logger lives under "buyerspread" and inherits this JSON handler.
    get_logger("buyerspread")
    load_env_file()
    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        return 1

    rpc = RpcClient(config)
    prices = PriceClient(config)
    try:
        pipeline = Pipeline(config, rpc, prices, default_decoders(config))
        await pipeline.run(argv[0] if argv else None)
    except (PipelineError, OSError):
        logger.exception("Error processing transactions")
        return 1
    finally:
        await rpc.aclose()
        await prices.aclose()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
