"""
Portfolio Enricher
==================
Second stage: current holdings and valuations for each accumulator.

Per owner:   Fetching -> Filtering -> Merging   (throttled to owner_rate_limit/s)
Once:        PriceBackfill -> Reconciled

Key Invariants:
- Each owner appears at most once in the store
- TotalPrice is recomputed on every write that touches amount or price
- CurrentAmount is additive across runs (re-running accumulates)
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from buyerspread.core.config import PipelineConfig
from buyerspread.core.constants import LAMPORTS_PER_SOL, STABLECOIN_MINTS, TOKEN_PROGRAM_ID, WSOL_MINT
from buyerspread.core.errors import FetchError, PartialDataUnavailable
from buyerspread.core.jupiter import PriceClient
from buyerspread.engines.store import OwnerEntry, PortfolioStore, TokenHolding
from buyerspread.ingestion.models import OwnerStats
from buyerspread.ingestion.rpc import RpcClient, Sleep

logger = logging.getLogger("buyerspread.engines.portfolio")


@dataclass
class EnrichmentReport:
    enriched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    priced_mints: int = 0
    total_mints: int = 0


class PortfolioEnricher:

    def __init__(
        self,
        rpc: RpcClient,
        prices: PriceClient,
        store: PortfolioStore,
        config: PipelineConfig,
        sleep: Sleep = asyncio.sleep,
    ):
        self.rpc = rpc
        self.prices = prices
        self.store = store
        self.config = config
        self.mandatory_mints = config.mandatory_mints
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_token_accounts(self, owner: str) -> List[Dict[str, Any]]:
        result = await self.rpc.call(
            "getTokenAccountsByOwner",
            [owner, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        if result is None:
            raise PartialDataUnavailable(owner, "getTokenAccountsByOwner returned no result")
        return result.get("value") or []

    async def fetch_sol_balance(self, owner: str) -> float:
        result = await self.rpc.call("getBalance", [owner])
        lamports = (result or {}).get("value") or 0
        return lamports / LAMPORTS_PER_SOL

    async def fetch_holdings(self, owner: str) -> Optional[Tuple[List[Dict[str, Any]], float]]:
        """Token accounts and SOL balance, or None if either request failed."""
        try:
            accounts = await self.fetch_token_accounts(owner)
            sol_balance = await self.fetch_sol_balance(owner)
        except (FetchError, PartialDataUnavailable) as e:
            logger.error(f"Error fetching holdings for owner {owner}: {e}", extra={"owner": owner})
            return None
        return accounts, sol_balance

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def select_holdings(self, owner: str, accounts: Iterable[Dict[str, Any]]) -> Tuple[float, List[TokenHolding]]:
        """
        Keep mandatory mints (their UI amounts summed into mint_amount) and any
        other mint with at least min_holding_amount, largest first, top N.
        """
        mint_amount = 0.0
        kept: List[TokenHolding] = []

        for account in accounts:
            try:
                info = account["account"]["data"]["parsed"]["info"]
                mint = info["mint"]
                token_amount = info["tokenAmount"]
                amount = float(token_amount["amount"]) / (10 ** int(token_amount["decimals"]))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed token account for {owner}: {e}")
                continue

            if mint in self.mandatory_mints:
                mint_amount += amount
            elif amount < self.config.min_holding_amount:
                continue

            kept.append(TokenHolding(mint=mint, owner=info.get("owner", owner), amount=amount))

        kept.sort(key=lambda h: h.amount, reverse=True)
        return mint_amount, kept[:self.config.top_holdings]

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def total_spl(self, entry: OwnerEntry) -> float:
        return sum(
            h.TotalPrice for h in entry.accounts
            if h.TotalPrice is not None and h.mint not in self.mandatory_mints
        )

    def merge(
        self,
        entries: Dict[str, OwnerEntry],
        stats: OwnerStats,
        holdings: List[TokenHolding],
        mint_amount: float,
        sol_balance: float,
    ) -> OwnerEntry:
        entry = entries.get(stats.owner)
        if entry is None:
            entry = entries[stats.owner] = OwnerEntry(owner=stats.owner, SOLbalance=sol_balance)

        for key, value in stats.to_dict().items():
            if key != "owner":
                setattr(entry, key, value)

        entry.CurrentAmount = (entry.CurrentAmount or 0) + mint_amount
        entry.SOLbalance = sol_balance
        entry.accounts = holdings

        wsol = entry.holding(WSOL_MINT)
        entry.TotalSOLBalance = sol_balance + (wsol.amount if wsol else 0)
        entry.TotalStables = sum(h.amount for h in entry.accounts if h.mint in STABLECOIN_MINTS)

        if wsol is None:
            entry.accounts.append(TokenHolding(mint=WSOL_MINT, owner=stats.owner, amount=sol_balance))

        entry.reprice()
        entry.TotalSPL = self.total_spl(entry)
        return entry

    def merge_owner(self, stats: OwnerStats, holdings: List[TokenHolding], mint_amount: float, sol_balance: float) -> OwnerEntry:
        entries = self.store.load()
        entry = self.merge(entries, stats, holdings, mint_amount, sol_balance)
        self.store.save(entries)
        logger.info(f"Data for owner {stats.owner} has been updated.")
        return entry

    # ------------------------------------------------------------------
    # PriceBackfill / Reconciled
    # ------------------------------------------------------------------

    async def backfill_prices(self) -> Tuple[int, int]:
        """Price every holding in the store. Returns (priced mints, distinct mints)."""
        entries = self.store.load()
        if not entries:
            return 0, 0

        mints = list(dict.fromkeys(h.mint for entry in entries.values() for h in entry.accounts))
        logger.info(f"Found {len(mints)} unique mint addresses.")
        price_map = await self.prices.get_prices(mints)

        for entry in entries.values():
            for holding in entry.accounts:
                holding.price = price_map.get(holding.mint)
                holding.reprice()

        self.store.save(entries)
        priced = sum(1 for p in price_map.values() if p is not None)
        return priced, len(mints)

    def reconcile(self) -> None:
        entries = self.store.load()
        if not entries:
            return
        for entry in entries.values():
            entry.TotalSPL = self.total_spl(entry)
        self.store.save(entries)
        logger.info("TotalSPL has been recalculated for all owners.")

    async def enrich(self, accumulators: Iterable[OwnerStats]) -> EnrichmentReport:
        report = EnrichmentReport()

        for stats in accumulators:
            logger.info(f"Fetching token accounts for owner: {stats.owner}")
            fetched = await self.fetch_holdings(stats.owner)

            if fetched is None:
                report.skipped.append(stats.owner)
            else:
                accounts, sol_balance = fetched
                mint_amount, holdings = self.select_holdings(stats.owner, accounts)
                self.merge_owner(stats, holdings, mint_amount, sol_balance)
                report.enriched.append(stats.owner)

            await self._sleep(self.config.owner_delay)

        report.priced_mints, report.total_mints = await self.backfill_prices()
        self.reconcile()
        return report
