import asyncio
import logging
from typing import List, Optional

from buyerspread.core.config import PipelineConfig
from buyerspread.ingestion.models import SignatureRecord
from buyerspread.ingestion.rpc import RpcClient, Sleep

logger = logging.getLogger("buyerspread.ingestion.history")


class HistoryFetcher:
    """
    Walks getSignaturesForAddress backwards from the newest signature.

    Pagination is strictly sequential, so any error (including RetriesExhausted
    from the RPC client) aborts the whole fetch.
    """

    def __init__(self, rpc: RpcClient, config: PipelineConfig, sleep: Sleep = asyncio.sleep):
        self.rpc = rpc
        self.page_size = config.page_size
        self.page_delay = config.page_delay
        self.window_seconds = config.window_seconds
        self._sleep = sleep

    async def fetch_page(self, address: str, before: Optional[str] = None) -> List[SignatureRecord]:
        options = {"limit": self.page_size}
        if before:
            options["before"] = before
        result = await self.rpc.call("getSignaturesForAddress", [address, options])
        return [SignatureRecord.from_rpc(raw) for raw in (result or [])]

    async def fetch_all_signatures(self, address: str) -> List[SignatureRecord]:
        records: List[SignatureRecord] = []
        seen = set()
        before = None
        page = 0

        while True:
            if page > 0:
                await self._sleep(self.page_delay)

            logger.info(f"Fetching signatures for {address} with before={before}")
            batch = await self.fetch_page(address, before)
            page += 1

            if not batch:
                logger.info("No more signatures to fetch.")
                break

            for record in batch:
                if record.signature not in seen:
                    seen.add(record.signature)
                    records.append(record)

            if len(batch) < self.page_size:
                logger.info("Reached the last page of signatures.")
                break

            before = batch[-1].signature

        logger.info(f"Fetched {len(records)} signatures in {page} pages")
        return records

    def filter_window(self, records: List[SignatureRecord]) -> List[SignatureRecord]:
        """
        Keep successful transactions from the first window_seconds of activity,
        measured from the oldest timestamped signature.
        """
        timed = [r for r in records if r.block_time is not None]
        if not timed:
            return []

        start = min(r.block_time for r in timed)
        cutoff = start + self.window_seconds
        kept = [r for r in timed if start <= r.block_time <= cutoff and r.err is None]

        logger.info(
            f"Filtered signatures (within {self.window_seconds}s of {start}, no errors): "
            f"{len(kept)} of {len(records)}"
        )
        return kept

    async def fetch_window(self, address: str) -> List[SignatureRecord]:
        return self.filter_window(await self.fetch_all_signatures(address))
