"""
Jupiter Price API Client
========================
Fetches token prices from Jupiter Aggregator API v2.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import httpx

from buyerspread.core.config import PipelineConfig
from buyerspread.ingestion.rpc import Sleep

logger = logging.getLogger("buyerspread.core.jupiter")


class PriceClient:

    def __init__(
        self,
        config: PipelineConfig,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.url = config.price_api_url
        self.batch_size = config.price_batch_size
        self.batch_delay = config.price_batch_delay
        self._sleep = sleep
        self._client = client
        self._own_client = client is None
        if self._own_client:
            self._client = httpx.AsyncClient(timeout=config.request_timeout)

    async def aclose(self) -> None:
        if self._own_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_token_prices(self, mints: List[str]) -> Dict[str, Optional[float]]:
        """
        Fetch prices for up to batch_size mints in one request.
        Mints without a quote map to None. A failed request maps every mint to None.
        """
        if not mints:
            return {}

        try:
            # Jupiter accepts comma-separated mints
            resp = await self._client.get(self.url, params={"ids": ",".join(mints)})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Jupiter price fetch error: {e}")
            return {mint: None for mint in mints}

        quotes = data.get("data", data) if isinstance(data, dict) else {}
        results: Dict[str, Optional[float]] = {}
        for mint in mints:
            token_data = quotes.get(mint) or {}
            price = token_data.get("price")
            results[mint] = float(price) if price not in (None, "") else None
        return results

    async def get_prices(self, mints: Sequence[str]) -> Dict[str, Optional[float]]:
        """Batch over all mints, pausing batch_delay between requests."""
        mints = list(mints)
        prices: Dict[str, Optional[float]] = {}
        for start in range(0, len(mints), self.batch_size):
            if start > 0:
                await self._sleep(self.batch_delay)
            prices.update(await self.get_token_prices(mints[start:start + self.batch_size]))
        priced = sum(1 for p in prices.values() if p is not None)
        logger.info(f"Fetched prices for {priced} of {len(mints)} mints")
        return prices
