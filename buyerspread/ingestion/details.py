import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from buyerspread.core.config import PipelineConfig
from buyerspread.core.errors import FetchError, TransientFetchFailure, PartialDataUnavailable
from buyerspread.ingestion.rpc import RpcClient, Sleep

logger = logging.getLogger("buyerspread.ingestion.details")

TRANSACTION_OPTIONS = {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}


class DetailFetcher:
    """
    Resolves getTransaction bodies batch by batch.

    A signature that cannot be resolved is recorded as None and the batch
    carries on without it.
    """

    def __init__(self, rpc: RpcClient, config: PipelineConfig, sleep: Sleep = asyncio.sleep):
        self.rpc = rpc
        self.batch_size = config.detail_batch_size
        self.attempts = config.detail_attempts
        self.retry_delay = config.detail_retry_delay
        self.batch_delay = config.batch_delay
        self._sleep = sleep

    async def _fetch_once(self, signature: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.rpc.call("getTransaction", [signature, dict(TRANSACTION_OPTIONS)])
        except FetchError as e:
            raise TransientFetchFailure(str(e)) from e

    async def fetch_with_retry(self, signature: str) -> Dict[str, Any]:
        for attempt in range(1, self.attempts + 1):
            try:
                detail = await self._fetch_once(signature)
            except TransientFetchFailure as e:
                logger.warning(f"Retry {attempt} failed for {signature}: {e}")
                if attempt < self.attempts:
                    await self._sleep(self.retry_delay)
                continue
            if detail is None:
                raise PartialDataUnavailable(signature, "transaction not found")
            return detail
        raise PartialDataUnavailable(signature, f"failed after {self.attempts} attempts")

    async def _resolve_one(self, signature: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.fetch_with_retry(signature)
        except PartialDataUnavailable as e:
            logger.error(f"Skipping transaction {e.key}: {e.reason}")
            return None

    async def resolve_details(
        self, signatures: Sequence[str], batch_size: Optional[int] = None
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        size = batch_size or self.batch_size
        signatures = list(signatures)
        total_batches = (len(signatures) + size - 1) // size
        details: Dict[str, Optional[Dict[str, Any]]] = {}

        for index, start in enumerate(range(0, len(signatures), size), start=1):
            batch: List[str] = signatures[start:start + size]
            logger.info(f"Processing batch {index} of {total_batches}")

            results = await asyncio.gather(*(self._resolve_one(sig) for sig in batch))
            details.update(zip(batch, results))

            await self._sleep(self.batch_delay)

        resolved = sum(1 for d in details.values() if d is not None)
        logger.info(f"Resolved {resolved} transactions, skipped {len(details) - resolved}")
        return details
