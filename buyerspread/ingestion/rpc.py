"""
Solana JSON-RPC Client
======================
Posts JSON-RPC 2.0 requests to the configured node endpoint.

Only HTTP 429 is retried here (exponential backoff). Every other failure is
raised as UpstreamError so that real upstream faults are never hidden behind
silent retries.
"""
import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from buyerspread.core.config import PipelineConfig
from buyerspread.core.errors import RateLimited, UpstreamError, RetriesExhausted

logger = logging.getLogger("buyerspread.ingestion.rpc")

Sleep = Callable[[float], Awaitable[Any]]


class RpcClient:

    def __init__(
        self,
        config: PipelineConfig,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.endpoint = config.endpoint_url
        self.max_attempts = config.max_attempts
        self.backoff_base = config.backoff_base
        self._sleep = sleep
        self._ids = itertools.count(1)
        self._client = client
        self._own_client = client is None
        if self._own_client:
            self._client = httpx.AsyncClient(timeout=config.request_timeout)

    async def aclose(self) -> None:
        if self._own_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._client.post(
                self.endpoint, json=payload, headers={"Content-Type": "application/json"}
            )
        except httpx.HTTPError as e:
            raise UpstreamError(method, f"network error: {e}") from e

        if resp.status_code == 429:
            raise RateLimited(method)
        if resp.status_code < 200 or resp.status_code >= 300:
            raise UpstreamError(method, f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(method, "response is not JSON", status_code=resp.status_code) from e

        if not isinstance(data, dict):
            raise UpstreamError(method, "unexpected response body", status_code=resp.status_code)
        if data.get("error"):
            logger.warning(f"RPC error for {method}: {data['error']}")
            return None
        return data.get("result")

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Issue one JSON-RPC call. Rate-limited responses are retried up to
        max_attempts times with delays of base, 2*base, 4*base...
        """
        delay = self.backoff_base
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._post(method, params)
            except RateLimited:
                if attempt == self.max_attempts:
                    break
                logger.warning(f"Rate limit exceeded on {method}. Retrying in {delay:.1f}s (attempt {attempt}/{self.max_attempts})")
                await self._sleep(delay)
                delay *= 2
        raise RetriesExhausted(method, self.max_attempts)
