import json

import httpx
import pytest

from buyerspread.core.config import PipelineConfig
from buyerspread.core.jupiter import PriceClient
from buyerspread.ingestion.rpc import RpcClient

RPC_URL = "http://rpc.test/"
PRICE_URL = "http://price.test/price/v2"


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class RpcServer:
    """
    Fake JSON-RPC node. handlers maps method -> callable(params) returning
    either an httpx.Response or a value sent back as "result".
    """

    def __init__(self):
        self.handlers = {}
        self.calls = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        outcome = self.handlers[method](params)
        if isinstance(outcome, httpx.Response):
            return outcome
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": outcome})

    def calls_to(self, method):
        return [params for m, params in self.calls if m == method]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


class PriceServer:
    """Fake Jupiter price API. prices maps mint -> price; missing mints are not quoted."""

    def __init__(self, prices=None, status_code=200):
        self.prices = prices or {}
        self.status_code = status_code
        self.requests = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        ids = request.url.params["ids"].split(",")
        self.requests.append(ids)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        data = {mint: {"id": mint, "price": str(self.prices[mint])} for mint in ids if mint in self.prices}
        return httpx.Response(200, json={"data": data, "timeTaken": 0.01})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture
def config(tmp_path):
    return PipelineConfig(
        endpoint_url=RPC_URL,
        tracked_mint="TRACKEDmint1111111111111111111111111111pump",
        logs_dir=str(tmp_path / "logs"),
        price_api_url=PRICE_URL,
    )


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def rpc_server():
    return RpcServer()


@pytest.fixture
def price_server():
    return PriceServer()


@pytest.fixture
def make_rpc(rpc_server, sleeps):
    def factory(config):
        return RpcClient(config, client=rpc_server.client(), sleep=sleeps)
    return factory


@pytest.fixture
def make_prices(price_server, sleeps):
    def factory(config):
        return PriceClient(config, client=price_server.client(), sleep=sleeps)
    return factory
