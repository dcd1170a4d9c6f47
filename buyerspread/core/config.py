import os
from dataclasses import dataclass
from typing import Mapping, Optional

from buyerspread.core import constants
from buyerspread.core.errors import ConfigurationError


@dataclass(frozen=True)
class PipelineConfig:
    """
    Everything a pipeline run needs, passed explicitly to each component.
    Delays are in seconds.
    """
    endpoint_url: str
    tracked_mint: str = constants.DEFAULT_TRACKED_MINT
    logs_dir: str = "logs"
    price_api_url: str = constants.JUPITER_PRICE_API
    request_timeout: float = constants.REQUEST_TIMEOUT_SECONDS

    # RpcClient
    max_attempts: int = constants.MAX_RATE_LIMIT_ATTEMPTS
    backoff_base: float = constants.BACKOFF_BASE_SECONDS

    # HistoryFetcher
    page_size: int = constants.SIGNATURE_PAGE_SIZE
    page_delay: float = constants.PAGE_DELAY_SECONDS
    window_seconds: int = constants.ANALYSIS_WINDOW_SECONDS

    # DetailFetcher
    detail_batch_size: int = constants.DETAIL_BATCH_SIZE
    detail_attempts: int = constants.DETAIL_ATTEMPTS
    detail_retry_delay: float = constants.DETAIL_RETRY_DELAY_SECONDS
    batch_delay: float = constants.BATCH_DELAY_SECONDS

    # TraderAggregator
    accumulation_threshold: float = constants.ACCUMULATION_THRESHOLD

    # PortfolioEnricher
    min_holding_amount: float = constants.MIN_HOLDING_AMOUNT
    top_holdings: int = constants.TOP_HOLDINGS
    price_batch_size: int = constants.PRICE_BATCH_SIZE
    price_batch_delay: float = constants.PRICE_BATCH_DELAY_SECONDS
    owner_rate_limit: int = constants.OWNER_RATE_LIMIT

    @property
    def owner_delay(self) -> float:
        return 1.0 / self.owner_rate_limit

    @property
    def mandatory_mints(self) -> frozenset:
        """Mints always kept in a portfolio and counted towards CurrentAmount."""
        return constants.BASE_TOKEN_ADDRESSES | {self.tracked_mint}


def load_env_file(path: str = ".env.local") -> None:
    """Load KEY=VALUE lines into os.environ without overriding what is already set."""
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip().startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            os.environ.setdefault(k.strip(), v.strip().strip('"').strip("'"))


def load_config(environ: Optional[Mapping[str, str]] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from environment variables.

    RPC_URL is required. TRACKED_MINT, LOGS_DIR and PRICE_API_URL fall back to
    their defaults.
    """
    env = os.environ if environ is None else environ

    endpoint = env.get("RPC_URL", "").strip()
    if not endpoint:
        raise ConfigurationError("RPC_URL is not defined. Check your .env.local file.")

    return PipelineConfig(
        endpoint_url=endpoint,
        tracked_mint=env.get("TRACKED_MINT") or constants.DEFAULT_TRACKED_MINT,
        logs_dir=env.get("LOGS_DIR") or "logs",
        price_api_url=env.get("PRICE_API_URL") or constants.JUPITER_PRICE_API,
    )
