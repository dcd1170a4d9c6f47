import json
import logging
import os
from typing import Any

logger = logging.getLogger("buyerspread.core.artifacts")

CATEGORIZED = "FirstBuyerSpreadCategorized.json"
JUPITER_PROCESSED = "FirstBuyerSpreadJupiterProcessed.json"
RAYDIUM_PROCESSED = "FirstBuyerSpreadRaydiumProcessed.json"
PUMPFUN_PROCESSED = "FirstBuyerSpreadPumpFunProcessed.json"
AGGREGATED = "FirstBuyerSpreadAggregatedTransactions.json"
UNKNOWN = "FirstBuyerSpreadUnknownTransactions.json"
PORTFOLIOS = "FirstBuyerSpreadPart2Output.json"


class ArtifactWriter:
    """Writes pretty-printed UTF-8 JSON documents into one directory, overwriting."""

    def __init__(self, logs_dir: str):
        self.logs_dir = logs_dir

    def path(self, name: str) -> str:
        return os.path.join(self.logs_dir, name)

    def write(self, name: str, data: Any) -> str:
        os.makedirs(self.logs_dir, exist_ok=True)
        path = self.path(name)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            f.write("\n")
        logger.info(f"Saved {path}")
        return path
