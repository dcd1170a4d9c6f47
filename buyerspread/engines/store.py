"""
Portfolio Store
===============
JSON file holding one entry per owner, rewritten in full on every save.

Precondition: a single writer. There is no lock; two enrichment runs against
the same file will silently drop each other's changes (last writer wins).
"""
import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from buyerspread.core.errors import StoreError

logger = logging.getLogger("buyerspread.engines.store")

SUMMARY_FIELDS = ("owner", "CurrentAmount", "SOLbalance", "TotalSOLBalance", "TotalStables", "TotalSPL")


class TokenHolding(BaseModel):
    mint: str
    owner: str
    amount: Optional[float] = None
    price: Optional[float] = None
    TotalPrice: Optional[float] = None

    def reprice(self) -> None:
        """Recompute TotalPrice from the current amount and price."""
        if self.amount is not None and self.price is not None:
            self.TotalPrice = self.amount * self.price


class OwnerEntry(BaseModel):
    # Extra keys (the owner's trade stats) are kept and written after the summary fields.
    model_config = ConfigDict(extra="allow")

    owner: str
    CurrentAmount: float = 0
    SOLbalance: Optional[float] = None
    TotalSOLBalance: float = 0
    TotalStables: float = 0
    TotalSPL: float = 0
    accounts: List[TokenHolding] = []

    def reprice(self) -> None:
        for holding in self.accounts:
            holding.reprice()

    def holding(self, mint: str) -> Optional[TokenHolding]:
        return next((h for h in self.accounts if h.mint == mint), None)

    def to_record(self) -> dict:
        """Summary fields first, then owner stats, then accounts."""
        data = self.model_dump()
        record = {field: data.pop(field) for field in SUMMARY_FIELDS}
        accounts = data.pop("accounts")
        record.update(data)
        record["accounts"] = accounts
        return record


class PortfolioStore:

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, OwnerEntry]:
        """Entries keyed by owner. A missing file is an empty store."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:
            raise StoreError(self.path, f"not valid JSON: {e}") from e

        if not isinstance(raw, list):
            raise StoreError(self.path, f"expected a list of owner entries, got {type(raw).__name__}")

        entries: Dict[str, OwnerEntry] = {}
        for item in raw:
            try:
                entry = OwnerEntry.model_validate(item)
            except ValidationError as e:
                raise StoreError(self.path, f"invalid owner entry: {e}") from e
            if entry.owner in entries:
                logger.warning(f"Duplicate entry for owner {entry.owner} in {self.path}; keeping the last one")
            entries[entry.owner] = entry
        return entries

    def save(self, entries: Dict[str, OwnerEntry]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        records = [entry.to_record() for entry in entries.values()]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
            f.write("\n")
