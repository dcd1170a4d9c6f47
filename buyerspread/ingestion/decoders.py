"""
Venue Decoders
==============
A decoder turns raw getTransaction bodies into NormalizedTrade records.

Venue-specific instruction decoders plug in by subclassing Decoder and
registering with a DecoderRegistry. TokenBalanceDecoder is a generic fallback
that reads the signer's pre/post balance of the tracked mint, so it works for
any venue without parsing instruction data.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from buyerspread.core.constants import LAMPORTS_PER_SOL
from buyerspread.ingestion.models import NormalizedTrade, TradeAction, Venue

logger = logging.getLogger("buyerspread.ingestion.decoders")


class Decoder(ABC):
    """
    Base class for venue decoders.
    A record that cannot be decoded is dropped and logged, never raised.
    """

    @abstractmethod
    def decode_transaction(self, tx: Dict[str, Any]) -> List[NormalizedTrade]:
        """Convert one transaction into zero or more normalized trades."""

    def decode(self, transactions: Sequence[Dict[str, Any]]) -> List[NormalizedTrade]:
        trades: List[NormalizedTrade] = []
        skipped = 0
        for tx in transactions:
            try:
                trades.extend(self.decode_transaction(tx))
            except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
                skipped += 1
                logger.warning(f"{type(self).__name__} could not decode {_signature_of(tx)}: {e}")
        if skipped:
            logger.info(f"{type(self).__name__}: decoded {len(trades)} trades, skipped {skipped} transactions")
        return trades


class DecoderRegistry:

    def __init__(self):
        self._decoders: Dict[Venue, Decoder] = {}

    def register(self, venue: Venue, decoder: Decoder):
        """Register a decoder for a venue."""
        if venue is Venue.UNKNOWN:
            raise ValueError("Unknown transactions are not decoded")
        self._decoders[venue] = decoder

    def get(self, venue: Venue):
        return self._decoders.get(venue)


def _signature_of(tx: Any) -> str:
    try:
        return tx["transaction"]["signatures"][0]
    except (KeyError, IndexError, TypeError):
        return "<unknown signature>"


def _ui_amount(balance: Dict[str, Any]) -> float:
    token_amount = balance["uiTokenAmount"]
    return float(token_amount["amount"]) / (10 ** int(token_amount["decimals"]))


class TokenBalanceDecoder(Decoder):
    """
    Derives BUY/SELL from the fee payer's change in tracked-mint balance.

    BUY: outputAmount = tokens received, inputAmount = SOL spent.
    SELL: inputAmount = tokens sold, outputAmount = SOL received.
    """

    def __init__(self, tracked_mint: str):
        self.tracked_mint = tracked_mint

    def _owner(self, tx: Dict[str, Any]) -> str:
        key = tx["transaction"]["message"]["accountKeys"][0]
        return key["pubkey"] if isinstance(key, dict) else key

    def _token_balance(self, balances: List[Dict[str, Any]], owner: str) -> float:
        return sum(
            _ui_amount(b) for b in balances
            if b.get("mint") == self.tracked_mint and b.get("owner") == owner
        )

    def decode_transaction(self, tx: Dict[str, Any]) -> List[NormalizedTrade]:
        meta = tx["meta"]
        owner = self._owner(tx)

        pre = self._token_balance(meta.get("preTokenBalances") or [], owner)
        post = self._token_balance(meta.get("postTokenBalances") or [], owner)
        token_delta = post - pre
        if token_delta == 0:
            return []

        sol_delta = (meta["postBalances"][0] - meta["preBalances"][0]) / LAMPORTS_PER_SOL

        if token_delta > 0:
            return [NormalizedTrade(owner, TradeAction.BUY, max(-sol_delta, 0.0), token_delta)]
        return [NormalizedTrade(owner, TradeAction.SELL, -token_delta, max(sol_delta, 0.0))]
