from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any


class Venue(str, Enum):
    JUPITER = "Jupiter"
    RAYDIUM = "Raydium"
    PUMP_FUN = "Pump.fun"
    UNKNOWN = "Unknown"


class TradeAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class SignatureRecord:
    signature: str
    block_time: Optional[int]
    err: Optional[Any] = None

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "SignatureRecord":
        return cls(
            signature=raw["signature"],
            block_time=raw.get("blockTime"),
            err=raw.get("err"),
        )


@dataclass(frozen=True)
class NormalizedTrade:
    """
    Decoder output. For a BUY, output_amount is the tracked token received;
    for a SELL, input_amount is the tracked token given up.
    """
    owner: str
    action: TradeAction
    input_amount: float
    output_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "action": self.action.value,
            "inputAmount": self.input_amount,
            "outputAmount": self.output_amount,
        }


@dataclass
class OwnerStats:
    owner: str
    total_buys: int = 0
    total_sells: int = 0
    total_buy_amount: float = 0.0
    total_sell_amount: float = 0.0
    net_token_amount: float = 0.0

    def apply(self, trade: NormalizedTrade) -> None:
        if trade.action is TradeAction.BUY:
            self.total_buys += 1
            self.total_buy_amount += trade.output_amount
            self.net_token_amount += trade.output_amount
        elif trade.action is TradeAction.SELL:
            self.total_sells += 1
            self.total_sell_amount += trade.input_amount
            self.net_token_amount -= trade.input_amount

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "owner": data["owner"],
            "totalBuys": data["total_buys"],
            "totalSells": data["total_sells"],
            "totalBuyAmount": data["total_buy_amount"],
            "totalSellAmount": data["total_sell_amount"],
            "netTokenAmount": data["net_token_amount"],
        }
