from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

LogType = Literal["scan", "data", "think", "action", "success", "fail", "info", "system"]


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    prefix: str
    message: str
    cost: Optional[str] = None
    type: LogType


class TradeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    pair: str
    side: Literal["BUY", "SELL"]
    pnl: str
    pnl_value: float
    api_cost: str
    confidence: int


def format_pnl(value: float) -> str:
    """Render a signed P&L as ``+$0.0432`` / ``-$0.0123``."""
    if value >= 0:
        return f"+${value:.4f}"
    return f"-${abs(value):.4f}"
