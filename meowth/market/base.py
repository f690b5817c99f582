from abc import ABC, abstractmethod
from pydantic import BaseModel


class MarketQuote(BaseModel):
    pair: str
    price: float = 0.0
    change_5m: float = 0.0
    change_1h: float = 0.0
    volume_24h: float = 0.0
    source: str

    @classmethod
    def failed(cls, pair: str) -> "MarketQuote":
        return cls(pair=pair, source="error")

    @property
    def ok(self) -> bool:
        return self.source != "error" and self.price > 0


class MarketDataProvider(ABC):
    """Supplies one quote per tracked pair. Must not raise for a single bad pair."""

    name: str = "base"

    @abstractmethod
    async def fetch_quotes(self) -> list[MarketQuote]:
        pass
