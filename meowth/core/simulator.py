import random
from typing import Optional

# Demo-grade stand-in for trade execution: no venue, slippage or fees.
MIN_CONFIDENCE_TO_WIN = 40
WIN_THRESHOLD = 0.35
WIN_RANGE = (0.01, 0.16)
LOSS_RANGE = (0.01, 0.09)


class OutcomeSimulator:
    """Scores a buy/sell decision as a win or loss with a random magnitude."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def is_win(self, confidence: int) -> bool:
        draw = self.rng.random()
        return confidence > MIN_CONFIDENCE_TO_WIN and draw > WIN_THRESHOLD

    def pnl(self, won: bool) -> float:
        if won:
            low, high = WIN_RANGE
            return low + self.rng.random() * (high - low)
        low, high = LOSS_RANGE
        return -(low + self.rng.random() * (high - low))

    def score(self, confidence: int) -> float:
        return self.pnl(self.is_win(confidence))
