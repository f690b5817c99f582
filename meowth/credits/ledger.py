import time

from meowth.config import Settings
from meowth.credits.models import CreditState, UsageRecord
from meowth.observability.logger import get_logger

log = get_logger("credits")

# Cost per 1M tokens (USD)
PRICING = {
    "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    "claude-3-5-haiku-20241022": {"input": 0.25, "output": 1.25},
}


class CreditLedger:
    """Pre-paid budget that every engine call draws down.

    The agent is alive while ``remaining`` is positive. State lives in memory;
    the latest durable snapshot is loaded once by ``initialize()``.
    """

    def __init__(self, config: Settings, store=None):
        self.config = config
        self.store = store
        self._initialized = False
        self._state = self._defaults()

    def _defaults(self) -> CreditState:
        budget = self.config.agent_budget
        return CreditState(starting_budget=budget, remaining=budget)

    async def initialize(self):
        """Load the most recent persisted snapshot. Safe to call repeatedly."""
        if self._initialized:
            return
        self._initialized = True

        if self.store is None:
            log.info("credits_fresh", budget=self._state.starting_budget)
            return

        try:
            snapshot = await self.store.read_latest_credit_snapshot()
        except Exception as e:
            log.warning("credits_restore_failed", error=str(e))
            return

        if snapshot is None:
            log.info("credits_fresh", budget=self._state.starting_budget)
            return

        self._state = CreditState(
            starting_budget=snapshot.starting_budget,
            total_spent=snapshot.total_spent,
            remaining=snapshot.starting_budget - snapshot.total_spent,
            total_input_tokens=snapshot.total_input_tokens,
            total_output_tokens=snapshot.total_output_tokens,
            call_count=snapshot.call_count,
        )
        log.info("credits_restored",
                 remaining=round(self._state.remaining, 4),
                 call_count=self._state.call_count)

    def estimate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        pricing = PRICING.get(model) or PRICING.get(self.config.default_model, {"input": 0.0, "output": 0.0})
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def record_usage(self, model: str, input_tokens: int, output_tokens: int) -> UsageRecord:
        cost = self.estimate_cost(model, input_tokens, output_tokens)
        usage = UsageRecord(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost,
            model=model,
            timestamp=int(time.time() * 1000),
        )

        state = self._state
        state.total_spent += cost
        state.remaining = state.starting_budget - state.total_spent
        state.total_input_tokens += input_tokens
        state.total_output_tokens += output_tokens
        state.call_count += 1
        state.history.append(usage)
        if len(state.history) > self.config.credit_history_size:
            state.history = state.history[-self.config.credit_history_size:]

        log.info("credits_charged",
                 model=model,
                 cost=round(cost, 6),
                 remaining=round(state.remaining, 6))
        return usage

    def is_alive(self) -> bool:
        return self._state.remaining > 0

    def get_state(self) -> CreditState:
        snapshot = self._state.model_copy()
        snapshot.history = [u.model_copy() for u in self._state.history[-self.config.credit_history_view:]]
        return snapshot

    def reset(self):
        self._state = self._defaults()
        log.info("credits_reset", budget=self._state.starting_budget)
