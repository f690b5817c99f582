from datetime import datetime
from typing import Optional

from meowth.config import Settings
from meowth.core.parser import VALID_ACTIONS, Decision, parse_decision
from meowth.core.simulator import OutcomeSimulator
from meowth.credits.ledger import CreditLedger
from meowth.credits.models import CreditState, UsageRecord
from meowth.engine.base import DecisionEngine, EngineRequest
from meowth.engine.prompt_builder import build_system_context, build_user_prompt
from meowth.events.models import LogEntry, LogType, TradeEntry, format_pnl
from meowth.events.store import EventStore, TradeStore
from meowth.market.base import MarketDataProvider, MarketQuote
from meowth.persistence.base import PersistentStore
from meowth.persistence.writer import BackgroundWriter
from meowth.observability.logger import get_logger

log = get_logger("cycle")

NARRATIVE_MAX_CHARS = 300


class DecisionCycle:
    """One fetch -> decide -> charge -> record iteration."""

    def __init__(
        self,
        config: Settings,
        ledger: CreditLedger,
        events: EventStore,
        trades: TradeStore,
        market: MarketDataProvider,
        engine: DecisionEngine,
        store: PersistentStore,
        writer: BackgroundWriter,
        simulator: Optional[OutcomeSimulator] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.events = events
        self.trades = trades
        self.market = market
        self.engine = engine
        self.store = store
        self.writer = writer
        self.simulator = simulator or OutcomeSimulator()

    def emit(self, prefix: str, message: str, type: LogType, cost: Optional[str] = None) -> LogEntry:
        """Append to the event stream and persist in the background."""
        entry = self.events.add(prefix, message, type, cost=cost)
        self.writer.submit(self.store.write_log(entry), "log")
        return entry

    async def run(self, cycle: int):
        # a/b. Market snapshot
        self.emit("SCAN", f"Fetching live market data from {self.market.name}...", "scan")
        quotes = await self.market.fetch_quotes()
        self._log_quotes(quotes)

        # c. Ask the engine
        credits = self.ledger.get_state()
        self.emit("THINK", f"Analyzing... (credits: ${credits.remaining:.4f})", "think", cost="~$0.001")
        request = EngineRequest(
            system_context=build_system_context(credits, quotes),
            user_prompt=build_user_prompt(cycle, credits),
            max_output_tokens=self.config.max_output_tokens,
        )
        response = await self.engine.decide(request)

        # d. Charge before interpreting the reply
        usage = self.ledger.record_usage(response.model, response.input_tokens, response.output_tokens)
        self.emit(
            "API",
            f"Tokens: {response.input_tokens}in/{response.output_tokens}out",
            "info",
            cost=f"-${usage.cost_usd:.6f}",
        )

        # e/f. Interpret. Once charged, the status line and snapshot always follow
        decision = None
        try:
            decision = parse_decision(response.text)
            if decision is None:
                self.emit("MEOW", f'"{response.text[:NARRATIVE_MAX_CHARS]}"', "think")
                log.info("decision_unstructured", cycle=cycle, length=len(response.text))
            else:
                self._apply(decision, usage)
        finally:
            state = self._report_credits()

        log.info("cycle_complete",
                 cycle=cycle,
                 action=decision.action if decision else None,
                 remaining=round(state.remaining, 6))

    def _report_credits(self) -> CreditState:
        # g. Post-cycle status
        state = self.ledger.get_state()
        self.emit(
            "SYS",
            f"Credits: ${state.remaining:.4f} | Calls: {state.call_count} | Spent: ${state.total_spent:.4f}",
            "system",
        )
        self.writer.submit(self.store.write_credit_snapshot(state), "credit_snapshot")
        return state

    def _log_quotes(self, quotes: list[MarketQuote]):
        for q in quotes:
            if q.ok:
                self.emit(
                    "DATA",
                    f"{q.pair}: ${q.price:.4f} | 5m: {'+' if q.change_5m >= 0 else ''}{q.change_5m:.2f}% "
                    f"| Vol: ${q.volume_24h / 1_000_000:.2f}M",
                    "data",
                )
        failed = [q.pair for q in quotes if not q.ok]
        if failed:
            log.warning("quotes_failed", pairs=failed)

    def _apply(self, decision: Decision, usage: UsageRecord):
        if decision.thought:
            self.emit("MEOW", f'"{decision.thought}"', "think")
        if decision.quip:
            self.emit("MEOW", f"> {decision.quip}", "think")

        pair = decision.pair or "—"
        if decision.action == "skip":
            self.emit("SKIP", f"{pair}: {decision.reason} (conf: {decision.confidence}%)", "info")
        elif decision.is_trade:
            self.emit(
                "EXEC",
                f"{decision.action.upper()} {pair}: {decision.reason} (conf: {decision.confidence}%)",
                "action",
            )
            self._settle(decision, usage)
        else:
            self.emit(
                "ERR",
                f"Unknown action '{decision.action}' (expected one of {', '.join(VALID_ACTIONS)})",
                "fail",
            )

        if decision.mood:
            self.emit("MOOD", decision.mood.upper(), "system")

    def _settle(self, decision: Decision, usage: UsageRecord):
        won = self.simulator.is_win(decision.confidence)
        pnl_value = self.simulator.pnl(won)
        pnl = format_pnl(pnl_value)
        pair = decision.pair or "—"

        if won:
            self.emit("OK", f"{pnl} profit on {pair}", "success")
        else:
            self.emit("LOSS", f"{pnl} loss on {pair}", "fail")

        trade = TradeEntry(
            time=datetime.now().strftime("%H:%M"),
            pair=pair,
            side=decision.action.upper(),
            pnl=pnl,
            pnl_value=pnl_value,
            api_cost=f"${usage.cost_usd:.6f}",
            confidence=decision.confidence,
        )
        self.trades.append(trade)
        self.writer.submit(self.store.write_trade(trade, decision.reason), "trade")
