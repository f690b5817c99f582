from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError

from meowth.credits.models import CreditState
from meowth.events.models import LogEntry, TradeEntry, format_pnl
from meowth.models import AgentLogRow, TradeRow, CreditStateRow
from meowth.observability.logger import get_logger
from meowth.persistence.base import PersistentStore

log = get_logger("persistence")


def pnl_from_row(row: TradeRow) -> float:
    """Recover the signed P&L of a stored trade.

    Prefers the numeric column, falls back to parsing the display string, and
    trusts ``positive=False`` over a positive parse.
    """
    value = 0.0
    if row.pnl_value is not None:
        value = float(row.pnl_value)
    elif row.pnl:
        try:
            value = float(row.pnl.replace("$", "").replace("+", ""))
        except ValueError:
            value = 0.0
    if row.positive is False and value > 0:
        value = -abs(value)
    return value


class SqlPersistentStore(PersistentStore):
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _insert(self, row, kind: str) -> bool:
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
            return True
        except SQLAlchemyError as e:
            log.warning("persist_failed", kind=kind, error=str(e))
            return False

    async def write_log(self, entry: LogEntry) -> bool:
        return await self._insert(AgentLogRow(
            time=entry.time,
            prefix=entry.prefix,
            message=entry.message,
            cost=entry.cost,
            type=entry.type,
        ), "log")

    async def write_trade(self, entry: TradeEntry, reason: str = "") -> bool:
        return await self._insert(TradeRow(
            time=entry.time,
            pair=entry.pair,
            side=entry.side,
            pnl=entry.pnl,
            pnl_value=entry.pnl_value,
            api_cost=entry.api_cost,
            positive=entry.pnl_value >= 0,
            confidence=entry.confidence,
            reason=reason or None,
        ), "trade")

    async def write_credit_snapshot(self, state: CreditState) -> bool:
        return await self._insert(CreditStateRow(
            starting_budget=state.starting_budget,
            total_spent=state.total_spent,
            remaining=state.remaining,
            total_input_tokens=state.total_input_tokens,
            total_output_tokens=state.total_output_tokens,
            call_count=state.call_count,
        ), "credit_snapshot")

    async def _latest(self, model, limit: int) -> list:
        async with self.session_factory() as session:
            result = await session.execute(
                select(model).order_by(desc(model.created_at), desc(model.id)).limit(limit)
            )
            rows = list(result.scalars().all())
        rows.reverse()
        return rows

    async def read_logs(self, limit: int) -> list[LogEntry]:
        entries = []
        for row in await self._latest(AgentLogRow, limit):
            try:
                entries.append(LogEntry(
                    time=row.time,
                    prefix=row.prefix,
                    message=row.message,
                    cost=row.cost or None,
                    type=row.type,
                ))
            except ValidationError:
                log.warning("log_row_skipped", id=row.id, type=row.type)
        return entries

    async def read_trades(self, limit: int) -> list[TradeEntry]:
        entries = []
        for row in await self._latest(TradeRow, limit):
            pnl_value = pnl_from_row(row)
            try:
                entries.append(TradeEntry(
                    time=row.time,
                    pair=row.pair,
                    side=row.side,
                    pnl=row.pnl or format_pnl(pnl_value),
                    pnl_value=pnl_value,
                    api_cost=row.api_cost or "$0.000000",
                    confidence=row.confidence or 0,
                ))
            except ValidationError:
                log.warning("trade_row_skipped", id=row.id, side=row.side)
        return entries

    async def read_latest_credit_snapshot(self) -> Optional[CreditState]:
        rows = await self._latest(CreditStateRow, 1)
        if not rows:
            return None
        row = rows[0]
        return CreditState(
            starting_budget=row.starting_budget,
            total_spent=row.total_spent or 0.0,
            remaining=row.remaining,
            total_input_tokens=row.total_input_tokens or 0,
            total_output_tokens=row.total_output_tokens or 0,
            call_count=row.call_count or 0,
        )
