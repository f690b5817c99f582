from sqlalchemy import Column, String, Float, Integer, DateTime, Text, Boolean, func
from meowth.database import Base


class AgentLogRow(Base):
    __tablename__ = "agent_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    time = Column(String(16), nullable=False)
    prefix = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    cost = Column(String(32), nullable=True)
    type = Column(String(20), nullable=False)


class TradeRow(Base):
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    time = Column(String(16), nullable=False)
    pair = Column(String(32), nullable=False)
    side = Column(String(8), nullable=False)  # BUY / SELL
    pnl = Column(String(32), nullable=True)
    pnl_value = Column(Float, nullable=True)
    api_cost = Column(String(32), nullable=True)
    positive = Column(Boolean, nullable=True)
    confidence = Column(Integer, default=0)
    reason = Column(Text, nullable=True)


class CreditStateRow(Base):
    __tablename__ = "credit_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    starting_budget = Column(Float, nullable=False)
    total_spent = Column(Float, nullable=False, default=0.0)
    remaining = Column(Float, nullable=False)
    total_input_tokens = Column(Integer, default=0)
    total_output_tokens = Column(Integer, default=0)
    call_count = Column(Integer, default=0)
