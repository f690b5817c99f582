from pydantic import BaseModel, Field


class UsageRecord(BaseModel):
    input_tokens: int
    output_tokens: int
    cost_usd: float
    model: str
    timestamp: int  # epoch milliseconds


class CreditState(BaseModel):
    starting_budget: float
    total_spent: float = 0.0
    remaining: float
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    call_count: int = 0
    history: list[UsageRecord] = Field(default_factory=list)
