from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import Optional


class MarketPair(BaseModel):
    symbol: str
    mint: str


DEFAULT_PAIRS = [
    MarketPair(symbol="SOL/USDC", mint="So11111111111111111111111111111111111111112"),
    MarketPair(symbol="BONK/SOL", mint="DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"),
    MarketPair(symbol="JUP/USDC", mint="JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"),
]


class Settings(BaseSettings):
    # API Keys
    anthropic_api_key: Optional[str] = None

    # Data
    data_dir: str = "/data"
    database_url: Optional[str] = None  # Falls back to sqlite under data_dir
    log_level: str = "INFO"

    # Budget
    agent_budget: float = 20.0
    default_model: str = "claude-3-5-haiku-20241022"
    credit_history_size: int = 200
    credit_history_view: int = 50

    # Scheduler
    autostart: bool = True
    first_tick_delay_seconds: float = 3.0
    tick_delay_min_seconds: float = 15.0
    tick_delay_max_seconds: float = 25.0
    cycle_timeout_seconds: float = 120.0

    # Decision engine
    engine_timeout_seconds: float = 60.0
    max_output_tokens: int = 350

    # Ring buffers
    log_buffer_size: int = 200
    trade_buffer_size: int = 50

    # Market data
    market_pairs: list[MarketPair] = DEFAULT_PAIRS
    jupiter_price_url: str = "https://api.jup.ag/price/v2"
    market_timeout_seconds: float = 10.0

    model_config = {"env_file": ".env", "extra": "ignore"}

    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir}/meowth.db"


settings = Settings()
