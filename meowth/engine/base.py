from abc import ABC, abstractmethod
from pydantic import BaseModel


class EngineRequest(BaseModel):
    system_context: str
    user_prompt: str
    max_output_tokens: int = 350


class EngineResponse(BaseModel):
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class DecisionEngine(ABC):
    """Reasoning backend asked for one trading decision per cycle."""

    name: str = "base"

    @abstractmethod
    async def decide(self, request: EngineRequest) -> EngineResponse:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass
