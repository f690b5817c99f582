from meowth.config import Settings
from meowth.engine.base import DecisionEngine, EngineRequest, EngineResponse
from meowth.observability.logger import get_logger

log = get_logger("engine.anthropic")


class AnthropicEngine(DecisionEngine):
    name = "anthropic"

    def __init__(self, config: Settings, client=None):
        self.config = config
        self._client = client

    def _get_client(self):
        if self._client is None and self.config.anthropic_api_key:
            import anthropic

            self._client = anthropic.AsyncAnthropic(
                api_key=self.config.anthropic_api_key,
                timeout=self.config.engine_timeout_seconds,
            )
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or bool(self.config.anthropic_api_key)

    async def decide(self, request: EngineRequest) -> EngineResponse:
        client = self._get_client()
        if not client:
            raise RuntimeError("Anthropic API key not configured")

        model = self.config.default_model
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=request.max_output_tokens,
                system=request.system_context,
                messages=[{"role": "user", "content": request.user_prompt}],
            )
        except Exception as e:
            log.error("anthropic_error", error=str(e), model=model)
            raise

        text = ""
        for block in response.content:
            if getattr(block, "type", "text") == "text" and hasattr(block, "text"):
                text += block.text

        return EngineResponse(
            text=text,
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
