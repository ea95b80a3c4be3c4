# /jewelbot/services/ai_service.py

import json
import logging
from typing import Optional, List, Dict, Any
from openai import AsyncOpenAI

from jewelbot.config.settings import settings
from jewelbot.config.persona import TOOLS
from jewelbot.models.domain import ModelDecision, DirectAnswer, ProductSearchCall, FallbackCall
from jewelbot.utils.circuit_breaker import CircuitBreaker
from jewelbot.utils.metrics import ai_requests_counter


# This service encapsulates all interactions with the OpenAI chat completion
# API. The first call of a turn may request one of the catalog functions; the
# answer is returned as an explicit ModelDecision instead of a raw message.

logger = logging.getLogger(__name__)

PRODUCT_SEARCH_FUNCTION = "getProducts"
FALLBACK_FUNCTION = "suggestFallback"


class AIServiceError(Exception):
    """Raised when the model cannot produce a usable response."""


class AIService:
    def __init__(self, api_key: Optional[str], model: str, timeout: float = 30.0):
        self.model = model
        if api_key:
            self.openai_client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        else:
            self.openai_client = None
            logger.warning("OPENAI_API_KEY not set. Every model-driven turn will fail over to the apology reply.")
        self.circuit_breaker = CircuitBreaker("openai")

    async def _create(self, messages: List[Dict[str, Any]], **kwargs):
        if not self.openai_client:
            raise AIServiceError("OpenAI client is not configured")
        try:
            response = await self.circuit_breaker.call(
                self.openai_client.chat.completions.create,
                model=self.model,
                messages=messages,
                **kwargs,
            )
        except Exception as e:
            ai_requests_counter.labels(model=self.model, status="error").inc()
            logger.error(f"OpenAI chat completion failed: {e}")
            raise AIServiceError(str(e)) from e
        ai_requests_counter.labels(model=self.model, status="success").inc()
        if not response.choices:
            raise AIServiceError("OpenAI returned no choices")
        return response.choices[0].message

    async def decide(self, messages: List[Dict[str, Any]]) -> ModelDecision:
        """First call of a model-driven turn: answer directly or request a function."""
        message = await self._create(messages, tools=TOOLS, tool_choice="auto")
        return self.parse_decision(message)

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Second call of a turn. No functions are offered, so the reply is always text."""
        message = await self._create(messages)
        text = (message.content or "").strip()
        if not text:
            raise AIServiceError("OpenAI returned an empty reply after the function result")
        return text

    @staticmethod
    def parse_decision(message: Any) -> ModelDecision:
        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            return DirectAnswer(text=(message.content or "").strip())

        if len(tool_calls) > 1:
            logger.warning(f"Model requested {len(tool_calls)} functions; only the first is executed.")
        call = tool_calls[0]
        name = call.function.name
        raw_arguments = call.function.arguments or "{}"

        if name == PRODUCT_SEARCH_FUNCTION:
            try:
                args = json.loads(raw_arguments)
            except json.JSONDecodeError as e:
                raise AIServiceError(f"Malformed {name} arguments: {e}") from e
            query = args.get("query") if isinstance(args, dict) else None
            if not isinstance(query, str) or not query.strip():
                raise AIServiceError(f"{name} called without a query")
            return ProductSearchCall(query=query.strip(), call_id=call.id, raw_arguments=raw_arguments)

        if name == FALLBACK_FUNCTION:
            return FallbackCall(call_id=call.id, raw_arguments=raw_arguments)

        raise AIServiceError(f"Model requested unknown function '{name}'")

    @staticmethod
    def tool_call_message(decision: ModelDecision) -> Dict[str, Any]:
        """The assistant message that carries the function request back into the context."""
        name = PRODUCT_SEARCH_FUNCTION if isinstance(decision, ProductSearchCall) else FALLBACK_FUNCTION
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": decision.call_id,
                    "type": "function",
                    "function": {"name": name, "arguments": decision.raw_arguments},
                }
            ],
        }

    @staticmethod
    def tool_result_message(call_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": call_id,
            "content": json.dumps(payload, ensure_ascii=False),
        }


# Globally accessible instance
ai_service = AIService(settings.openai_api_key, settings.openai_model, settings.openai_timeout_seconds)
