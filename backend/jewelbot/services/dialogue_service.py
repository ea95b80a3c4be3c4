# /jewelbot/services/dialogue_service.py

import re
import logging
from typing import Optional, List, Dict, Any, Tuple, Sequence, Protocol

from jewelbot.config.settings import settings
from jewelbot.config import strings
from jewelbot.config.persona import AI_SYSTEM_PROMPT
from jewelbot.models.domain import (
    ConversationState,
    DirectAnswer,
    FallbackCall,
    ModelDecision,
    PaginationCursor,
    ProductRecord,
    ProductSearchCall,
    TurnResult,
)
from jewelbot.services.ai_service import AIService, AIServiceError, ai_service
from jewelbot.services.catalog_service import catalog_service
from jewelbot.services.conversation_service import ConversationStore, conversation_store
from jewelbot.services.product_query_adapter import filter_products, project_products, fallback_products
from jewelbot.services.reply_service import ReplyService, reply_service
from jewelbot.utils.metrics import turn_counter

# This service decides how each user message is answered. In priority order:
#   1. "show more" with an active search  -> next page of stored results
#   2. "show more" without one            -> fixed guidance reply
#   3. anything else                      -> model, which may call getProducts
#                                            or suggestFallback once
# Only model-driven turns that complete are written to the history.

logger = logging.getLogger(__name__)

CONTINUATION_PATTERN = re.compile(r"\b(?:show\s+more|more|next|continue|additional)\b", re.IGNORECASE)


def is_continuation_request(text: str) -> bool:
    return bool(text) and CONTINUATION_PATTERN.search(text) is not None


class ProductSource(Protocol):
    @property
    def products(self) -> Sequence[ProductRecord]: ...


class DialogueService:
    def __init__(
        self,
        catalog: ProductSource,
        store: ConversationStore,
        ai: AIService,
        replies: ReplyService,
        page_size: int = 3,
        max_rows_to_model: int = 20,
        context_turns: int = 6,
        system_prompt: str = AI_SYSTEM_PROMPT,
    ):
        self.catalog = catalog
        self.store = store
        self.ai = ai
        self.replies = replies
        self.page_size = page_size
        self.max_rows_to_model = max_rows_to_model
        self.context_turns = context_turns
        self.system_prompt = system_prompt

    async def respond(self, user_id: str, text: str) -> TurnResult:
        """
        Runs one turn for the user and sends the reply. Turns of the same user
        are serialised, so replies go out in the order messages arrived.
        Raises WhatsAppSendError if a text message cannot be delivered.
        """
        async with self.store.lock(user_id) as state:
            result = await self.handle_turn(state, text)
            await self.replies.render(user_id, result.reply_text, result.products)
        return result

    async def handle_turn(self, state: ConversationState, text: str) -> TurnResult:
        if is_continuation_request(text):
            result = self._continue_results(state)
        else:
            result = await self._model_turn(state, text)
        turn_counter.labels(path=result.path).inc()
        logger.info(f"Turn for {state.user_id} resolved via '{result.path}' with {len(result.products)} products.")
        return result

    # --- Paths 1 & 2: continuation ---

    def _continue_results(self, state: ConversationState) -> TurnResult:
        cursor = state.cursor
        if cursor is None:
            return TurnResult(reply_text=strings.SEARCH_FIRST_REPLY, path="no_cursor")
        if cursor.exhausted:
            return TurnResult(reply_text=strings.RESULTS_EXHAUSTED_REPLY, path="exhausted")

        page = cursor.next_page(self.page_size)
        reply = strings.CONTINUATION_REPLY.format(count=len(page)) + "\n" + self._remaining_note(cursor.remaining)
        return TurnResult(reply_text=reply, products=page, path="continuation")

    @staticmethod
    def _remaining_note(remaining: int) -> str:
        if remaining > 0:
            return strings.MORE_AVAILABLE_NOTE.format(remaining=remaining)
        return strings.LIST_COMPLETE_NOTE

    # --- Paths 3 & 4: model-driven ---

    def _build_context(self, state: ConversationState, text: str) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]
        for turn in self.store.recent_history(state, self.context_turns):
            messages.append({"role": turn.role, "content": turn.content})
        messages.append({"role": "user", "content": text})
        return messages

    async def _model_turn(self, state: ConversationState, text: str) -> TurnResult:
        messages = self._build_context(state, text)
        try:
            decision = await self.ai.decide(messages)

            if isinstance(decision, DirectAnswer):
                result = TurnResult(reply_text=decision.text or strings.NOT_UNDERSTOOD_REPLY, path="direct")
                self.store.append_exchange(state, text, result.reply_text)
                return result

            payload, products, new_cursor, path = self._run_function(decision)
            messages.append(AIService.tool_call_message(decision))
            messages.append(AIService.tool_result_message(decision.call_id, payload))
            reply = await self.ai.complete(messages)

        except AIServiceError as e:
            logger.error(f"Model turn failed for {state.user_id}: {e}")
            return TurnResult(reply_text=strings.APOLOGY_REPLY, path="error")
        except Exception as e:
            logger.error(f"Unexpected error in model turn for {state.user_id}: {e}", exc_info=True)
            return TurnResult(reply_text=strings.APOLOGY_REPLY, path="error")

        # State changes are applied only once the turn has completed.
        state.cursor = new_cursor
        if new_cursor is not None and new_cursor.remaining > 0:
            reply = f"{reply}\n\n{self._remaining_note(new_cursor.remaining)}"
        self.store.append_exchange(state, text, reply)
        return TurnResult(reply_text=reply, products=products, path=path)

    def _run_function(
        self, decision: ModelDecision
    ) -> Tuple[Dict[str, Any], List[ProductRecord], Optional[PaginationCursor], str]:
        """
        Executes the function the model asked for.

        Returns:
            (payload for the model, products to render, cursor to store, turn path)
        """
        if isinstance(decision, ProductSearchCall):
            matches = filter_products(decision.query, self.catalog.products)
            logger.info(f"getProducts('{decision.query}') matched {len(matches)} products.")
            if not matches:
                payload = {"products": [], "total_matches": 0, "message": strings.NO_PRODUCTS_FOUND_MESSAGE}
                return payload, [], None, "not_found"

            shown = matches[:self.page_size]
            payload = {
                "total_matches": len(matches),
                "shown": len(shown),
                "remaining": len(matches) - len(shown),
                "products": [p.model_dump() for p in project_products(matches[:self.max_rows_to_model])],
            }
            cursor = PaginationCursor(results=matches, offset=len(shown))
            return payload, shown, cursor, "products"

        if isinstance(decision, FallbackCall):
            suggestions = fallback_products(self.catalog.products, self.page_size)
            payload: Dict[str, Any] = {
                "fallback": True,
                "products": [p.model_dump() for p in project_products(suggestions)],
            }
            if not suggestions:
                payload["message"] = strings.NO_PRODUCTS_FOUND_MESSAGE
            return payload, suggestions, None, "fallback"

        raise AIServiceError(f"Unsupported model decision: {decision!r}")


# Globally accessible instance
dialogue_service = DialogueService(
    catalog=catalog_service,
    store=conversation_store,
    ai=ai_service,
    replies=reply_service,
    page_size=settings.products_per_page,
    max_rows_to_model=settings.max_rows_to_model,
    context_turns=settings.history_context_turns,
)
