from typing import Any, Dict, List, Optional

from loguru import logger

from .context import AssembledContext
from .prompts import build_system_prompt
from ..config.settings import ChatConfig
from ..exceptions import MediaChatException
from ..models import ChatExchange, ChatReply, UsageRecord
from ..providers.base import LLMProvider
from ..store.base import EmbeddingStore
from ..utils.timecodes import extract_timestamps

USAGE_ENDPOINT = "chat"


class ChatResponder:
    """Answers a question from assembled context and records the exchange."""

    def __init__(self, store: EmbeddingStore, llm: LLMProvider, config: ChatConfig):
        self.store = store
        self.llm = llm
        self.config = config

    def build_messages(self, context: AssembledContext) -> List[Dict[str, Any]]:
        messages = [{
            "role": "system",
            "content": build_system_prompt(self.config.system_prompt, context, self.config.max_context_chars),
        }]
        for exchange in context.history:
            messages.append({"role": "user", "content": exchange.message})
            messages.append({"role": "assistant", "content": exchange.response})
        messages.append({"role": "user", "content": f"User question: {context.query}"})
        return messages

    async def respond(self, context: AssembledContext) -> ChatReply:
        """Call the language model; provider failures propagate."""
        result = await self.llm.chat_completion(
            self.build_messages(context),
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        text = (result.get("content") or "").strip()
        reply = ChatReply(response=text, timestamps=extract_timestamps(text))

        await self._record(context, text, result.get("usage"))
        return reply

    async def _record(self, context: AssembledContext, text: str, usage: Optional[Dict[str, Any]]) -> None:
        # bookkeeping failures never discard the answer
        try:
            await self.store.save_chat_exchange(ChatExchange(
                asset_id=context.asset_id,
                user_id=context.user_id,
                message=context.query,
                response=text,
            ))
        except MediaChatException as e:
            logger.exception(f"Failed to save chat exchange for {context.asset_id}: {e}")

        tokens = (usage or {}).get("total_tokens")
        if not tokens:
            return
        try:
            await self.store.track_usage(UsageRecord(
                user_id=context.user_id,
                endpoint=USAGE_ENDPOINT,
                tokens_used=tokens,
                cost=tokens / 1000 * self.config.cost_per_1k_tokens,
            ))
        except MediaChatException as e:
            logger.exception(f"Failed to track usage for {context.asset_id}: {e}")
