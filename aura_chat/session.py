"""
Chat session orchestration on the client side.

A session keeps the running conversation, checks the user's allowance before
each message, attaches conversation memory for premium users and runs one
StreamConsumer per message.
"""

from __future__ import annotations

import httpx
import structlog

from aura_chat.consumer import (
    CompleteCallback,
    ErrorCallback,
    FragmentCallback,
    StreamConsumer,
)
from aura_chat.entitlements import (
    FREE_DAILY_LIMIT,
    EntitlementLookup,
    EntitlementTier,
    InMemoryUsageCounter,
    StaticEntitlement,
    UsageAllowance,
    UsageCounter,
)
from aura_chat.llm.exceptions import UsageLimitError
from aura_chat.llm.models import ConversationTurn
from aura_chat.llm.streaming import StreamOutcome
from aura_chat.memory import ChatMemory

logger = structlog.get_logger(__name__)


class ChatSession:
    """One user's conversation with the companion."""

    def __init__(
        self,
        relay_url: str,
        display_name: str,
        *,
        entitlements: EntitlementLookup | None = None,
        usage: UsageCounter | None = None,
        memory: ChatMemory | None = None,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        daily_limit: int = FREE_DAILY_LIMIT,
    ) -> None:
        self.relay_url = relay_url
        self.display_name = display_name
        self.entitlements = entitlements or StaticEntitlement()
        self.usage = usage or InMemoryUsageCounter()
        self.memory = memory
        self.client = client
        self.headers = headers
        self.daily_limit = daily_limit
        self.history: list[ConversationTurn] = []
        self._active: StreamConsumer | None = None

    async def allowance(self) -> UsageAllowance:
        tier = await self.entitlements.current_tier()
        used = await self.usage.messages_today()
        return UsageAllowance(tier=tier, used=used, limit=self.daily_limit)

    def context_for(self, tier: EntitlementTier) -> str | None:
        """Memory context, only for premium users."""
        if tier is not EntitlementTier.PREMIUM or self.memory is None:
            return None
        return self.memory.to_context() or None

    async def send(
        self,
        text: str,
        on_fragment: FragmentCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> StreamOutcome:
        """
        Send a user message and stream the companion's reply.

        The user turn joins the history before sending. The assistant turn is
        added only when the reply completed.

        Raises:
            ValueError: If the message is blank.
            UsageLimitError: If the free daily allowance is used up. Nothing
                is sent in that case.
        """
        message = text.strip()
        if not message:
            raise ValueError("Cannot send an empty message")

        allowance = await self.allowance()
        if not allowance.can_send:
            logger.info("Daily message limit reached", limit=allowance.limit)
            raise UsageLimitError(allowance.limit)

        await self.usage.increment()
        self.history.append(ConversationTurn(role="user", content=message))

        consumer = StreamConsumer(self.relay_url, client=self.client, headers=self.headers)
        self._active = consumer
        try:
            outcome = await consumer.stream_chat(
                list(self.history),
                self.display_name,
                on_fragment,
                on_complete,
                on_error,
                context=self.context_for(allowance.tier),
            )
        finally:
            self._active = None

        if outcome.succeeded and outcome.reply:
            self.history.append(ConversationTurn(role="assistant", content=outcome.reply))
        return outcome

    async def abort(self) -> None:
        """Abandon the reply currently streaming, if any."""
        if self._active is not None:
            await self._active.abort()

    def remember(
        self,
        summary: str,
        insights: list[str] | None = None,
        strategies: list[str] | None = None,
    ) -> ChatMemory:
        """Fold new observations into the session's memory and return it."""
        current = self.memory or ChatMemory()
        self.memory = current.merged(summary, insights or [], strategies or [])
        return self.memory
