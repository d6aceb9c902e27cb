"""
Conversation memory carried into new chats for premium users.

Storage lives outside this package; this module only shapes the record and
renders it as the request ``context`` string.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

MAX_KEY_INSIGHTS = 20
MAX_COPING_STRATEGIES = 10


def _merge_recent(existing: Iterable[str], new: Iterable[str], limit: int) -> list[str]:
    """Order-preserving union keeping the ``limit`` most recent entries."""
    merged = list(dict.fromkeys([*existing, *new]))
    return merged[-limit:]


class ChatMemory(BaseModel):
    """What the companion remembers about a user between conversations."""
    summary: str = ""
    key_insights: list[str] = Field(default_factory=list)
    coping_strategies: list[str] = Field(default_factory=list)

    def to_context(self) -> str:
        """Render the memory as context text, empty when nothing is known."""
        sections = []
        if self.summary.strip():
            sections.append(f"Previous conversation context: {self.summary.strip()}")
        if self.key_insights:
            sections.append(
                f"Key insights about this user: {', '.join(self.key_insights)}"
            )
        if self.coping_strategies:
            sections.append(
                "Coping strategies that have helped this user: "
                f"{', '.join(self.coping_strategies)}"
            )
        return "\n\n".join(sections)

    def merged(
        self,
        summary: str,
        insights: Iterable[str] = (),
        strategies: Iterable[str] = (),
    ) -> ChatMemory:
        """Return an updated record with a new summary and merged lists."""
        return ChatMemory(
            summary=summary,
            key_insights=_merge_recent(self.key_insights, insights, MAX_KEY_INSIGHTS),
            coping_strategies=_merge_recent(
                self.coping_strategies, strategies, MAX_COPING_STRATEGIES
            ),
        )
