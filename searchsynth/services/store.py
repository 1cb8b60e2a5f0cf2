"""Persistence capability for conversations, messages and search results."""
from __future__ import annotations

import copy
from typing import Any, Protocol
from uuid import uuid4

from searchsynth.models.domain import Message, SearchResult, utc_now_iso


class ConversationStore(Protocol):
    async def create_conversation(self, query: str) -> dict[str, Any]:
        ...

    async def get_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        ...

    async def list_conversations(self, limit: int = 50) -> list[dict[str, Any]]:
        ...

    async def update_conversation_summary(self, conversation_id: str, summary: str) -> None:
        ...

    async def add_message(self, message: Message) -> dict[str, Any]:
        ...

    async def get_messages(self, conversation_id: str) -> list[dict[str, Any]]:
        ...

    async def save_search_results(self, results: list[SearchResult]) -> list[dict[str, Any]]:
        ...

    async def get_search_results(self, conversation_id: str) -> list[dict[str, Any]]:
        ...


class InMemoryStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self.conversations: dict[str, dict[str, Any]] = {}
        self.messages: list[dict[str, Any]] = []
        self.search_results: list[dict[str, Any]] = []

    async def create_conversation(self, query: str) -> dict[str, Any]:
        now = utc_now_iso()
        row = {
            "id": str(uuid4()),
            "query": query,
            "summary": None,
            "created_at": now,
            "updated_at": now,
        }
        self.conversations[row["id"]] = row
        return dict(row)

    async def get_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        row = self.conversations.get(conversation_id)
        return dict(row) if row else None

    async def list_conversations(self, limit: int = 50) -> list[dict[str, Any]]:
        rows = sorted(
            self.conversations.values(), key=lambda r: r["updated_at"], reverse=True
        )
        return [dict(r) for r in rows[:limit]]

    async def update_conversation_summary(self, conversation_id: str, summary: str) -> None:
        row = self.conversations.get(conversation_id)
        if row is None:
            return
        row["summary"] = summary
        row["updated_at"] = utc_now_iso()

    async def add_message(self, message: Message) -> dict[str, Any]:
        row = message.to_row()
        row.setdefault("id", str(uuid4()))
        self.messages.append(row)
        return copy.deepcopy(row)

    async def get_messages(self, conversation_id: str) -> list[dict[str, Any]]:
        rows = [m for m in self.messages if m["conversation_id"] == conversation_id]
        return copy.deepcopy(sorted(rows, key=lambda m: m["timestamp"]))

    async def save_search_results(self, results: list[SearchResult]) -> list[dict[str, Any]]:
        rows = []
        for result in results:
            row = {"id": str(uuid4()), **result.to_row()}
            self.search_results.append(row)
            rows.append(dict(row))
        return rows

    async def get_search_results(self, conversation_id: str) -> list[dict[str, Any]]:
        rows = [r for r in self.search_results if r["conversation_id"] == conversation_id]
        return [dict(r) for r in sorted(rows, key=lambda r: r["score"], reverse=True)]
