from __future__ import annotations

import asyncio
from typing import Any

from supabase import Client, create_client

from searchsynth.config import settings
from searchsynth.errors import StoreError
from searchsynth.models.domain import Message, SearchResult, utc_now_iso
from searchsynth.services import logger as log_service


def get_client() -> Client:
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise StoreError("SUPABASE_URL / SUPABASE_ANON_KEY are not configured")
    return create_client(settings.supabase_url, settings.supabase_anon_key)


class SupabaseStore:
    """ConversationStore over the supabase-py client.

    The client is synchronous, so every ``execute()`` runs in a worker thread.
    """

    def __init__(self, client: Client | None = None):
        self._client = client

    def client(self) -> Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def _execute(self, query: Any, *, operation: str, table: str) -> list[dict[str, Any]]:
        try:
            result = await asyncio.to_thread(query.execute)
        except Exception as e:
            log_service.log_db_operation(operation, table, "error", error=str(e))
            raise StoreError(f"{operation} on {table} failed: {e}") from e
        log_service.log_db_operation(operation, table, "success")
        return result.data or []

    # --- Conversations ---

    async def create_conversation(self, query: str) -> dict[str, Any]:
        rows = await self._execute(
            self.client().table("conversations").insert({"query": query}),
            operation="insert",
            table="conversations",
        )
        return rows[0]

    async def get_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        rows = await self._execute(
            self.client().table("conversations").select("*").eq("id", conversation_id),
            operation="select",
            table="conversations",
        )
        return rows[0] if rows else None

    async def list_conversations(self, limit: int = 50) -> list[dict[str, Any]]:
        return await self._execute(
            self.client()
            .table("conversations")
            .select("*")
            .order("updated_at", desc=True)
            .limit(limit),
            operation="select",
            table="conversations",
        )

    async def update_conversation_summary(self, conversation_id: str, summary: str) -> None:
        await self._execute(
            self.client()
            .table("conversations")
            .update({"summary": summary, "updated_at": utc_now_iso()})
            .eq("id", conversation_id),
            operation="update",
            table="conversations",
        )

    # --- Messages ---

    async def add_message(self, message: Message) -> dict[str, Any]:
        rows = await self._execute(
            self.client().table("messages").insert(message.to_row()),
            operation="insert",
            table="messages",
        )
        return rows[0]

    async def get_messages(self, conversation_id: str) -> list[dict[str, Any]]:
        return await self._execute(
            self.client()
            .table("messages")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("timestamp"),
            operation="select",
            table="messages",
        )

    # --- Search results ---

    async def save_search_results(self, results: list[SearchResult]) -> list[dict[str, Any]]:
        if not results:
            return []
        return await self._execute(
            self.client().table("search_results").insert([r.to_row() for r in results]),
            operation="insert",
            table="search_results",
        )

    async def get_search_results(self, conversation_id: str) -> list[dict[str, Any]]:
        return await self._execute(
            self.client()
            .table("search_results")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("score", desc=True),
            operation="select",
            table="search_results",
        )
