"""
Caller-facing helpers built on the memory manager.

PageMemory scopes reads and writes to one page or component, and
ConversationMemory wires a chat loop into memory: user messages are
stored and enriched with relevant context, assistant responses are
stored for later turns.
"""

import logging
from typing import List, Optional, Union

from .manager import MemoryManager
from .types import MemoryQuery, MemorySearchResult, MemoryType


logger = logging.getLogger(__name__)


class PageMemory:
    """
    Memory access scoped to a single page or component.

    Everything written through this helper uses the page name as its
    source and carries the page name as a tag. Reads are filtered to
    the same source.
    """

    VISIT_IMPORTANCE = 3

    def __init__(self, manager: MemoryManager, page_name: str):
        self.manager = manager
        self.page_name = page_name

    async def record_visit(self) -> None:
        """Record that the user visited this page."""
        await self.manager.add_memory(
            f"User visited page {self.page_name}",
            {
                "type": MemoryType.CONTEXT,
                "source": self.page_name,
                "tags": ["navigation", "page-visit"],
                "importance": self.VISIT_IMPORTANCE,
            },
        )

    async def add_contextual_memory(
        self,
        content: str,
        type: Union[MemoryType, str] = MemoryType.CONTEXT,
        importance: int = 5,
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Store a memory attributed to this page.

        Args:
            content: The content to remember
            type: Kind of memory
            importance: Retention priority (1-10)
            tags: Extra tags; the page name is appended
        """
        await self.manager.add_memory(
            content,
            {
                "type": type,
                "source": self.page_name,
                "importance": importance,
                "tags": list(tags or []) + [self.page_name],
            },
        )

    async def get_page_context(self, query: str) -> str:
        """Get formatted context from this page's memories."""
        return await self.manager.get_relevant_context(query, self.page_name)

    async def search_page_memory(
        self,
        query: str,
        limit: int = 5,
    ) -> List[MemorySearchResult]:
        """Search this page's memories."""
        return await self.manager.search_memory(
            self.manager.build_query(query, source=self.page_name, limit=limit)
        )


class ConversationMemory:
    """
    Chat integration for a page-scoped memory.

    Example:
        chat_memory = ConversationMemory(PageMemory(manager, "Chat"))

        prompt = await chat_memory.prepare_message(user_text)
        reply = await llm.complete(prompt)
        await chat_memory.record_response(reply)
    """

    USER_IMPORTANCE = 6
    ASSISTANT_IMPORTANCE = 5
    RESPONSE_PREVIEW_CHARS = 200

    def __init__(self, page_memory: PageMemory):
        self.page_memory = page_memory

    async def prepare_message(self, content: str) -> str:
        """
        Store a user message and return it enriched with memory context.

        The context lookup runs after the message is stored, so the
        message itself can appear in its own context block.

        Args:
            content: The user's message

        Returns:
            The message followed by the relevant memory context
        """
        await self.page_memory.add_contextual_memory(
            f"User message: {content}",
            type=MemoryType.CONVERSATION,
            importance=self.USER_IMPORTANCE,
            tags=["chat", "user-message"],
        )

        context = await self.page_memory.get_page_context(content)
        return f"{content}\n\nRelevant memory context:\n{context}"

    async def record_response(self, content: Optional[str]) -> None:
        """Store a truncated copy of an assistant response."""
        if not content:
            logger.debug("Skipping empty assistant response")
            return

        preview = content[:self.RESPONSE_PREVIEW_CHARS]
        await self.page_memory.add_contextual_memory(
            f"Assistant response: {preview}...",
            type=MemoryType.CONVERSATION,
            importance=self.ASSISTANT_IMPORTANCE,
            tags=["chat", "assistant-response"],
        )
