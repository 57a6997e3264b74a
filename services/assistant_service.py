"""
Spoken study help: short answers that are safe to read aloud while driving.
"""
import json
from typing import List, Optional

from core.exceptions import AIResponseParseException
from core.logging import get_logger
from schemas.assistant import AskResponse, ChatMessage, SearchResult
from services.llm_client import LLMClient
from services.web_search import WebSearchClient

logger = get_logger("assistant")

SYSTEM_PROMPT = """You are a helpful study assistant helping a driver learn while they commute. Keep your answers:
- CONCISE: 2-3 sentences maximum
- SAFE: Under 100 words so it can be read aloud quickly
- CLEAR: Easy to understand without visual aids
- FOCUSED: Directly answer the question"""

SEARCH_TOOL = {
    "type": "function",
    "function": {
        "name": "search_web",
        "description": "Search the web for current information or facts you don't know",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query"},
            },
            "required": ["query"],
        },
    },
}


def build_system_prompt(current_topic: Optional[str] = None) -> str:
    if current_topic:
        return f"{SYSTEM_PROMPT}\n\nCurrent topic: {current_topic}"
    return SYSTEM_PROMPT


def format_search_results(query: str, results: List[SearchResult]) -> str:
    """Search results as the follow-up message the model answers from."""
    listing = "\n\n".join(f"{r.title}\n{r.snippet}" for r in results) or "No results found."
    return (
        f'Here are the search results for "{query}":\n\n{listing}\n\n'
        "Now answer the original question using this information. Keep it concise (2-3 sentences)."
    )


class AssistantService:
    def __init__(self, llm: LLMClient, search: Optional[WebSearchClient] = None):
        self.llm = llm
        self.search = search

    async def ask(
        self,
        question: str,
        current_topic: Optional[str] = None,
        conversation_history: Optional[List[ChatMessage]] = None,
    ) -> AskResponse:
        """
        Answer one question, continuing the given conversation.

        When web search is configured the model may call ``search_web`` once;
        the results are handed back to it and returned with the answer.

        Raises:
            AIResponseParseException: If the model's search call has unreadable arguments
        """
        history = conversation_history or []
        messages = [{"role": "system", "content": build_system_prompt(current_topic)}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": question})

        can_search = self.search is not None and self.search.enabled
        logger.info("Assistant question received", history_length=len(history),
                    has_topic=bool(current_topic), search_enabled=can_search)

        max_tokens = self.llm.config.help_max_tokens
        message = await self.llm.complete_message(
            messages, max_tokens=max_tokens, tools=[SEARCH_TOOL] if can_search else None
        )

        call = next(
            (c for c in getattr(message, "tool_calls", None) or [] if c.function.name == "search_web"),
            None,
        )
        if not can_search or call is None:
            return AskResponse(answer=message.content or "")

        try:
            query = json.loads(call.function.arguments)["query"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unreadable search_web arguments", arguments=call.function.arguments)
            raise AIResponseParseException(f"Invalid search_web arguments: {e}",
                                           raw_content=call.function.arguments)

        logger.info("Assistant requested a web search", query_length=len(query))
        results = await self.search.search(query)

        follow_up = messages + [
            {"role": "assistant", "content": message.content or ""},
            {"role": "user", "content": format_search_results(query, results)},
        ]

        answer = await self.llm.complete(follow_up, max_tokens=max_tokens)
        return AskResponse(answer=answer, search_results=results)
