"""Chat service - conversational access to the collected corpus."""

import asyncio
import logging
from collections.abc import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError

from threatscope.agents.base import AgentError, AnalysisAgent
from threatscope.services.entry_service import EntryService

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Local AI chat service is currently unavailable. Please try again later."


class ChatService:
    """Answers analyst questions with the most critical entries as context."""

    PROMPT = """You are a cybersecurity analyst assistant for a threat monitoring dashboard.

Most critical entries collected so far:
{context}

User message: {message}

Reply with a brief 2-3 sentence commentary. Be specific and do not invent facts."""

    def __init__(
        self,
        agent: AnalysisAgent,
        entries: EntryService,
        timeout_seconds: float = 25.0,
        context_entries: int = 5,
        max_tokens: int = 150,
    ):
        self.agent = agent
        self.entries = entries
        self.timeout_seconds = timeout_seconds
        self.context_entries = context_entries
        self.max_tokens = max_tokens

    async def build_prompt(self, message: str) -> str:
        try:
            top = await self.entries.top_entries(self.context_entries)
        except SQLAlchemyError as e:
            logger.warning("Chat context unavailable: %s", e)
            top = []
        context = "\n".join(
            f"- [{entry.category}, criticality {entry.criticality_score}] {entry.title}"
            for entry in top
        )
        return self.PROMPT.format(context=context or "- (no entries yet)", message=message)

    async def reply(self, message: str) -> str:
        """One-shot answer. Falls back to a fixed apology instead of raising."""
        try:
            prompt = await self.build_prompt(message)
            text = await asyncio.wait_for(
                self.agent.complete(prompt, max_tokens=self.max_tokens),
                timeout=self.timeout_seconds,
            )
        except (AgentError, TimeoutError) as e:
            logger.warning("Chat backend unavailable: %s", e)
            return FALLBACK_REPLY
        except Exception:
            logger.exception("Chat reply failed")
            return FALLBACK_REPLY
        return text.strip() or FALLBACK_REPLY

    async def stream(self, message: str) -> AsyncIterator[str]:
        """
        Incremental answer.

        Chunks already produced are kept if the backend fails or goes quiet
        for longer than the timeout; the stream then simply ends. If nothing
        was produced at all, the fallback apology is sent as the only chunk.
        """
        produced = False
        prompt = await self.build_prompt(message)
        chunks = self.agent.stream(prompt, max_tokens=self.max_tokens)
        try:
            while True:
                try:
                    chunk = await asyncio.wait_for(anext(chunks), timeout=self.timeout_seconds)
                except StopAsyncIteration:
                    break
                if chunk:
                    produced = True
                    yield chunk
        except (AgentError, TimeoutError) as e:
            logger.warning("Chat stream interrupted (partial output: %s): %s", produced, e)
        except Exception:
            logger.exception("Chat stream failed")
        finally:
            await chunks.aclose()

        if not produced:
            yield FALLBACK_REPLY
