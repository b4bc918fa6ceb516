"""Common interface for language-model agents used for analysis and chat."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class AgentError(Exception):
    """The model backend failed or returned nothing usable."""


class AnalysisAgent(ABC):
    """
    Black-box text model.

    Subclasses implement ``complete`` (one-shot reply) and ``stream``
    (incremental text chunks). ``analyze`` builds the entry annotation
    prompt on top of ``complete``.
    """

    name = "base"
    enabled = True

    ANALYSIS_PROMPT = """You are a cybersecurity threat analyst reviewing content collected from monitored sources.

Title: {title}
Category: {category}
Criticality score: {criticality_score}/100

Content:
{content}

Write a short analysis (3-5 sentences): what the content is about, who or what is at risk,
and whether the assigned category and criticality look right. Plain text only."""

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        """One-shot reply to ``prompt``."""

    @abstractmethod
    def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        """Reply to ``prompt`` as incremental text chunks."""

    async def analyze(
        self, title: str, content: str, category: str, criticality_score: int
    ) -> str:
        """Produce the free-text analysis stored on an entry."""
        prompt = self.ANALYSIS_PROMPT.format(
            title=title,
            category=category,
            criticality_score=criticality_score,
            content=content[:4000],
        )
        analysis = (await self.complete(prompt, max_tokens=400)).strip()
        if not analysis:
            raise AgentError(f"{self.name} returned an empty analysis")
        return analysis

    async def close(self) -> None:
        """Release network resources."""


class DisabledAgent(AnalysisAgent):
    """Stand-in used when no model provider is configured."""

    name = "disabled"
    enabled = False

    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        raise AgentError("no language model provider configured")

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        raise AgentError("no language model provider configured")
        yield ""  # makes this an async generator
