"""Entry classification strategies and criticality scoring."""

import logging
from typing import TYPE_CHECKING, Protocol

from threatscope.constants.categories import (
    ALL_CATEGORIES,
    CATEGORY_BASE_SCORES,
    CATEGORY_KEYWORDS,
    DEFAULT_BASE_SCORE,
    HIGH_PRIORITY_TERMS,
    HIGH_PRIORITY_WEIGHT,
    LOW_PRIORITY_TERMS,
    LOW_PRIORITY_WEIGHT,
    UNCATEGORIZED,
)

if TYPE_CHECKING:
    from threatscope.agents.base import AnalysisAgent

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    """Assigns a category to a piece of content."""

    async def classify(self, title: str, content: str) -> str: ...


class KeywordClassifier:
    """
    Rule-based classifier.

    Counts keyword occurrences per category over the lowercased title and
    content. The category with the most hits wins; ties go to the category
    declared first. No hits at all yields ``Uncategorized``.
    """

    def __init__(self, keywords: dict[str, list[str]] | None = None):
        self.keywords = keywords or CATEGORY_KEYWORDS

    def category_scores(self, title: str, content: str) -> dict[str, int]:
        """Keyword hit counts per category."""
        text = f"{title} {content}".lower()
        return {
            category: sum(text.count(keyword) for keyword in words)
            for category, words in self.keywords.items()
        }

    async def classify(self, title: str, content: str) -> str:
        scores = self.category_scores(title, content)
        best_category, best_score = UNCATEGORIZED, 0
        for category, score in scores.items():
            if score > best_score:
                best_category, best_score = category, score
        return best_category


class AgentClassifier:
    """Asks the language-model agent to choose a category, keyword fallback."""

    PROMPT = """You are classifying cybersecurity content.
Pick exactly one category from this list:
{categories}

Title: {title}
Content:
{content}

Answer with the category name only."""

    def __init__(self, agent: "AnalysisAgent", fallback: Classifier | None = None):
        self.agent = agent
        self.fallback = fallback or KeywordClassifier()

    async def classify(self, title: str, content: str) -> str:
        from threatscope.agents.base import AgentError

        prompt = self.PROMPT.format(
            categories="\n".join(f"- {name}" for name in ALL_CATEGORIES),
            title=title,
            content=content[:3000],
        )
        try:
            answer = (await self.agent.complete(prompt)).strip().strip(".").lower()
        except AgentError as e:
            logger.warning("Agent classification failed, using keywords: %s", e)
            return await self.fallback.classify(title, content)

        for category in ALL_CATEGORIES:
            if category.lower() == answer:
                return category
        # Models sometimes wrap the answer in a sentence
        for category in ALL_CATEGORIES:
            if category.lower() in answer:
                return category

        logger.info("Agent returned unknown category %r, using keywords", answer)
        return await self.fallback.classify(title, content)


def score_criticality(title: str, content: str, category: str) -> int:
    """
    Deterministic criticality score in [0, 100].

    Args:
        title: Entry title
        content: Cleaned entry content
        category: Category assigned by the classifier

    Returns:
        Category base score, plus a bonus per high-priority term present and
        a penalty per low-priority term present, clamped to [0, 100].
    """
    text = f"{title} {content}".lower()
    score = CATEGORY_BASE_SCORES.get(category, DEFAULT_BASE_SCORE)
    score += HIGH_PRIORITY_WEIGHT * sum(1 for term in HIGH_PRIORITY_TERMS if term in text)
    score -= LOW_PRIORITY_WEIGHT * sum(1 for term in LOW_PRIORITY_TERMS if term in text)
    return max(0, min(100, score))
