"""Agents package - language-model backends for entry analysis and chat."""

from threatscope.agents.base import AgentError, AnalysisAgent, DisabledAgent
from threatscope.config import Settings, get_settings


def get_analysis_agent(settings: Settings | None = None) -> AnalysisAgent:
    """Get analysis agent based on configured LLM provider."""
    settings = settings or get_settings()

    if settings.llm_provider == "anthropic":
        from threatscope.agents.anthropic_agent import AnthropicAgent

        return AnthropicAgent(settings.anthropic_api_key, settings.anthropic_model)
    if settings.llm_provider == "gemini":
        from threatscope.agents.gemini_agent import GeminiAgent

        return GeminiAgent(settings.gemini_api_key, settings.gemini_model)
    if settings.llm_provider == "ollama":
        from threatscope.agents.ollama_agent import OllamaAgent

        return OllamaAgent(settings.ollama_base_url, settings.ollama_model)
    return DisabledAgent()


__all__ = [
    "AgentError",
    "AnalysisAgent",
    "DisabledAgent",
    "get_analysis_agent",
]
