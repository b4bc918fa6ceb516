"""Claude agent via the Anthropic API."""

from collections.abc import AsyncIterator

import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from threatscope.agents.base import AgentError, AnalysisAgent


class AnthropicAgent(AnalysisAgent):
    name = "anthropic"

    def __init__(self, api_key: str, model: str):
        self.model = model
        self.client = anthropic.AsyncAnthropic(api_key=api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((anthropic.APIConnectionError, anthropic.RateLimitError)),
        reraise=True,
    )
    async def _call_claude(self, prompt: str, max_tokens: int) -> str:
        """Call Claude API with retry logic."""
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in response.content if block.type == "text")

    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        try:
            return await self._call_claude(prompt, max_tokens)
        except anthropic.APIError as e:
            raise AgentError(f"Claude request failed: {e}") from e

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        try:
            async with self.client.messages.stream(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.APIError as e:
            raise AgentError(f"Claude stream failed: {e}") from e

    async def close(self) -> None:
        await self.client.close()
