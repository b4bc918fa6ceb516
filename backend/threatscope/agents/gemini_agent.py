"""Gemini agent via google-genai."""

from collections.abc import AsyncIterator

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from threatscope.agents.base import AgentError, AnalysisAgent


class GeminiAgent(AnalysisAgent):
    name = "gemini"

    def __init__(self, api_key: str, model: str):
        self.model = model
        self.client = genai.Client(api_key=api_key)

    def _config(self, max_tokens: int) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=0.2,
            max_output_tokens=max_tokens,
        )

    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config(max_tokens),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise AgentError(f"Gemini request failed: {e}") from e
        return response.text or ""

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        try:
            chunks = await self.client.aio.models.generate_content_stream(
                model=self.model,
                contents=prompt,
                config=self._config(max_tokens),
            )
            async for chunk in chunks:
                if chunk.text:
                    yield chunk.text
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise AgentError(f"Gemini stream failed: {e}") from e
