"""Ollama agent - local models over the Ollama HTTP API."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from threatscope.agents.base import AgentError, AnalysisAgent

logger = logging.getLogger(__name__)


class OllamaAgent(AnalysisAgent):
    """Talks to ``POST {base_url}/api/generate``; streaming replies are NDJSON."""

    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=5.0),
            transport=transport,
        )

    def _payload(self, prompt: str, max_tokens: int, stream: bool) -> dict:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": stream,
            "options": {"num_predict": max_tokens},
        }

    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        try:
            response = await self.http.post(
                "/api/generate", json=self._payload(prompt, max_tokens, stream=False)
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AgentError(f"Ollama request failed: {e}") from e

        if data.get("error"):
            raise AgentError(f"Ollama error: {data['error']}")
        return data.get("response", "")

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        try:
            async with self.http.stream(
                "POST", "/api/generate", json=self._payload(prompt, max_tokens, stream=True)
            ) as response:
                if response.status_code != 200:
                    raise AgentError(f"Ollama returned status {response.status_code}")
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed Ollama chunk: %r", line[:200])
                        continue
                    if chunk.get("error"):
                        raise AgentError(f"Ollama error: {chunk['error']}")
                    if text := chunk.get("response"):
                        yield text
                    if chunk.get("done"):
                        return
        except httpx.HTTPError as e:
            raise AgentError(f"Ollama stream failed: {e}") from e

    async def close(self) -> None:
        await self.http.aclose()
