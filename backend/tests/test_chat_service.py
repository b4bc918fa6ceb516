"""Tests for one-shot and streamed chat replies."""

import asyncio
from collections.abc import AsyncIterator

from conftest import FakeAgent, html_page
from threatscope.services.chat_service import FALLBACK_REPLY, ChatService
from threatscope.services.entry_service import EntryService
from threatscope.services.source_service import SourceService


async def collect(chunks: AsyncIterator[str]) -> list[str]:
    return [chunk async for chunk in chunks]


class SilentAgent(FakeAgent):
    """Sends one chunk, then hangs."""

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        yield "Partial "
        await asyncio.sleep(10)
        yield "never sent"


class SlowAgent(FakeAgent):
    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        await asyncio.sleep(10)
        return self.reply


class TestReply:
    async def test_reply_from_agent(self, entries: EntryService) -> None:
        chat = ChatService(FakeAgent(reply="  Ransomware is trending.  "), entries)
        assert await chat.reply("What is trending?") == "Ransomware is trending."

    async def test_agent_failure_returns_fallback(self, entries: EntryService) -> None:
        chat = ChatService(FakeAgent(fail=True), entries)
        assert await chat.reply("hello") == FALLBACK_REPLY

    async def test_timeout_returns_fallback(self, entries: EntryService) -> None:
        chat = ChatService(SlowAgent(), entries, timeout_seconds=0.05)
        assert await chat.reply("hello") == FALLBACK_REPLY

    async def test_prompt_includes_most_critical_entries(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("Alpha", "http://alpha.example/")
        await entries.ingest(
            source.id,
            html_page("Critical ransomware attack on hospital", "ransomware attack with data leak"),
        )
        agent = FakeAgent()
        chat = ChatService(agent, entries)

        await chat.reply("Summarize")

        assert "Critical ransomware attack on hospital" in agent.prompts[0]
        assert "User message: Summarize" in agent.prompts[0]

    async def test_prompt_without_entries(self, entries: EntryService) -> None:
        prompt = await ChatService(FakeAgent(), entries).build_prompt("hi")
        assert "(no entries yet)" in prompt


class TestStream:
    async def test_full_stream(self, entries: EntryService) -> None:
        chat = ChatService(FakeAgent(chunks=["Hello ", "analyst", ""]), entries)
        assert await collect(chat.stream("hi")) == ["Hello ", "analyst"]

    async def test_partial_output_is_kept(self, entries: EntryService) -> None:
        chat = ChatService(FakeAgent(chunks=["One ", "two ", "three"], fail_after=2), entries)
        assert await collect(chat.stream("count")) == ["One ", "two "]

    async def test_nothing_produced_sends_fallback(self, entries: EntryService) -> None:
        chat = ChatService(FakeAgent(fail=True), entries)
        assert await collect(chat.stream("hi")) == [FALLBACK_REPLY]

    async def test_idle_backend_ends_stream(self, entries: EntryService) -> None:
        chat = ChatService(SilentAgent(), entries, timeout_seconds=0.05)
        assert await collect(chat.stream("hi")) == ["Partial "]
