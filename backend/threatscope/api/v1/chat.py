"""Chat endpoint - plain replies or Server-Sent Events."""

from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.chat import ChatRequest, ChatResponse

router = APIRouter()


def sse_event(data: str) -> str:
    """Frame one SSE event; embedded newlines become extra data lines."""
    return "".join(f"data: {line}\n" for line in data.split("\n")) + "\n"


@router.post("", response_model=None)
async def chat(
    request: ChatRequest,
    container: ServiceContainer = Depends(get_container),
) -> ChatResponse | StreamingResponse:
    """
    Ask the analyst assistant a question.

    With ``stream`` set, returns SSE ``data: <chunk>`` events terminated by
    ``data: [DONE]``.
    """
    if not request.stream:
        return ChatResponse(reply=await container.chat.reply(request.message))

    async def event_generator() -> AsyncGenerator[str, None]:
        async for chunk in container.chat.stream(request.message):
            # SSE format: data: <content>\n\n
            yield sse_event(chunk)
        yield sse_event("[DONE]")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
