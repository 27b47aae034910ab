"""
Chat API Endpoint.

Streams one conversational turn of the schema-building agent as Server-Sent
Events. The agent may call tools against the App's schema and records several
times before the stream ends with ``message_done``.
"""

from typing import List, Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from appweaver_ai.agent_core.schemas import ConversationTurn
from appweaver_ai.core.errors import NotFoundError
from appweaver_ai.core.logging_config import get_logger

from ...services.deps import ContainerDep, UserIdDep

logger = get_logger(__name__)
router = APIRouter()


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(min_length=1)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)


@router.post(
    "/{app_id}/chat",
    summary="Chat With The App Builder",
    description="Send the conversation so far and stream the agent's reply, tool calls and tool results.",
    response_description="text/event-stream of agent events.",
)
async def chat(app_id: str, body: ChatRequest, request: Request, container: ContainerDep, user_id: UserIdDep):
    """
    Stream the agent's response for ``app_id``.

    Event types: ``text_delta``, ``tool_use_start``, ``tool_result``, ``error``
    and a final ``message_done``. The App must belong to the caller.
    """
    app = await container.store.apps.get_for_user(app_id, user_id)
    if app is None:
        raise NotFoundError("App not found")

    messages = [ConversationTurn(role=m.role, content=m.content) for m in body.messages]
    logger.info("Chat request for app %s with %d message(s)", app_id, len(messages))

    async def event_generator():
        stream = container.orchestrator.stream(app_id=app_id, user_id=user_id, messages=messages)
        try:
            async for event in stream:
                if await request.is_disconnected():
                    logger.info("Client disconnected from chat stream for app %s", app_id)
                    break
                yield event.to_sse()
        finally:
            # closing the stream signals cancellation to the running loop
            await stream.aclose()

    return EventSourceResponse(event_generator())
