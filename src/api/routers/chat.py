from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from ..deps import ChatRequest, ChatResponse
from ...services.assistant import chat as run_chat

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest):
    """
    Ask the invoice assistant a question.

    Send the history from the previous response to continue a conversation.
    """
    logger.info("Chat request received", message_chars=len(req.message), history_length=len(req.history))
    result = await run_in_threadpool(run_chat, req.message, req.history)
    return ChatResponse(reply=result.reply, history=result.history, tool_calls=result.tool_calls)
