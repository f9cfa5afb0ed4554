"""
Chat assistant over the parsed invoice data.

Uses OpenAI chat completions with function tools; each tool call the model
makes is answered from the invoice store (see assistant_tools). The caller
keeps the conversation history and sends it back with each message.
"""

from loguru import logger
from openai import OpenAIError
from pydantic import BaseModel

from .assistant_tools import TOOL_DEFINITIONS, run_tool
from .openai_client import get_openai_client
from .prompts import ASSISTANT_SYSTEM_PROMPT
from .storage import get_invoice_store
from ..core.config import settings
from ..core.errors import AssistantError, AssistantUnavailableError


class ChatResult(BaseModel):
    reply: str
    history: list[dict]
    tool_calls: list[str] = []


def _clean_history(history: list[dict] | None) -> list[dict]:
    # The system prompt is always ours
    return [m for m in (history or []) if m.get("role") in ("user", "assistant", "tool")]


def chat(message: str, history: list[dict] | None = None) -> ChatResult:
    if not settings.openai_configured:
        raise AssistantUnavailableError("Chat requires OPENAI_API_KEY")

    client = get_openai_client()
    store = get_invoice_store()
    messages = [
        {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT},
        *_clean_history(history),
        {"role": "user", "content": message},
    ]
    tools_called: list[str] = []
    max_rounds = max(settings.chat_max_tool_rounds, 0)

    for round_number in range(max_rounds + 1):
        request = {"model": settings.openai_chat_model, "messages": messages}
        # Last round: no tools, so the model has to answer
        if round_number < max_rounds:
            request["tools"] = TOOL_DEFINITIONS

        try:
            response = client.chat.completions.create(**request)
        except OpenAIError as e:
            logger.error(f"Assistant request failed: {str(e)}")
            raise AssistantError(f"Assistant request failed: {str(e)}") from e

        if not response.choices:
            raise AssistantError("Assistant request failed: model returned no choices")

        reply = response.choices[0].message
        if not reply.tool_calls:
            messages.append({"role": "assistant", "content": reply.content or ""})
            break

        messages.append({
            "role": "assistant",
            "content": reply.content,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.function.name, "arguments": call.function.arguments},
                }
                for call in reply.tool_calls
            ],
        })
        for call in reply.tool_calls:
            tools_called.append(call.function.name)
            messages.append({
                "role": "tool",
                "tool_call_id": call.id,
                "content": run_tool(call.function.name, call.function.arguments, store),
            })

    logger.info("Assistant replied", rounds=round_number + 1, tool_calls=tools_called)
    return ChatResult(
        reply=messages[-1].get("content") or "",
        history=messages[1:],
        tool_calls=tools_called,
    )
