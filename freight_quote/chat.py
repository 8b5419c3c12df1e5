"""
Scoped logistics chat assistant.

Wraps one OpenAI chat completion with a system prompt that restricts the
assistant to international logistics and the forwarder's services. Only the
last `history_limit` user/assistant turns are forwarded.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import Any

from openai import OpenAI

from freight_quote.config import OpenAIConfig
from freight_quote.prompts import chat_system_prompt

logger = logging.getLogger(__name__)

_ALLOWED_ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str


@dataclass(frozen=True)
class ChatReply:
    message: str
    llm_usage: dict[str, Any]


def _usage(resp: Any, model: str) -> dict[str, Any]:
    usage = getattr(resp, "usage", None)
    prompt = int(getattr(usage, "prompt_tokens", 0) or 0)
    completion = int(getattr(usage, "completion_tokens", 0) or 0)
    total = int(getattr(usage, "total_tokens", 0) or 0) or prompt + completion
    return {"model": model, "prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": total}


def build_messages(message: str, history: Sequence[ChatTurn], *, limit: int) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": chat_system_prompt()}]
    recent = list(history)[-limit:] if limit > 0 else []
    for turn in recent:
        if turn.role in _ALLOWED_ROLES and turn.content:
            messages.append({"role": turn.role, "content": turn.content})
    messages.append({"role": "user", "content": message})
    return messages


def ask_assistant(
    message: str,
    *,
    config: OpenAIConfig,
    history: Sequence[ChatTurn] = (),
    api_key: str | None = None,
    client: Any | None = None,
) -> ChatReply:
    """
    Answer one chat message.

    Args:
        message: The user's question.
        config: Model, temperature and token settings.
        history: Prior turns, oldest first.
        api_key: Overrides `config.api_key` (e.g. from a request header).
        client: Pre-built OpenAI client, mainly for tests.

    Raises:
        ValueError: if the message is blank or no API key is available.
        openai.OpenAIError: propagated from the API call.
    """
    if not message or not message.strip():
        raise ValueError("Message is required.")

    if client is None:
        key = api_key or config.api_key
        if not key:
            raise ValueError("OPENAI_API_KEY is not configured.")
        client = OpenAI(api_key=key)

    resp = client.chat.completions.create(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        messages=build_messages(message.strip(), history, limit=config.history_limit),
    )
    content = ""
    if resp.choices:
        content = resp.choices[0].message.content or ""

    usage = _usage(resp, config.model)
    logger.info("Chat reply generated (%s tokens)", usage["total_tokens"])
    return ChatReply(message=content or "No response.", llm_usage=usage)
