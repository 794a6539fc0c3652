"""
chat.py
-------
Conversation state for the chat assistant. Each send flattens the whole log
into one transcript and posts it to the local ``/api/agent`` proxy route.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from typing import Callable, List, Literal, Optional

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CHAT_API_URL = os.getenv("CHAT_API_URL", "http://127.0.0.1:8000/api/agent")
AGENT_ID = os.getenv("CHAT_AGENT_ID", "69397792e6ce9b78c38a0594")
CHAT_TIMEOUT = float(os.getenv("AGENT_TIMEOUT", "60"))

FALLBACK_REPLY = "I apologize, but I could not generate a response."

SUGGESTED_PROMPTS = [
    "Where did most of my money go this month?",
    "How can I build an emergency fund?",
    "What is the 50/30/20 budgeting rule?",
    "Give me tips to cut my food spending",
]


class ChatError(Exception):
    """A chat turn did not round-trip; the message is shown in the error banner."""


class Message(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


def build_transcript(history: List[Message], text: str) -> str:
    lines = [f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in history]
    if not lines:
        return text
    return "\n".join(lines + [f"User: {text}"])


def extract_reply(data: dict) -> str:
    """First usable text among the shapes the proxy is known to return."""
    if not isinstance(data, dict):
        return FALLBACK_REPLY
    response = data.get("response")
    if isinstance(response, dict):
        for key in ("result", "response", "message"):
            value = response.get(key)
            if value is not None:
                return value if isinstance(value, str) else str(value)
    if isinstance(response, str):
        return response
    raw = data.get("raw_response")
    if raw is not None:
        return raw if isinstance(raw, str) else str(raw)
    return FALLBACK_REPLY


def post_to_proxy(message: str, agent_id: str = AGENT_ID, url: Optional[str] = None) -> dict:
    try:
        resp = requests.post(
            url or CHAT_API_URL,
            json={"message": message, "agent_id": agent_id},
            timeout=CHAT_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise ChatError(str(exc)) from exc

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if not resp.ok:
        raise ChatError(data.get("error") or "Failed to get response")
    if not data.get("success"):
        raise ChatError(data.get("error") or "Failed to process message")
    return data


class ChatSession:
    """
    Append-only message log plus the loading/error flags of the chat tab.

    ``transport`` takes the flattened transcript and returns the proxy's JSON
    body, raising ``ChatError`` on failure.
    """

    def __init__(
        self,
        transport: Callable[[str], dict] = post_to_proxy,
        clock: Callable[[], float] = time.time,
    ):
        self.transport = transport
        self.clock = clock
        self.messages: List[Message] = []
        self.input = ""
        self.loading = False
        self.error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.messages

    def send(self, text: Optional[str] = None) -> Optional[Message]:
        text = (self.input if text is None else text).strip()
        if not text or self.loading:
            return None

        self.error = None
        now_ms = int(self.clock() * 1000)
        history = self.messages
        self.messages = [*history, Message(id=str(now_ms), role="user", content=text)]
        self.input = ""
        self.loading = True

        try:
            data = self.transport(build_transcript(history, text))
            reply = Message(id=str(now_ms + 1), role="assistant", content=extract_reply(data))
        except Exception as exc:
            if isinstance(exc, ChatError):
                logger.warning("Chat turn failed: %s", exc)
            else:
                logger.exception("Chat turn failed unexpectedly")
            self.error = str(exc) or "An unexpected error occurred"
            # Only turns that round-tripped stay in the log
            self.messages = self.messages[:-1]
            return None
        finally:
            self.loading = False

        self.messages = [*self.messages, reply]
        return reply

    def new_chat(self) -> None:
        self.messages = []
        self.input = ""
        self.error = None

    def dismiss_error(self) -> None:
        self.error = None
