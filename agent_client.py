"""Thin HTTP wrapper around the external conversational agent."""

import json
import logging
import os
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

AGENT_API_URL = os.getenv("AGENT_API_URL")
AGENT_API_KEY = os.getenv("AGENT_API_KEY")
AGENT_TIMEOUT = float(os.getenv("AGENT_TIMEOUT", "60"))


class AgentError(Exception):
    """The agent could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _maybe_json(text: str) -> Any:
    """Decode ``text`` only when it holds a JSON object or array; scalars stay as the original string."""
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError):
        return text
    return decoded if isinstance(decoded, (dict, list)) else text


def call_agent(message: str, agent_id: str, timeout: Optional[float] = None) -> Dict[str, Any]:
    """
    Send one prompt to the agent and return the reply envelope.

    The envelope is ``{"success": True, "response": ..., "raw_response": str}``.
    ``response`` is whatever the agent put in its ``response`` field (or the
    whole body if it has none); a string that happens to be JSON is decoded
    once. Nothing about its shape is checked here.
    """
    if not AGENT_API_URL:
        raise AgentError("AGENT_API_URL is not configured")

    headers = {"Content-Type": "application/json"}
    if AGENT_API_KEY:
        headers["Authorization"] = f"Bearer {AGENT_API_KEY}"

    try:
        resp = requests.post(
            AGENT_API_URL,
            json={"message": message, "agent_id": agent_id},
            headers=headers,
            timeout=timeout or AGENT_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Agent request failed: %s", exc)
        raise AgentError(f"Agent request failed: {exc}") from exc

    raw = resp.text
    body = _maybe_json(raw)

    if not resp.ok:
        detail = body.get("error") if isinstance(body, dict) else None
        logger.error("Agent returned HTTP %s", resp.status_code)
        raise AgentError(detail or f"Agent returned HTTP {resp.status_code}", status_code=resp.status_code)

    if isinstance(body, dict) and body.get("success") is False:
        raise AgentError(body.get("error") or "Agent could not process the message", status_code=resp.status_code)

    response = body.get("response", body) if isinstance(body, dict) else body
    if isinstance(response, str):
        response = _maybe_json(response)

    return {"success": True, "response": response, "raw_response": raw}
