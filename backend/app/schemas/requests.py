"""
Request Schemas
===============

Inbound bodies for the chat and assistant endpoints.
Bodies are parsed leniently: a broken body becomes an empty message.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, field_validator


def _as_text(v: Any) -> str:
    # Falsy values (null, false, 0, "") carry no message
    if not v:
        return ""
    if isinstance(v, str):
        return v
    if v is True:
        return "true"
    if isinstance(v, (dict, list)):
        # Objects have no useful text form
        return ""
    return str(v)


class ChatRequest(BaseModel):
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, v: Any) -> str:
        return _as_text(v)

    @classmethod
    def from_body(cls, body: Any) -> "ChatRequest":
        """Build from an already-decoded JSON body of any shape."""
        if not isinstance(body, dict):
            return cls()
        return cls(message=body.get("message"))


AssistantAction = Literal[
    "create_thread",
    "add_message",
    "create_run",
    "get_run",
    "list_messages",
]


class AssistantActionRequest(BaseModel):
    """Body of the multi-action proxy (ids come back from earlier calls)."""

    action: Optional[str] = None
    message: str = ""
    thread_id: Optional[str] = None
    run_id: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("action", "thread_id", "run_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        text = _as_text(v).strip()
        return text or None

    @classmethod
    def from_body(cls, body: Any) -> "AssistantActionRequest":
        if not isinstance(body, dict):
            return cls()
        return cls(
            action=body.get("action"),
            message=body.get("message"),
            thread_id=body.get("thread_id"),
            run_id=body.get("run_id"),
        )
