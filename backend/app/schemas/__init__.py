"""
ORI Relay Schemas
=================

Pydantic schemas for inbound requests.
"""

from .requests import AssistantAction, AssistantActionRequest, ChatRequest

__all__ = [
    "ChatRequest",
    "AssistantAction",
    "AssistantActionRequest",
]
