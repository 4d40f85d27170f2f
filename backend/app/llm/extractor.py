"""
Final-message text extraction.

Assistants messages carry a list of content parts; only the text parts
are returned to the caller (images and attachments are ignored).
"""

from __future__ import annotations

from typing import Any

from ..core.prompts import DEFAULT_FALLBACK_REPLY as DEFAULT_FALLBACK


def extract_text(parts: Any, fallback: str = DEFAULT_FALLBACK) -> str:
    """Join the text parts of a message, one per line."""
    if not isinstance(parts, list):
        return fallback

    texts = []
    for part in parts:
        if not isinstance(part, dict) or part.get("type") != "text":
            continue
        text = part.get("text")
        value = text.get("value") if isinstance(text, dict) else None
        if isinstance(value, str) and value:
            texts.append(value)

    joined = "\n".join(texts).strip()
    return joined or fallback


def latest_message_text(listing: Any, fallback: str = DEFAULT_FALLBACK) -> str:
    """Text of ``data[0]`` in a list-messages payload (newest first)."""
    try:
        last = listing["data"][0]
    except (KeyError, IndexError, TypeError):
        return fallback
    if not isinstance(last, dict):
        return fallback
    return extract_text(last.get("content"), fallback)
