"""Decoder for the chat-completion line protocol.

Streamed responses arrive as server-sent event lines (``data: {...}``)
terminated by ``data: [DONE]``. Some backends ignore ``stream: true`` and
answer with one JSON body instead; those lines are kept in a raw buffer and
decoded by fallback_events() once the stream ends without usable output.
"""

import json
import logging
from typing import Any, Optional

from domain.models import StreamDone, StreamEvent, TextDelta, ToolCallDelta

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamProtocolParser:
    """Turns raw response lines into StreamEvents.

    One parser instance is used per response. It is a pure transducer apart
    from the raw fallback buffer.
    """

    def __init__(self) -> None:
        self._raw_lines: list[str] = []

    @property
    def raw_buffer(self) -> str:
        """Concatenation of every line the structured path could not use."""
        return "".join(self._raw_lines)

    def feed(self, line: str) -> list[StreamEvent]:
        """Decode one line.

        Args:
            line: A response line, with or without its terminator

        Returns:
            The events carried by the line, in order (possibly empty)
        """
        stripped = line.strip()
        if not stripped:
            return []

        if not stripped.startswith(DATA_PREFIX):
            self._raw_lines.append(stripped)
            return []

        payload = stripped[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            return [StreamDone()]

        try:
            chunk = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse stream chunk: {payload[:200]}")
            self._raw_lines.append(stripped)
            return []

        events = self._events_from_chunk(chunk)
        if events is None:
            logger.warning(f"Unexpected stream chunk shape: {payload[:200]}")
            self._raw_lines.append(stripped)
            return []
        return events

    def fallback_events(self) -> list[StreamEvent]:
        """Decode the raw buffer as a non-streaming chat-completion body.

        Returns:
            A TextDelta for each choice with content and one complete
            ToolCallDelta per tool call; empty when the buffer is not a
            chat-completion object
        """
        raw = self.raw_buffer
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Raw response buffer is not JSON ({len(raw)} chars)")
            return []

        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            return []

        events: list[StreamEvent] = []
        next_index = 0
        for choice in data["choices"]:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message")
            if not isinstance(message, dict):
                continue

            text = _flatten_content(message.get("content")).strip()
            if not text:
                reasoning = message.get("reasoning_content")
                text = reasoning.strip() if isinstance(reasoning, str) else ""
            if text:
                events.append(TextDelta(text=text))

            for tool_call in message.get("tool_calls") or []:
                if not isinstance(tool_call, dict):
                    continue
                events.append(_tool_call_delta_from_wire(tool_call, index=next_index))
                next_index += 1

        if events:
            logger.info(f"Decoded non-streaming response body into {len(events)} events")
        return events

    def _events_from_chunk(self, chunk: Any) -> Optional[list[StreamEvent]]:
        """Extract events from a decoded chunk, or None if it is not a chunk object."""
        if not isinstance(chunk, dict):
            return None

        choices = chunk.get("choices") or []
        if not isinstance(choices, list):
            return None

        events: list[StreamEvent] = []
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta")
            if not isinstance(delta, dict):
                continue

            content = delta.get("content")
            if isinstance(content, str) and content:
                events.append(TextDelta(text=content))

            for tool_call in delta.get("tool_calls") or []:
                if isinstance(tool_call, dict):
                    events.append(_tool_call_delta_from_wire(tool_call))

        return events


def _tool_call_delta_from_wire(tool_call: dict[str, Any], index: Optional[int] = None) -> ToolCallDelta:
    function = tool_call.get("function")
    if not isinstance(function, dict):
        function = {}

    raw_index = tool_call.get("index")
    if index is None and isinstance(raw_index, int):
        index = raw_index

    return ToolCallDelta(
        index=index,
        id=_optional_str(tool_call.get("id")),
        type=_optional_str(tool_call.get("type")),
        name=_optional_str(function.get("name")),
        arguments=_coerce_arguments(function.get("arguments")),
    )


def _coerce_arguments(arguments: Any) -> Optional[str]:
    # Some backends send the arguments as a JSON object instead of text
    if arguments is None:
        return None
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments)


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _flatten_content(content: Any) -> str:
    """Flatten string or content-part array message content into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""
