"""Reassembles streamed tool-call fragments into complete tool calls."""

import logging
from dataclasses import dataclass
from typing import Optional

from domain.models import ToolCall, ToolCallDelta

logger = logging.getLogger(__name__)


@dataclass
class _PartialToolCall:
    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


class ToolCallAccumulator:
    """Merges ToolCallDeltas keyed by stream index.

    Identity fields (id, type, name) are overwritten by later fragments while
    argument fragments are concatenated verbatim in arrival order, so the
    result does not depend on how the backend split the stream.
    """

    def __init__(self, id_prefix: str = "call") -> None:
        """Initialize the accumulator.

        Args:
            id_prefix: Prefix for the deterministic id given to calls whose id
                never arrived
        """
        self._id_prefix = id_prefix
        self._partials: dict[int, _PartialToolCall] = {}

    @property
    def has_partials(self) -> bool:
        return bool(self._partials)

    def append(self, delta: ToolCallDelta) -> None:
        """Merge one fragment into the partial call at its index (0 when absent)."""
        index = delta.index if delta.index is not None else 0
        partial = self._partials.get(index)
        if partial is None:
            partial = self._partials[index] = _PartialToolCall()

        if delta.id:
            partial.id = delta.id
        if delta.type:
            partial.type = delta.type
        if delta.name:
            partial.name = delta.name
        if delta.arguments:
            partial.arguments += delta.arguments

    def build_tool_calls(self) -> list[ToolCall]:
        """Materialize complete tool calls ordered by ascending index.

        Partials whose name never arrived are dropped.
        """
        tool_calls = []
        for index in sorted(self._partials):
            partial = self._partials[index]
            if not partial.name:
                logger.warning(f"Dropping tool call at index {index}: no name received")
                continue
            tool_calls.append(
                ToolCall(
                    id=partial.id or f"{self._id_prefix}_{index}",
                    name=partial.name,
                    arguments_json=partial.arguments,
                    type=partial.type or "function",
                )
            )
        return tool_calls
