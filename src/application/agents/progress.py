"""Progress reporting for agent turns.

The orchestrator never exposes mutable state to the presentation layer.
Instead it publishes immutable AgentProgress snapshots to a sink: on every
state change, while a search runs, and every few streamed text deltas.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    """Lifecycle state of the current (or last) turn."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    TOOL_DISPATCH = "tool_dispatch"
    FINALIZING = "finalizing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentState.DONE, AgentState.CANCELLED, AgentState.FAILED)


@dataclass(frozen=True)
class AgentProgress:
    """Snapshot of a turn as seen by the presentation layer.

    Attributes:
        running: Whether a turn is active
        state: Current lifecycle state
        output: Text produced so far (the final output once the turn ends)
        current_search_query: Query of the search being executed, if any
        iteration: Tool-dispatch iterations used so far
        used_search: Whether a search ran during the turn
        error: Failure message when the turn failed
    """

    running: bool = False
    state: AgentState = AgentState.IDLE
    output: str = ""
    current_search_query: Optional[str] = None
    iteration: int = 0
    used_search: bool = False
    error: Optional[str] = None


class AgentProgressSink(Protocol):
    """Receives progress snapshots."""

    def publish(self, progress: AgentProgress) -> None: ...


class ProgressChannel:
    """Progress sink that keeps the latest snapshot and fans out to subscribers.

    Usage:
        channel = ProgressChannel()
        queue = channel.subscribe()
        orchestrator = AgentOrchestrator(..., progress_sink=channel)
        progress = await queue.get()
    """

    def __init__(self) -> None:
        self._latest = AgentProgress()
        self._subscribers: list[asyncio.Queue[AgentProgress]] = []

    @property
    def latest(self) -> AgentProgress:
        return self._latest

    def publish(self, progress: AgentProgress) -> None:
        self._latest = progress
        for queue in self._subscribers:
            queue.put_nowait(progress)

    def subscribe(self) -> "asyncio.Queue[AgentProgress]":
        """Register a new subscriber queue receiving every future snapshot."""
        queue: asyncio.Queue[AgentProgress] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: "asyncio.Queue[AgentProgress]") -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)
