"""Agent orchestrator: the bounded tool-calling loop of one conversation.

A turn runs as follows:
1. Build the message log from the system prompt and the conversation history
2. Stream a chat completion, decoding lines into text and tool-call fragments
3. Decide what happens next:
   - finalize_answer was called: its answer is the output
   - tool calls within budget: dispatch them, append results, request again
   - tool calls over budget: one last request without tools, answer now
   - plain text: that response's text is the output
4. Publish progress snapshots throughout and return a TurnResult

Cancellation is cooperative: the flag set by cancel() is checked once per
streamed line and before every new request.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Optional, Sequence

from opentelemetry import trace

from application.agents.agent_config import AgentConfig
from application.agents.inference_backend import ChatCompletionRequest, InferenceBackend, InferenceBackendError
from application.agents.progress import AgentProgress, AgentProgressSink, AgentState
from application.agents.stream_protocol_parser import StreamProtocolParser
from application.agents.tool_call_accumulator import ToolCallAccumulator
from application.services.tool_executor import FinalizeAnswerToolCall, ResolvedToolCall, SearchToolCall, ToolExecutor
from application.services.tool_manifest import build_tool_manifest
from domain.models import AgentBudget, Message, MessageLog, StreamEvent, StreamDone, TextDelta, ToolCall, ToolCallDelta
from observability import agent_budget_extensions, agent_turn_duration, agent_turns_completed, agent_turns_started, llm_tool_calls

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AgentError(Exception):
    """Base error for agent orchestration failures."""


class TurnAlreadyActiveError(AgentError):
    """Raised when a turn is started while another turn is still running."""


@dataclass(frozen=True)
class ToolEnablement:
    """Per-turn tool switches.

    Attributes:
        search_enabled: Offer the search and finalize tools to the model
        research_mode: Add the research system prompt (only with search)
    """

    search_enabled: bool = False
    research_mode: bool = False


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one turn.

    Attributes:
        output: Final output, or the partial output of a cancelled or failed turn
        state: Terminal state (done, cancelled or failed)
        iterations: Tool-dispatch iterations used
        budget_extended: Whether the one-time budget extension was granted
        used_search: Whether a search ran during the turn
        error: Failure message of a failed turn
        status_code: HTTP status code of a failed request, if any
        messages: The turn's message log
    """

    output: str
    state: AgentState
    iterations: int = 0
    budget_extended: bool = False
    used_search: bool = False
    error: Optional[str] = None
    status_code: Optional[int] = None
    messages: tuple[Message, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.state == AgentState.DONE


@dataclass
class _Turn:
    log: MessageLog
    budget: AgentBudget
    tools_enabled: bool
    output_parts: list[str] = field(default_factory=list)
    final_output: Optional[str] = None
    used_search: bool = False
    executed_queries: set[str] = field(default_factory=set)
    current_search_query: Optional[str] = None
    request_count: int = 0
    deltas_since_publish: int = 0
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def output(self) -> str:
        if self.final_output is not None:
            return self.final_output
        return "".join(self.output_parts)


@dataclass
class _ResponseOutcome:
    text: str
    tool_calls: list[ToolCall]
    cancelled: bool = False


def _normalize_query(query: str) -> str:
    return " ".join(query.lower().split())


class AgentOrchestrator:
    """Runs agent turns for one conversation, one turn at a time.

    Example Usage:
        orchestrator = AgentOrchestrator(backend, ToolExecutor(search_client), AgentConfig(model="gpt-4o-mini"))
        answer = await orchestrator.generate(
            [Message.user("What changed in Python 3.13?")],
            system_prompt="You are concise.",
            tool_flags=ToolEnablement(search_enabled=True),
        )
    """

    def __init__(
        self,
        backend: InferenceBackend,
        tool_executor: ToolExecutor,
        config: AgentConfig,
        progress_sink: Optional[AgentProgressSink] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            backend: Chat-completion backend
            tool_executor: Dispatcher for the model's tool calls
            config: Generation parameters and loop limits
            progress_sink: Optional receiver of progress snapshots
        """
        self._backend = backend
        self._tool_executor = tool_executor
        self._config = config
        self._progress_sink = progress_sink
        self._state = AgentState.IDLE
        self._running = False
        self._cancel_requested = False
        self._turn: Optional[_Turn] = None
        self._turn_count = 0
        self._progress = AgentProgress()

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def progress(self) -> AgentProgress:
        """Latest published progress snapshot."""
        return self._progress

    def cancel(self) -> None:
        """Request cancellation of the active turn."""
        if not self._running:
            logger.debug("Cancel requested but no turn is running")
            return
        self._cancel_requested = True
        logger.info("Cancellation requested for the active turn")

    async def generate(
        self,
        message_history: Sequence[Message],
        system_prompt: str = "",
        tool_flags: Optional[ToolEnablement] = None,
    ) -> str:
        """Run a turn and return its final output.

        Args:
            message_history: Conversation so far, ending with the user message
            system_prompt: Optional system prompt (blank is ignored)
            tool_flags: Tool switches for this turn

        Returns:
            The final output; for a failed turn without partial output,
            "Failed: <error>"

        Raises:
            TurnAlreadyActiveError: If a turn is already running
        """
        result = await self.run_turn(message_history, system_prompt=system_prompt, tool_flags=tool_flags)
        if result.state == AgentState.FAILED and not result.output:
            return f"Failed: {result.error}"
        return result.output

    async def run_turn(
        self,
        message_history: Sequence[Message],
        system_prompt: str = "",
        tool_flags: Optional[ToolEnablement] = None,
    ) -> TurnResult:
        """Run one turn of the agent loop.

        Args:
            message_history: Conversation so far, ending with the user message
            system_prompt: Optional system prompt (blank is ignored)
            tool_flags: Tool switches for this turn

        Returns:
            The turn outcome, including partial output when cancelled or failed

        Raises:
            TurnAlreadyActiveError: If a turn is already running
        """
        if self._running:
            raise TurnAlreadyActiveError("A turn is already running for this conversation")

        flags = tool_flags or ToolEnablement()
        tools_enabled = flags.search_enabled and self._tool_executor.search_available
        if flags.search_enabled and not tools_enabled:
            logger.warning("Search requested but no search client is configured; tools are disabled for this turn")

        turn = _Turn(
            log=MessageLog(self._build_initial_messages(message_history, system_prompt, flags, tools_enabled)),
            budget=AgentBudget(base_limit=self._config.base_iteration_limit, hard_limit=self._config.hard_iteration_limit),
            tools_enabled=tools_enabled,
        )
        self._running = True
        self._cancel_requested = False
        self._turn_count += 1
        self._turn = turn
        start_time = time.time()
        agent_turns_started.add(1, {"model": self._config.model, "tools_enabled": str(tools_enabled)})
        logger.info(f"Turn {self._turn_count} started: model={self._config.model}, messages={len(turn.log)}, tools_enabled={tools_enabled}")

        with tracer.start_as_current_span("agent.turn") as span:
            span.set_attribute("agent.model", self._config.model)
            span.set_attribute("agent.tools_enabled", tools_enabled)

            try:
                await self._run_loop(turn)
            except InferenceBackendError as e:
                span.set_attribute("error", True)
                turn.error = e.message
                turn.status_code = e.status_code
                logger.error(f"Turn {self._turn_count} failed: {e.message}")
                self._set_state(AgentState.FAILED)
            except asyncio.CancelledError:
                self._set_state(AgentState.CANCELLED)
                raise
            except Exception as e:
                span.set_attribute("error", True)
                turn.error = str(e)
                logger.error(f"Turn {self._turn_count} failed unexpectedly: {e}", exc_info=True)
                self._set_state(AgentState.FAILED)
                raise
            finally:
                self._running = False
                turn.current_search_query = None
                duration_ms = (time.time() - start_time) * 1000
                span.set_attribute("agent.state", self._state.value)
                span.set_attribute("agent.iterations", turn.budget.used_iterations)
                agent_turns_completed.add(1, {"model": self._config.model, "state": self._state.value})
                agent_turn_duration.record(duration_ms, {"model": self._config.model})
                self._publish(turn)

        logger.info(f"Turn {self._turn_count} ended: state={self._state.value}, iterations={turn.budget.used_iterations}, output={len(turn.output)} chars")
        return TurnResult(
            output=turn.output,
            state=self._state,
            iterations=turn.budget.used_iterations,
            budget_extended=turn.budget.extended,
            used_search=turn.used_search,
            error=turn.error,
            status_code=turn.status_code,
            messages=turn.log.snapshot(),
        )

    async def aclose(self) -> None:
        """Close the backend and the tool executor."""
        await self._backend.close()
        await self._tool_executor.close()

    # =========================================================================
    # Loop
    # =========================================================================

    async def _run_loop(self, turn: _Turn) -> None:
        while True:
            if self._cancel_requested:
                self._set_state(AgentState.CANCELLED)
                return

            outcome = await self._request_response(turn, tools_enabled=turn.tools_enabled)
            if outcome.cancelled:
                self._set_state(AgentState.CANCELLED)
                return

            resolved = [self._tool_executor.resolve(call) for call in outcome.tool_calls]

            finalize = next((item for item in resolved if isinstance(item, FinalizeAnswerToolCall) and item.is_accepted), None)
            if finalize is not None:
                await self._finalize(turn, outcome, resolved, finalize)
                return

            if not resolved:
                turn.final_output = outcome.text
                self._set_state(AgentState.FINALIZING)
                self._set_state(AgentState.DONE)
                return

            if not turn.budget.has_remaining() and self._has_new_search(turn, resolved) and turn.budget.try_extend():
                agent_budget_extensions.add(1, {"model": self._config.model})
                logger.warning(f"Iteration budget extended from {turn.budget.base_limit} to {turn.budget.hard_limit}: model is still issuing new searches")

            if turn.budget.has_remaining():
                await self._dispatch(turn, outcome, resolved)
                turn.budget.record_iteration()
                continue

            await self._answer_without_tools(turn)
            return

    async def _request_response(self, turn: _Turn, tools_enabled: bool, track_state: bool = True) -> _ResponseOutcome:
        """Send one request and consume its response."""
        if track_state:
            self._set_state(AgentState.REQUESTING)

        request = ChatCompletionRequest(
            model=self._config.model,
            messages=list(turn.log),
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            stream=True,
            tools=build_tool_manifest() if tools_enabled else None,
            tool_choice="auto" if tools_enabled else None,
        )
        turn.request_count += 1
        logger.debug(f"Request {turn.request_count}: messages={len(request.messages)}, tools={len(request.tools or [])}")

        parser = StreamProtocolParser()
        accumulator = ToolCallAccumulator(id_prefix=f"call_{self._turn_count}_{turn.request_count}")
        text_parts: list[str] = []
        cancelled = False

        async with aclosing(self._backend.stream_chat(request)) as lines:
            async for line in lines:
                if self._cancel_requested:
                    cancelled = True
                    logger.info(f"Turn cancelled while streaming request {turn.request_count}")
                    break
                if track_state and self._state == AgentState.REQUESTING:
                    self._set_state(AgentState.STREAMING)
                if self._apply_events(turn, parser.feed(line), text_parts, accumulator):
                    break

        if not cancelled and not text_parts and not accumulator.has_partials:
            self._apply_events(turn, parser.fallback_events(), text_parts, accumulator)

        self._publish(turn)

        tool_calls: list[ToolCall] = []
        if tools_enabled:
            tool_calls = accumulator.build_tool_calls()
            for call in tool_calls:
                llm_tool_calls.add(1, {"model": self._config.model, "tool_name": call.name})
        elif accumulator.has_partials:
            logger.warning("Ignoring tool calls in a response to a request without tools")

        return _ResponseOutcome(text="".join(text_parts), tool_calls=tool_calls, cancelled=cancelled)

    def _apply_events(self, turn: _Turn, events: list[StreamEvent], text_parts: list[str], accumulator: ToolCallAccumulator) -> bool:
        """Route decoded events. Returns True once the end-of-stream sentinel is seen."""
        for event in events:
            if isinstance(event, TextDelta):
                text_parts.append(event.text)
                turn.output_parts.append(event.text)
                turn.deltas_since_publish += 1
                if turn.deltas_since_publish >= self._config.progress_every_n_deltas:
                    self._publish(turn)
            elif isinstance(event, ToolCallDelta):
                accumulator.append(event)
            elif isinstance(event, StreamDone):
                return True
        return False

    async def _dispatch(self, turn: _Turn, outcome: _ResponseOutcome, resolved: list[ResolvedToolCall]) -> None:
        self._set_state(AgentState.TOOL_DISPATCH)
        logger.info(f"Dispatching {len(resolved)} tool calls (iteration {turn.budget.used_iterations + 1}/{turn.budget.allowed_limit})")
        turn.log.append(Message.assistant(outcome.text or None, tool_calls=[item.call for item in resolved]))

        for item in resolved:
            if isinstance(item, SearchToolCall) and item.error is None and item.query:
                turn.current_search_query = item.query
                turn.executed_queries.add(_normalize_query(item.query))
                turn.used_search = True
                self._publish(turn)

            result = await self._tool_executor.execute(item)
            turn.log.append(result.message)
            turn.current_search_query = None

        self._publish(turn)

    async def _finalize(self, turn: _Turn, outcome: _ResponseOutcome, resolved: list[ResolvedToolCall], finalize: FinalizeAnswerToolCall) -> None:
        self._set_state(AgentState.FINALIZING)
        turn.log.append(Message.assistant(outcome.text or None, tool_calls=[item.call for item in resolved]))

        for item in resolved:
            if item is finalize:
                result = await self._tool_executor.execute(item)
                turn.final_output = result.final_answer
            else:
                result = self._tool_executor.skipped_result(item.call)
            turn.log.append(result.message)

        logger.info(f"Answer finalized by {finalize.call.name} after {turn.budget.used_iterations} iterations")
        self._set_state(AgentState.DONE)

    async def _answer_without_tools(self, turn: _Turn) -> None:
        self._set_state(AgentState.FINALIZING)
        if self._cancel_requested:
            self._set_state(AgentState.CANCELLED)
            return

        logger.info(f"Iteration budget exhausted after {turn.budget.used_iterations} iterations; requesting a final answer without tools")
        turn.log.append(Message.user(self._config.budget_exhausted_instruction))

        outcome = await self._request_response(turn, tools_enabled=False, track_state=False)
        if outcome.cancelled:
            self._set_state(AgentState.CANCELLED)
            return

        turn.final_output = outcome.text
        self._set_state(AgentState.DONE)

    def _has_new_search(self, turn: _Turn, resolved: list[ResolvedToolCall]) -> bool:
        """Whether the response searches for something not yet searched, without finalizing."""
        if any(isinstance(item, FinalizeAnswerToolCall) for item in resolved):
            return False
        return any(isinstance(item, SearchToolCall) and item.query and _normalize_query(item.query) not in turn.executed_queries for item in resolved)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _build_initial_messages(
        self,
        message_history: Sequence[Message],
        system_prompt: str,
        flags: ToolEnablement,
        tools_enabled: bool,
    ) -> list[Message]:
        messages: list[Message] = []
        prompt = (system_prompt or "").strip()
        if prompt:
            messages.append(Message.system(prompt))
        if flags.research_mode and tools_enabled:
            messages.append(Message.system(self._config.research_mode_prompt))
        messages.extend(message_history)
        return messages

    def _set_state(self, state: AgentState) -> None:
        if state != self._state:
            logger.debug(f"Agent state: {self._state.value} -> {state.value}")
        self._state = state
        if self._turn is not None:
            self._publish(self._turn)

    def _publish(self, turn: _Turn) -> None:
        turn.deltas_since_publish = 0
        self._progress = AgentProgress(
            running=self._running,
            state=self._state,
            output=turn.output,
            current_search_query=turn.current_search_query,
            iteration=turn.budget.used_iterations,
            used_search=turn.used_search,
            error=turn.error,
        )
        if self._progress_sink is not None:
            self._progress_sink.publish(self._progress)
