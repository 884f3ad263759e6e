"""Tool Executor service for the research agent.

Resolves complete tool calls into a closed set of known tools and dispatches
them:
1. Search (``web_search`` / ``exa_search``): runs a web search and returns a
   compact JSON list of results
2. Finalize (``finalize_answer``): captures the final answer of the turn
3. Anything else: answered with an "unsupported tool" error result

Arguments are decoded once, at resolution time, into strict per-tool pydantic
schemas. Every failure the model can correct (bad JSON, missing fields,
unknown tool, search errors) becomes an error tool result instead of an
exception, so the agent loop can continue.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, ValidationError

from application.services.search_client import SearchClient
from application.services.tool_manifest import FINALIZE_ANSWER_TOOL_NAME, MAX_SEARCH_RESULTS, SEARCH_TOOL_NAMES
from domain.models import Message, SearchResult, ToolCall, ToolResult
from observability import tool_execution_errors, tool_execution_time, tool_executions

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ELLIPSIS = "…"


# =============================================================================
# Argument Schemas
# =============================================================================


class SearchArguments(BaseModel):
    """Arguments of the search tool."""

    model_config = ConfigDict(extra="ignore")

    query: Optional[str] = None
    num_results: Optional[int] = None


class FinalizeAnswerArguments(BaseModel):
    """Arguments of the finalize_answer tool."""

    model_config = ConfigDict(extra="ignore")

    answer_markdown: str
    used_evidence_ids: list[str] = []
    open_questions: list[str] = []


# =============================================================================
# Resolved Tool Calls
# =============================================================================


@dataclass(frozen=True)
class SearchToolCall:
    """A call to the search tool, with decoded arguments or a decode error."""

    call: ToolCall
    arguments: Optional[SearchArguments] = None
    error: Optional[str] = None

    @property
    def query(self) -> Optional[str]:
        """The trimmed query, or None when absent or blank."""
        if self.arguments is None or not self.arguments.query:
            return None
        return self.arguments.query.strip() or None


@dataclass(frozen=True)
class FinalizeAnswerToolCall:
    """A call to finalize_answer, with decoded arguments or a decode error."""

    call: ToolCall
    arguments: Optional[FinalizeAnswerArguments] = None
    error: Optional[str] = None

    @property
    def is_accepted(self) -> bool:
        """Whether the call carries a usable final answer."""
        return self.error is None and self.arguments is not None


@dataclass(frozen=True)
class UnrecognizedToolCall:
    """A call to a tool name the agent does not know."""

    call: ToolCall


ResolvedToolCall = Union[SearchToolCall, FinalizeAnswerToolCall, UnrecognizedToolCall]


class ToolExecutor:
    """Dispatches resolved tool calls and builds their tool result messages.

    Example Usage:
        executor = ToolExecutor(search_client=ExaSearchClient(api_key="..."))
        resolved = executor.resolve(tool_call)
        result = await executor.execute(resolved)
    """

    def __init__(
        self,
        search_client: Optional[SearchClient] = None,
        default_num_results: int = 5,
        max_num_results: int = MAX_SEARCH_RESULTS,
        snippet_max_chars: int = 400,
    ) -> None:
        """Initialize the tool executor.

        Args:
            search_client: Search provider; search calls fail softly without one
            default_num_results: Result count when the model does not ask for one
            max_num_results: Upper bound for the requested result count, capped at MAX_SEARCH_RESULTS
            snippet_max_chars: Snippet length before truncation
        """
        self._search_client = search_client
        self._max_num_results = max(1, min(max_num_results, MAX_SEARCH_RESULTS))
        self._default_num_results = max(1, min(default_num_results, self._max_num_results))
        self._snippet_max_chars = snippet_max_chars

    @property
    def search_available(self) -> bool:
        return self._search_client is not None

    def resolve(self, tool_call: ToolCall) -> ResolvedToolCall:
        """Resolve a complete tool call into its closed variant.

        Args:
            tool_call: The call to resolve

        Returns:
            SearchToolCall, FinalizeAnswerToolCall or UnrecognizedToolCall
        """
        if tool_call.name in SEARCH_TOOL_NAMES:
            search_args, error = _decode_arguments(SearchArguments, tool_call)
            return SearchToolCall(call=tool_call, arguments=search_args, error=error)

        if tool_call.name == FINALIZE_ANSWER_TOOL_NAME:
            finalize_args, error = _decode_arguments(FinalizeAnswerArguments, tool_call)
            if finalize_args is not None and not finalize_args.answer_markdown.strip():
                finalize_args, error = None, "missing answer_markdown"
            return FinalizeAnswerToolCall(call=tool_call, arguments=finalize_args, error=error)

        return UnrecognizedToolCall(call=tool_call)

    async def execute(self, resolved: ResolvedToolCall) -> ToolResult:
        """Dispatch a resolved tool call.

        Args:
            resolved: Output of resolve()

        Returns:
            The tool result; final_answer is set only for an accepted finalize call
        """
        tool_name = resolved.call.name
        start_time = time.time()

        with tracer.start_as_current_span("tool.execute") as span:
            span.set_attribute("tool.name", tool_name)
            span.set_attribute("tool.call_id", resolved.call.id)

            if isinstance(resolved, SearchToolCall):
                result = await self._execute_search(resolved)
            elif isinstance(resolved, FinalizeAnswerToolCall):
                result = self._execute_finalize(resolved)
            else:
                logger.warning(f"Model requested unsupported tool: {tool_name}")
                result = _error_result(resolved.call, f"unsupported tool: {tool_name}")

            duration_ms = (time.time() - start_time) * 1000
            is_error = _is_error_result(result)
            span.set_attribute("tool.is_error", is_error)
            tool_executions.add(1, {"tool_name": tool_name})
            tool_execution_time.record(duration_ms, {"tool_name": tool_name})
            if is_error:
                tool_execution_errors.add(1, {"tool_name": tool_name})

        return result

    def skipped_result(self, tool_call: ToolCall) -> ToolResult:
        """Build the result for a call left unexecuted because the answer was finalized."""
        return _error_result(tool_call, "skipped: answer already finalized")

    async def close(self) -> None:
        """Close the underlying search client."""
        if self._search_client is not None:
            await self._search_client.close()

    async def _execute_search(self, resolved: SearchToolCall) -> ToolResult:
        if resolved.error is not None:
            return _error_result(resolved.call, resolved.error)

        query = resolved.query
        if query is None:
            return _error_result(resolved.call, "missing query")

        if self._search_client is None:
            return _error_result(resolved.call, "search is not available")

        num_results = self._clamp_num_results(resolved.arguments.num_results if resolved.arguments else None)
        logger.info(f"Searching: query='{query}', num_results={num_results}")

        try:
            response = await self._search_client.search(query, num_results=num_results, include_highlights=True)
        except Exception as e:
            logger.error(f"Search failed for query '{query}': {e}", exc_info=True)
            return _error_result(resolved.call, f"search failed: {e}")

        mapped = [self._map_search_result(item) for item in response.results]
        logger.info(f"Search returned {len(mapped)} results for query '{query}'")
        return ToolResult(message=Message.tool_result(resolved.call.id, json.dumps(mapped, ensure_ascii=False)))

    def _execute_finalize(self, resolved: FinalizeAnswerToolCall) -> ToolResult:
        if not resolved.is_accepted or resolved.arguments is None:
            return _error_result(resolved.call, resolved.error or "invalid arguments")

        arguments = resolved.arguments
        logger.info(f"Final answer submitted: {len(arguments.answer_markdown)} chars, {len(arguments.used_evidence_ids)} evidence ids, {len(arguments.open_questions)} open questions")
        ack = json.dumps({"status": "accepted"})
        return ToolResult(message=Message.tool_result(resolved.call.id, ack), final_answer=arguments.answer_markdown)

    def _clamp_num_results(self, requested: Optional[int]) -> int:
        if requested is None:
            return self._default_num_results
        return max(1, min(requested, self._max_num_results))

    def _map_search_result(self, result: SearchResult) -> dict[str, Any]:
        return {
            "title": result.title,
            "url": result.url,
            "author": result.author,
            "publishedDate": result.published_date,
            "snippet": self._build_snippet(result),
            "highlights": list(result.highlights),
        }

    def _build_snippet(self, result: SearchResult) -> Optional[str]:
        """First available of: first highlight, summary, text; truncated."""
        candidates = [result.highlights[0] if result.highlights else None, result.summary, result.text]
        for candidate in candidates:
            if candidate and candidate.strip():
                snippet = candidate.strip()
                if len(snippet) > self._snippet_max_chars:
                    return snippet[: self._snippet_max_chars].rstrip() + ELLIPSIS
                return snippet
        return None


def _decode_arguments(schema: type[BaseModel], tool_call: ToolCall) -> tuple[Any, Optional[str]]:
    raw = tool_call.arguments_json.strip() or "{}"
    try:
        return schema.model_validate_json(raw), None
    except ValidationError as e:
        details = "; ".join(f"{'.'.join(str(loc) for loc in err['loc']) or 'arguments'}: {err['msg']}" for err in e.errors())
        logger.warning(f"Invalid arguments for tool {tool_call.name}: {details}")
        return None, f"invalid arguments for {tool_call.name}: {details}"


def _error_result(tool_call: ToolCall, error: str) -> ToolResult:
    return ToolResult(message=Message.tool_result(tool_call.id, json.dumps({"error": error}, ensure_ascii=False)))


def _is_error_result(result: ToolResult) -> bool:
    try:
        payload = json.loads(result.message.content or "")
    except json.JSONDecodeError:
        return False
    return isinstance(payload, dict) and "error" in payload
