"""Business metrics for the research agent.

Defines OpenTelemetry metrics for:
- Turns: Lifecycle outcomes, duration and budget extensions
- LLM: Request count, latency and tool calls
- Tools: Execution count, failures and latency
- Search: Provider requests
"""

from opentelemetry import metrics

meter = metrics.get_meter("research_agent")

# =============================================================================
# TURN METRICS
# =============================================================================

agent_turns_started = meter.create_counter(
    name="research_agent.turns.started",
    description="Total agent turns started",
    unit="1",
)

agent_turns_completed = meter.create_counter(
    name="research_agent.turns.completed",
    description="Total agent turns that ended, by final state",
    unit="1",
)

agent_turn_duration = meter.create_histogram(
    name="research_agent.turns.duration",
    description="Duration of agent turns (first request to final output)",
    unit="ms",
)

agent_budget_extensions = meter.create_counter(
    name="research_agent.turns.budget_extensions",
    description="Total one-time iteration budget extensions granted",
    unit="1",
)

# =============================================================================
# LLM METRICS
# =============================================================================

llm_request_count = meter.create_counter(
    name="research_agent.llm.request_count",
    description="Total chat-completion requests made",
    unit="1",
)

llm_request_time = meter.create_histogram(
    name="research_agent.llm.request_time",
    description="Time for chat-completion requests (request to end of stream)",
    unit="ms",
)

llm_tool_calls = meter.create_counter(
    name="research_agent.llm.tool_calls",
    description="Total tool calls requested by the model",
    unit="1",
)

# =============================================================================
# TOOL METRICS
# =============================================================================

tool_executions = meter.create_counter(
    name="research_agent.tools.executions",
    description="Total tool calls dispatched",
    unit="1",
)

tool_execution_errors = meter.create_counter(
    name="research_agent.tools.execution_errors",
    description="Total tool calls that produced an error result",
    unit="1",
)

tool_execution_time = meter.create_histogram(
    name="research_agent.tools.execution_time",
    description="Time to dispatch a tool call",
    unit="ms",
)

# =============================================================================
# SEARCH METRICS
# =============================================================================

search_requests = meter.create_counter(
    name="research_agent.search.requests",
    description="Total requests sent to the search provider",
    unit="1",
)

search_request_time = meter.create_histogram(
    name="research_agent.search.request_time",
    description="Time for search provider requests",
    unit="ms",
)
