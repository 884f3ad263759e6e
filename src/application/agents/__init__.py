"""Agent abstractions for the research agent.

This package contains:
- The agent orchestrator and its configuration
- Stream protocol decoding and tool-call reassembly
- Inference backend abstractions
- Progress snapshots and sinks
"""

from application.agents.agent_config import AgentConfig
from application.agents.inference_backend import ChatCompletionRequest, InferenceBackend, InferenceBackendError, InferenceConfig
from application.agents.orchestrator import AgentError, AgentOrchestrator, ToolEnablement, TurnAlreadyActiveError, TurnResult
from application.agents.progress import AgentProgress, AgentProgressSink, AgentState, ProgressChannel
from application.agents.stream_protocol_parser import StreamProtocolParser
from application.agents.tool_call_accumulator import ToolCallAccumulator

__all__ = [
    # Orchestrator
    "AgentConfig",
    "AgentError",
    "AgentOrchestrator",
    "ToolEnablement",
    "TurnAlreadyActiveError",
    "TurnResult",
    # Progress
    "AgentProgress",
    "AgentProgressSink",
    "AgentState",
    "ProgressChannel",
    # Streaming
    "StreamProtocolParser",
    "ToolCallAccumulator",
    # Inference Backend
    "ChatCompletionRequest",
    "InferenceBackend",
    "InferenceBackendError",
    "InferenceConfig",
]
