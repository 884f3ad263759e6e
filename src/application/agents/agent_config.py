"""Configuration of the agent loop."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from application.settings import Settings

BUDGET_EXHAUSTED_INSTRUCTION = (
    "The tool budget for this answer is exhausted. Answer now using only the information already gathered. Do not call any more tools."
)

RESEARCH_MODE_PROMPT = """You are a research assistant with web search.
- Search before answering questions about current events, facts you are unsure of, or anything that needs a source.
- Prefer several focused queries over one broad query, and stop searching once the evidence is sufficient.
- Cite sources inline as Markdown links using the URLs returned by the search tool.
- When the answer is ready, call finalize_answer with the complete Markdown answer, the evidence you relied on, and any open questions."""


@dataclass
class AgentConfig:
    """Generation parameters and loop limits of the orchestrator.

    Attributes:
        model: Model identifier sent with every request
        temperature: Sampling temperature
        max_tokens: Maximum tokens per response (None = backend default)
        base_iteration_limit: Tool-dispatch iterations allowed per turn
        hard_iteration_limit: Ceiling reachable through the one-time extension
        progress_every_n_deltas: Publish the partial output every N text deltas
        budget_exhausted_instruction: Instruction appended for the final tools-free request
        research_mode_prompt: System prompt added when research mode is enabled
    """

    model: str
    temperature: float = 0.5
    max_tokens: Optional[int] = 4096
    base_iteration_limit: int = 6
    hard_iteration_limit: int = 12
    progress_every_n_deltas: int = 4
    budget_exhausted_instruction: str = BUDGET_EXHAUSTED_INSTRUCTION
    research_mode_prompt: str = RESEARCH_MODE_PROMPT

    def __post_init__(self) -> None:
        if self.base_iteration_limit < 0:
            raise ValueError(f"base_iteration_limit must be >= 0, got {self.base_iteration_limit}")
        if self.hard_iteration_limit < self.base_iteration_limit:
            raise ValueError(f"hard_iteration_limit ({self.hard_iteration_limit}) must be >= base_iteration_limit ({self.base_iteration_limit})")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AgentConfig":
        """Create from application settings."""
        return cls(
            model=settings.inference_model,
            temperature=settings.inference_temperature,
            max_tokens=settings.inference_max_tokens,
            base_iteration_limit=settings.agent_base_iteration_limit,
            hard_iteration_limit=settings.agent_hard_iteration_limit,
            progress_every_n_deltas=max(settings.agent_progress_every_n_deltas, 1),
        )
