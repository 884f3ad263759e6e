"""Tools offered to the model when web search is enabled."""

from domain.models import ToolDefinition, ToolParameter

WEB_SEARCH_TOOL_NAME = "web_search"
EXA_SEARCH_TOOL_NAME = "exa_search"
SEARCH_TOOL_NAMES = (WEB_SEARCH_TOOL_NAME, EXA_SEARCH_TOOL_NAME)
FINALIZE_ANSWER_TOOL_NAME = "finalize_answer"

MAX_SEARCH_RESULTS = 10


def _search_tool(name: str) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description="Search the web and return ranked results with titles, URLs, publication dates and short snippets.",
        parameters=[
            ToolParameter(name="query", type="string", description="The search query."),
            ToolParameter(
                name="num_results",
                type="integer",
                description=f"Number of results to return (1-{MAX_SEARCH_RESULTS}, default 5).",
                required=False,
                minimum=1,
                maximum=MAX_SEARCH_RESULTS,
            ),
        ],
    )


def build_tool_manifest() -> list[ToolDefinition]:
    """Build the tool manifest: both search aliases and finalize_answer."""
    return [
        _search_tool(WEB_SEARCH_TOOL_NAME),
        _search_tool(EXA_SEARCH_TOOL_NAME),
        ToolDefinition(
            name=FINALIZE_ANSWER_TOOL_NAME,
            description="Submit the final answer to the user. Call this once research is complete; no further tools run after it.",
            parameters=[
                ToolParameter(name="answer_markdown", type="string", description="The complete final answer, formatted as Markdown."),
                ToolParameter(
                    name="used_evidence_ids",
                    type="array",
                    description="Identifiers of the evidence the answer relies on.",
                    required=False,
                    items={"type": "string"},
                ),
                ToolParameter(
                    name="open_questions",
                    type="array",
                    description="Questions that remain unresolved.",
                    required=False,
                    items={"type": "string"},
                ),
            ],
        ),
    ]
