"""Application layer tests for ToolExecutor.

Tests tool resolution and dispatch including:
- Resolution into search / finalize / unrecognized variants
- Search argument validation, clamping and result mapping
- Snippet selection and truncation
- Finalize acknowledgment and errors
- Error results for malformed and unknown calls
"""

import pytest

from application.services import FinalizeAnswerToolCall, SearchClientError, SearchToolCall, ToolExecutor, UnrecognizedToolCall
from tests.fixtures.factories import SearchResultFactory, ToolCallFactory
from tests.fixtures.fakes import FakeSearchClient
from tests.fixtures.mixins import AssertionMixin


class TestResolution:
    """Test resolve()."""

    def test_search_aliases_resolve_to_search(self) -> None:
        """Test both search names resolve to SearchToolCall."""
        executor = ToolExecutor()

        for name in ("web_search", "exa_search"):
            resolved = executor.resolve(ToolCallFactory.create(name=name, arguments={"query": "q"}))
            assert isinstance(resolved, SearchToolCall)
            assert resolved.query == "q"

    def test_finalize_resolves_with_arguments(self) -> None:
        """Test finalize_answer decodes its arguments."""
        executor = ToolExecutor()
        call = ToolCallFactory.create(name="finalize_answer", arguments={"answer_markdown": "# Answer", "used_evidence_ids": ["E1"], "open_questions": ["Why?"]})

        resolved = executor.resolve(call)

        assert isinstance(resolved, FinalizeAnswerToolCall)
        assert resolved.is_accepted
        assert resolved.arguments is not None
        assert resolved.arguments.used_evidence_ids == ["E1"]
        assert resolved.arguments.open_questions == ["Why?"]

    def test_finalize_without_answer_is_not_accepted(self) -> None:
        """Test a missing or blank answer_markdown is a decode error."""
        executor = ToolExecutor()

        missing = executor.resolve(ToolCallFactory.create(name="finalize_answer", arguments={"open_questions": []}))
        blank = executor.resolve(ToolCallFactory.create(name="finalize_answer", arguments={"answer_markdown": "  "}))

        assert isinstance(missing, FinalizeAnswerToolCall) and not missing.is_accepted
        assert isinstance(blank, FinalizeAnswerToolCall) and not blank.is_accepted

    def test_unknown_tool_resolves_to_unrecognized(self) -> None:
        """Test an unknown name resolves to UnrecognizedToolCall."""
        resolved = ToolExecutor().resolve(ToolCallFactory.create(name="shell"))

        assert isinstance(resolved, UnrecognizedToolCall)

    def test_blank_arguments_decode_as_empty_object(self) -> None:
        """Test blank argument text decodes without error."""
        resolved = ToolExecutor().resolve(ToolCallFactory.create(name="web_search", arguments_json=""))

        assert isinstance(resolved, SearchToolCall)
        assert resolved.error is None
        assert resolved.query is None


class TestSearchExecution(AssertionMixin):
    """Test dispatch of search calls."""

    @pytest.mark.asyncio
    async def test_search_maps_results(self) -> None:
        """Test results are mapped to the compact tool-result shape."""
        client = FakeSearchClient(results=[SearchResultFactory.create(highlights=["Key passage."], summary="Summary")])
        executor = ToolExecutor(search_client=client)

        result = await executor.execute(executor.resolve(ToolCallFactory.create_search("python 3.13", call_id="call_9")))

        assert result.final_answer is None
        assert result.message.tool_call_id == "call_9"
        assert self.tool_payload(result.message) == [
            {
                "title": "Example Article",
                "url": "https://example.com/article",
                "author": "Jane Doe",
                "publishedDate": "2024-05-01T00:00:00.000Z",
                "snippet": "Key passage.",
                "highlights": ["Key passage."],
            }
        ]
        assert client.calls == [("python 3.13", 5, True)]

    @pytest.mark.asyncio
    async def test_empty_query_returns_missing_query(self) -> None:
        """Test an empty query yields the missing-query error without searching."""
        client = FakeSearchClient()
        executor = ToolExecutor(search_client=client)

        result = await executor.execute(executor.resolve(ToolCallFactory.create(name="web_search", arguments={"query": ""})))

        self.assert_tool_error(result.message, "missing query")
        assert client.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("requested", "expected"), [(None, 5), (0, 1), (-3, 1), (3, 3), (10, 10), (50, 10)])
    async def test_num_results_is_clamped(self, requested: int | None, expected: int) -> None:
        """Test num_results defaults to 5 and is clamped to [1, 10]."""
        client = FakeSearchClient()
        executor = ToolExecutor(search_client=client)

        await executor.execute(executor.resolve(ToolCallFactory.create_search("q", num_results=requested)))

        assert client.calls[0][1] == expected

    @pytest.mark.asyncio
    async def test_configured_maximum_is_capped_at_ten(self) -> None:
        """Test a configured maximum above 10 does not widen the clamp."""
        client = FakeSearchClient(results=SearchResultFactory.create_many(20))
        executor = ToolExecutor(search_client=client, default_num_results=15, max_num_results=50)

        await executor.execute(executor.resolve(ToolCallFactory.create_search("q", num_results=30)))
        await executor.execute(executor.resolve(ToolCallFactory.create_search("q")))

        assert [call[1] for call in client.calls] == [10, 10]

    @pytest.mark.asyncio
    async def test_malformed_arguments_return_error(self) -> None:
        """Test invalid JSON arguments produce an error result."""
        client = FakeSearchClient()
        executor = ToolExecutor(search_client=client)

        result = await executor.execute(executor.resolve(ToolCallFactory.create(name="exa_search", arguments_json='{"query": "unterminated')))

        self.assert_tool_error_startswith(result.message, "invalid arguments for exa_search")
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_search_failure_returns_error(self) -> None:
        """Test a failing search client produces an error result instead of raising."""
        executor = ToolExecutor(search_client=FakeSearchClient(error=SearchClientError("server error (500): boom", status_code=500)))

        result = await executor.execute(executor.resolve(ToolCallFactory.create_search("q")))

        self.assert_tool_error(result.message, "search failed: server error (500): boom")

    @pytest.mark.asyncio
    async def test_search_without_client_returns_error(self) -> None:
        """Test search calls fail softly when no search client is configured."""
        executor = ToolExecutor()

        result = await executor.execute(executor.resolve(ToolCallFactory.create_search("q")))

        self.assert_tool_error(result.message, "search is not available")


class TestSnippets(AssertionMixin):
    """Test snippet selection and truncation."""

    async def _snippet(self, **result_fields) -> str | None:
        client = FakeSearchClient(results=[SearchResultFactory.create(**result_fields)])
        executor = ToolExecutor(search_client=client)
        result = await executor.execute(executor.resolve(ToolCallFactory.create_search("q")))
        return self.tool_payload(result.message)[0]["snippet"]

    @pytest.mark.asyncio
    async def test_snippet_prefers_first_highlight(self) -> None:
        """Test the first highlight wins over summary and text."""
        assert await self._snippet(highlights=["H1", "H2"], summary="S", text="T") == "H1"

    @pytest.mark.asyncio
    async def test_snippet_falls_back_to_summary_then_text(self) -> None:
        """Test summary is used without highlights, then text."""
        assert await self._snippet(highlights=[], summary="S", text="T") == "S"
        assert await self._snippet(highlights=[], summary=None, text="T") == "T"
        assert await self._snippet(highlights=[], summary=None, text=None) is None

    @pytest.mark.asyncio
    async def test_long_snippet_is_truncated_with_ellipsis(self) -> None:
        """Test snippets longer than 400 characters are cut and marked."""
        snippet = await self._snippet(highlights=["x" * 1000])

        assert snippet is not None
        assert snippet == "x" * 400 + "…"


class TestFinalizeExecution(AssertionMixin):
    """Test dispatch of finalize_answer."""

    @pytest.mark.asyncio
    async def test_finalize_returns_answer_and_ack(self) -> None:
        """Test an accepted finalize yields the final answer and an acknowledgment."""
        executor = ToolExecutor()

        result = await executor.execute(executor.resolve(ToolCallFactory.create_finalize("**Done**", call_id="call_f")))

        assert result.is_final
        assert result.final_answer == "**Done**"
        assert result.message.tool_call_id == "call_f"
        assert self.tool_payload(result.message) == {"status": "accepted"}

    @pytest.mark.asyncio
    async def test_finalize_without_answer_returns_error(self) -> None:
        """Test a finalize call missing answer_markdown yields an error result."""
        executor = ToolExecutor()

        result = await executor.execute(executor.resolve(ToolCallFactory.create(name="finalize_answer", arguments={})))

        assert not result.is_final
        self.assert_tool_error_startswith(result.message, "invalid arguments for finalize_answer")


class TestUnrecognizedExecution(AssertionMixin):
    """Test dispatch of unknown tools."""

    @pytest.mark.asyncio
    async def test_unknown_tool_returns_unsupported(self) -> None:
        """Test unknown tools produce the unsupported-tool error."""
        executor = ToolExecutor()

        result = await executor.execute(executor.resolve(ToolCallFactory.create(call_id="call_x", name="run_shell")))

        assert result.message.tool_call_id == "call_x"
        self.assert_tool_error(result.message, "unsupported tool: run_shell")

    def test_skipped_result(self) -> None:
        """Test skipped calls get an explanatory error result."""
        result = ToolExecutor().skipped_result(ToolCallFactory.create_search("q", call_id="call_s"))

        assert result.message.tool_call_id == "call_s"
        self.assert_tool_error(result.message, "skipped: answer already finalized")
