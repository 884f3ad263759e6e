"""Application layer tests for ToolCallAccumulator.

Tests the reassembly of streamed tool-call fragments:
- Split invariance of argument fragments
- Dropping of nameless partials
- Independence of interleaved indices
- Identity field overwrite rules
"""

import json

from application.agents import ToolCallAccumulator
from domain.models import ToolCall, ToolCallDelta

ARGUMENTS = json.dumps({"query": "latest python release", "num_results": 3})


def _accumulate(deltas: list[ToolCallDelta]) -> list[ToolCall]:
    accumulator = ToolCallAccumulator()
    for delta in deltas:
        accumulator.append(delta)
    return accumulator.build_tool_calls()


class TestSplitInvariance:
    """Test results do not depend on how arguments were split."""

    def test_any_split_yields_the_same_call(self) -> None:
        """Test every chunk size reassembles the identical tool call."""
        expected = [ToolCall(id="call_1", name="web_search", arguments_json=ARGUMENTS)]

        for chunk_size in (1, 2, 3, 7, len(ARGUMENTS)):
            deltas = [ToolCallDelta(index=0, id="call_1", type="function", name="web_search")]
            deltas += [ToolCallDelta(index=0, arguments=ARGUMENTS[i : i + chunk_size]) for i in range(0, len(ARGUMENTS), chunk_size)]

            assert _accumulate(deltas) == expected, f"chunk_size={chunk_size}"

    def test_fragments_are_not_deduplicated(self) -> None:
        """Test identical consecutive fragments are both kept."""
        deltas = [
            ToolCallDelta(index=0, name="web_search", arguments='{"query": "aa'),
            ToolCallDelta(index=0, arguments="a"),
            ToolCallDelta(index=0, arguments="a"),
            ToolCallDelta(index=0, arguments='"}'),
        ]

        assert _accumulate(deltas)[0].arguments_json == '{"query": "aaaa"}'


class TestPartialHandling:
    """Test materialization rules."""

    def test_partial_without_name_is_dropped(self) -> None:
        """Test a partial whose name never arrived is excluded."""
        deltas = [
            ToolCallDelta(index=0, id="call_a", arguments='{"query": "x"}'),
            ToolCallDelta(index=1, id="call_b", name="web_search", arguments='{"query": "y"}'),
        ]

        calls = _accumulate(deltas)

        assert [call.id for call in calls] == ["call_b"]

    def test_missing_index_defaults_to_zero(self) -> None:
        """Test fragments without an index merge into index 0."""
        deltas = [
            ToolCallDelta(index=0, id="call_1", name="web_search", arguments='{"query": '),
            ToolCallDelta(arguments='"x"}'),
        ]

        assert _accumulate(deltas) == [ToolCall(id="call_1", name="web_search", arguments_json='{"query": "x"}')]

    def test_missing_id_gets_deterministic_id(self) -> None:
        """Test a call without an id gets the prefix and index as id."""
        accumulator = ToolCallAccumulator(id_prefix="call_3_2")
        accumulator.append(ToolCallDelta(index=4, name="finalize_answer"))

        assert accumulator.build_tool_calls() == [ToolCall(id="call_3_2_4", name="finalize_answer", arguments_json="")]

    def test_identity_fields_are_overwritten(self) -> None:
        """Test id and name take the latest non-empty value."""
        deltas = [
            ToolCallDelta(index=0, id="call_old", name="web"),
            ToolCallDelta(index=0, id="call_new", name="web_search"),
            ToolCallDelta(index=0, name=None, arguments="{}"),
        ]

        assert _accumulate(deltas) == [ToolCall(id="call_new", name="web_search", arguments_json="{}")]

    def test_empty_accumulator(self) -> None:
        """Test an accumulator without deltas has no partials and no calls."""
        accumulator = ToolCallAccumulator()

        assert accumulator.has_partials is False
        assert accumulator.build_tool_calls() == []


class TestInterleavedIndices:
    """Test interleaved fragments of different calls."""

    def test_interleaved_indices_are_independent(self) -> None:
        """Test fragments of interleaved indices reassemble into separate calls ordered by index."""
        deltas = [
            ToolCallDelta(index=1, id="call_b", name="exa_search", arguments='{"query"'),
            ToolCallDelta(index=0, id="call_a", name="web_search", arguments='{"query"'),
            ToolCallDelta(index=1, arguments=': "b"}'),
            ToolCallDelta(index=0, arguments=': "a"}'),
        ]

        assert _accumulate(deltas) == [
            ToolCall(id="call_a", name="web_search", arguments_json='{"query": "a"}'),
            ToolCall(id="call_b", name="exa_search", arguments_json='{"query": "b"}'),
        ]
