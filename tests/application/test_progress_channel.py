"""Application layer tests for ProgressChannel and AgentState."""

import pytest

from application.agents import AgentConfig, AgentOrchestrator, AgentProgress, AgentState, ProgressChannel
from application.services import ToolExecutor
from tests.fixtures.factories import MessageFactory, StreamLineFactory
from tests.fixtures.fakes import ScriptedInferenceBackend


class TestAgentState:
    """Test state classification."""

    @pytest.mark.parametrize("state", [AgentState.DONE, AgentState.CANCELLED, AgentState.FAILED])
    def test_terminal_states(self, state: AgentState) -> None:
        """Test done, cancelled and failed are terminal."""
        assert state.is_terminal

    @pytest.mark.parametrize("state", [AgentState.IDLE, AgentState.REQUESTING, AgentState.STREAMING, AgentState.TOOL_DISPATCH, AgentState.FINALIZING])
    def test_non_terminal_states(self, state: AgentState) -> None:
        """Test the remaining states are not terminal."""
        assert not state.is_terminal


class TestProgressChannel:
    """Test snapshot fan-out."""

    def test_latest_starts_idle(self) -> None:
        """Test a new channel reports an idle snapshot."""
        channel = ProgressChannel()

        assert channel.latest.running is False
        assert channel.latest.state == AgentState.IDLE
        assert channel.latest.output == ""

    def test_subscribers_receive_published_snapshots(self) -> None:
        """Test every subscriber queue receives each snapshot."""
        channel = ProgressChannel()
        first = channel.subscribe()
        second = channel.subscribe()
        snapshot = AgentProgress(running=True, state=AgentState.STREAMING, output="Hel")

        channel.publish(snapshot)

        assert first.get_nowait() == snapshot
        assert second.get_nowait() == snapshot
        assert channel.latest == snapshot

    def test_unsubscribed_queue_stops_receiving(self) -> None:
        """Test an unsubscribed queue gets no further snapshots."""
        channel = ProgressChannel()
        queue = channel.subscribe()
        channel.unsubscribe(queue)

        channel.publish(AgentProgress(running=True))

        assert queue.empty()

    @pytest.mark.asyncio
    async def test_channel_as_orchestrator_sink(self) -> None:
        """Test the channel ends a turn holding the final snapshot."""
        channel = ProgressChannel()
        queue = channel.subscribe()
        backend = ScriptedInferenceBackend([StreamLineFactory.text_response("Hi", " there")])
        orchestrator = AgentOrchestrator(backend, ToolExecutor(), AgentConfig(model="test-model"), progress_sink=channel)

        await orchestrator.run_turn(MessageFactory.create_history())

        assert not queue.empty()
        assert channel.latest.state == AgentState.DONE
        assert channel.latest.output == "Hi there"
        assert channel.latest.running is False
