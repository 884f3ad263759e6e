"""Infrastructure tests for settings and orchestrator wiring."""

import pytest

from application.agents import AgentConfig, AgentOrchestrator, AgentState
from application.settings import Settings
from infrastructure import create_agent_orchestrator, create_search_client
from infrastructure.adapters import ExaSearchClient


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self) -> None:
        """Test loop limits and provider defaults."""
        settings = Settings(_env_file=None)

        assert settings.inference_base_url == "https://api.openai.com/v1"
        assert settings.agent_base_iteration_limit == 6
        assert settings.agent_hard_iteration_limit == 12
        assert settings.search_max_num_results == 10

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test RESEARCH_AGENT_* variables override defaults."""
        monkeypatch.setenv("RESEARCH_AGENT_INFERENCE_MODEL", "local-model")
        monkeypatch.setenv("RESEARCH_AGENT_AGENT_BASE_ITERATION_LIMIT", "2")
        monkeypatch.setenv("RESEARCH_AGENT_SEARCH_API_KEY", "exa-key")

        settings = Settings(_env_file=None)

        assert settings.inference_model == "local-model"
        assert settings.agent_base_iteration_limit == 2
        assert settings.search_api_key == "exa-key"

    def test_agent_config_from_settings(self) -> None:
        """Test AgentConfig picks up model and loop limits."""
        settings = Settings(_env_file=None, inference_model="m", agent_base_iteration_limit=3, agent_hard_iteration_limit=5, agent_progress_every_n_deltas=0)

        config = AgentConfig.from_settings(settings)

        assert config.model == "m"
        assert (config.base_iteration_limit, config.hard_iteration_limit) == (3, 5)
        assert config.progress_every_n_deltas == 1


class TestAgentFactory:
    """Test create_search_client() and create_agent_orchestrator()."""

    @pytest.mark.parametrize("api_key", [None, "", "  "])
    def test_no_search_client_without_key(self, api_key: str | None) -> None:
        """Test search is disabled when no key is configured."""
        assert create_search_client(Settings(_env_file=None, search_api_key=api_key)) is None

    def test_search_client_with_key(self) -> None:
        """Test an Exa client is created when a key is configured."""
        assert isinstance(create_search_client(Settings(_env_file=None, search_api_key="exa-key")), ExaSearchClient)

    @pytest.mark.asyncio
    async def test_orchestrator_is_wired(self) -> None:
        """Test the factory returns an idle orchestrator."""
        orchestrator = create_agent_orchestrator(Settings(_env_file=None, inference_base_url="localhost:1234/v1", search_api_key="exa-key"))

        assert isinstance(orchestrator, AgentOrchestrator)
        assert orchestrator.state == AgentState.IDLE
        assert orchestrator.is_running is False
        await orchestrator.aclose()


class TestAgentConfigValidation:
    """Test loop-limit validation."""

    def test_hard_limit_below_base_is_rejected(self) -> None:
        """Test settings with a hard limit below the base limit are rejected when the config is built."""
        settings = Settings(_env_file=None, agent_base_iteration_limit=6, agent_hard_iteration_limit=3)

        with pytest.raises(ValueError, match="hard_iteration_limit"):
            AgentConfig.from_settings(settings)

    def test_negative_base_limit_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="base_iteration_limit"):
            AgentConfig(model="m", base_iteration_limit=-1)

    def test_equal_limits_are_accepted(self) -> None:
        """Test a config without extension headroom is valid."""
        config = AgentConfig(model="m", base_iteration_limit=4, hard_iteration_limit=4)

        assert config.hard_iteration_limit == 4
