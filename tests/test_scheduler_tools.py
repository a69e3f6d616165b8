"""Tests for the agent-callable scheduler tools and the stateless agent."""

import pytest
from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from config.settings import settings
from core.agent import StatelessAgent
from core.errors import ExecutionFailure
from mcp_servers import load_plugins
from mcp_servers import scheduler_tools


@pytest.fixture(autouse=True)
def tool_db(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "scheduler_db_path", str(tmp_path / "tools.db"))
    monkeypatch.setattr(settings, "timezone", "UTC")


def _created_id(message: str) -> str:
    return message.split("with ID ")[1].split(".")[0]


class TestSchedulerTools:
    def test_create_and_list(self):
        msg = scheduler_tools.schedule_create("Water plants", "recurring", "0 8 * * *", "Remind me to water plants")
        assert msg.startswith("Created job 'Water plants' with ID ")

        listing = scheduler_tools.schedule_list()
        assert "Water plants" in listing
        assert _created_id(msg) in listing

    def test_list_empty(self):
        assert scheduler_tools.schedule_list() == "No jobs scheduled."

    def test_create_invalid_schedule_returns_error_text(self):
        msg = scheduler_tools.schedule_create("Bad", "recurring", "sometimes", "Do it")
        assert msg.startswith("Failed to create job:")
        assert scheduler_tools.schedule_list(include_all=True) == "No jobs scheduled."

    def test_pause_resume_delete(self):
        job_id = _created_id(scheduler_tools.schedule_create("Ping", "one_shot", "2030-01-01T00:00:00Z", "Ping me"))

        assert "Status: paused" in scheduler_tools.schedule_pause(job_id)
        assert scheduler_tools.schedule_list() == "No jobs scheduled."
        assert "Status: paused" in scheduler_tools.schedule_list(include_all=True)
        assert "Status: active" in scheduler_tools.schedule_resume(job_id)
        assert scheduler_tools.schedule_delete(job_id) == f"Job {job_id} deleted."

    def test_unknown_job_returns_failure_text(self):
        assert scheduler_tools.schedule_pause("missing").startswith("Failed:")
        assert scheduler_tools.schedule_delete("missing").startswith("Failed:")

    def test_plugins_register_scheduler_tools(self):
        tools = load_plugins()
        for name in ("schedule_create", "schedule_list", "schedule_pause", "schedule_resume", "schedule_delete"):
            assert name in tools


@pytest.mark.asyncio
class TestStatelessAgent:
    async def test_send_returns_model_output(self):
        def reply(messages, info: AgentInfo) -> ModelResponse:
            return ModelResponse(parts=[TextPart("All quiet.")])

        agent = StatelessAgent(FunctionModel(reply), system_prompt="Test assistant")
        result = await agent.send("Anything to report?")
        assert result.response == "All quiet."

    async def test_model_error_becomes_execution_failure(self):
        def explode(messages, info: AgentInfo) -> ModelResponse:
            raise RuntimeError("quota exceeded")

        agent = StatelessAgent(FunctionModel(explode), system_prompt="Test assistant")
        with pytest.raises(ExecutionFailure, match="quota exceeded"):
            await agent.send("Anything to report?")
