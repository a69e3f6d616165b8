"""
core/agent.py — Stateless Pydantic AI agent used by the proactive runners.

Every call is a fresh turn with no conversation history. The scheduler
tools from the plugin registry are attached so a job can schedule its
own follow-ups.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic_ai import Agent

from core.cron_types import AgentResponse
from core.errors import ExecutionFailure
from interfaces.base import AgentInterface

logger = logging.getLogger("core.agent")

IDENTITY_FILE = Path(__file__).parent.parent / "IDENTITY.md"

DEFAULT_SYSTEM_PROMPT = (
    "You are a proactive personal assistant running a scheduled task on behalf of your owner. "
    "Be concise and accurate."
)
FORMAT_RULES = "ALWAYS format your output using standard Markdown (use *, _, `, ```, lists). Do NOT use HTML tags."


def _load_identity_prompt() -> str:
    """Load the core identity prompt from IDENTITY.md, if present."""
    if IDENTITY_FILE.exists():
        return IDENTITY_FILE.read_text(encoding="utf-8").strip()
    return ""


class StatelessAgent(AgentInterface):
    """One prompt in, one Markdown response out."""

    def __init__(self, model: str, tools: Optional[list] = None, system_prompt: Optional[str] = None):
        self.model = model
        self.tools = list(tools or [])
        self.system_prompt = system_prompt
        self._agent: Optional[Agent] = None

    def _get_agent(self) -> Agent:
        # Built on first use so a missing API key only fails the run, not startup.
        if self._agent is None:
            base_prompt = self.system_prompt or _load_identity_prompt() or DEFAULT_SYSTEM_PROMPT
            self._agent = Agent(
                self.model,
                system_prompt=f"{base_prompt}\n\n{FORMAT_RULES}",
                output_type=str,
                tools=self.tools,
            )
        return self._agent

    async def send(self, prompt: str) -> AgentResponse:
        try:
            result = await self._get_agent().run(prompt)
        except Exception as e:
            raise ExecutionFailure(f"Agent run failed: {e}", cause=e) from e
        logger.info(f"  -> Agent response generated ({len(result.output)} chars)")
        return AgentResponse(response=result.output)
