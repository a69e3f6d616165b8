"""
Pytest configuration and fixtures for the proactive scheduler tests.

Provides:
- A controllable clock shared by the ledger and the runners
- A temporary SQLite job ledger
- Fake agent and delivery collaborators
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from core.cron_types import AgentResponse
from core.job_store import JobStore
from interfaces.base import AgentInterface


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeAgent(AgentInterface):
    """Returns a canned response, or raises ``error`` on every call."""

    def __init__(self, response: str = "Test response", error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def send(self, prompt: str) -> AgentResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return AgentResponse(response=self.response)


class BlockingAgent(FakeAgent):
    """Holds every call open until ``release`` is set."""

    def __init__(self, response: str = "Slow response"):
        super().__init__(response)
        self.release = asyncio.Event()

    async def send(self, prompt: str) -> AgentResponse:
        self.prompts.append(prompt)
        await self.release.wait()
        return AgentResponse(response=self.response)


class FakeDelivery:
    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.messages: list[str] = []

    async def deliver(self, message: str) -> bool:
        self.messages.append(message)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def clock() -> FakeClock:
    # Monday 2 June 2025, noon UTC
    return FakeClock(datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_path, clock):
    job_store = JobStore(tmp_path / "scheduler.db", clock=clock)
    yield job_store
    job_store.close()


@pytest.fixture
def agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()
