"""Tests for the LLM schedule planner wrapper (provider calls are faked)."""
import asyncio
from types import SimpleNamespace

import pytest

from shootplan.scheduling.agents import schedule_planner_agent
from shootplan.scheduling.agents.schedule_planner_agent import SchedulePlannerAgent
from shootplan.scheduling.errors import UpstreamError

CONFIG = {
    "provider": "openai",
    "model": "gpt-4.1-mini",
    "timeout_seconds": 5,
    "max_attempts": 3,
}


class FakeRunner:
    """Stands in for ``agents.Runner``; replays queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def run(self, agent, prompt):
        self.calls.append((agent, prompt))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return SimpleNamespace(final_output=await outcome())
        return SimpleNamespace(final_output=outcome)


@pytest.fixture
def make_agent(monkeypatch):
    def _make(*outcomes, **config):
        runner = FakeRunner(*outcomes)
        monkeypatch.setattr(schedule_planner_agent, "Runner", runner)
        agent = SchedulePlannerAgent({**CONFIG, **config}, retry_wait_min=0, retry_wait_max=0)
        return agent, runner
    return _make


class TestSchedulePlannerAgent:
    @pytest.mark.asyncio
    async def test_returns_model_text(self, make_agent):
        agent, runner = make_agent('{"days": []}')

        text = await agent.plan("system prompt", "user prompt", max_tokens=1234, temperature=0.2)

        assert text == '{"days": []}'
        llm_agent, prompt = runner.calls[0]
        assert prompt == "user prompt"
        assert llm_agent.instructions == "system prompt"
        assert llm_agent.model == "gpt-4.1-mini"
        assert llm_agent.model_settings.max_tokens == 1234
        assert llm_agent.model_settings.temperature == 0.2

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, make_agent):
        agent, runner = make_agent(asyncio.TimeoutError(), ConnectionError("reset"), '{"days": []}')

        assert await agent.plan("s", "u") == '{"days": []}'
        assert len(runner.calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, make_agent):
        agent, runner = make_agent(asyncio.TimeoutError())

        with pytest.raises(UpstreamError) as exc:
            await agent.plan("s", "u")

        assert "timed out" in exc.value.message
        assert len(runner.calls) == 3

    @pytest.mark.asyncio
    async def test_per_attempt_deadline(self, make_agent):
        async def slow():
            await asyncio.sleep(1)
            return "late"

        agent, runner = make_agent(slow, timeout_seconds=0.01, max_attempts=2)

        with pytest.raises(UpstreamError) as exc:
            await agent.plan("s", "u")

        assert "timed out" in exc.value.message
        assert len(runner.calls) == 2

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self, make_agent):
        agent, runner = make_agent(ValueError("bad request"))

        with pytest.raises(UpstreamError) as exc:
            await agent.plan("s", "u")

        assert exc.value.message == "Schedule planner failed: bad request"
        assert exc.value.status_code == 500
        assert len(runner.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output", ["", "   \n", None])
    async def test_empty_output(self, make_agent, output):
        agent, _ = make_agent(output)

        with pytest.raises(UpstreamError) as exc:
            await agent.plan("s", "u")

        assert exc.value.message == "Empty response from schedule planner"
