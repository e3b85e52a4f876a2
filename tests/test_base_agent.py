import pytest

import benchmark
from agents.base_agent import AgentState, BaseAgent


class FlakyAgent(BaseAgent):
    """Fails whenever asked to."""

    def execute(self, fail=False, **kwargs):
        if fail:
            raise RuntimeError("boom")
        return "done"


@pytest.fixture
def agent():
    return FlakyAgent("Flaky", verbose=False)


def test_successful_execution(agent):
    assert agent.safe_execute() == "done"
    assert agent.agent_state == AgentState.COMPLETED
    assert agent.get_metrics()["executions"] == 1


def test_errors_degrade_then_raise(agent):
    assert agent.safe_execute(fail=True) is None
    assert agent.safe_execute(fail=True) is None
    assert agent.health_check()

    with pytest.raises(RuntimeError):
        agent.safe_execute(fail=True)
    assert not agent.health_check()

    agent.startup()
    assert agent.health_check()


def test_shutdown(agent):
    agent.shutdown()

    assert agent.agent_state == AgentState.SHUTDOWN
    assert not agent.health_check()


def test_file_logging(tmp_path, agent):
    log_file = BaseAgent.setup_file_logging(str(tmp_path))
    try:
        agent.log("written to file", "warning")
    finally:
        BaseAgent.close_file_logging()

    content = open(log_file, encoding="utf-8").read()
    assert "[Flaky] written to file" in content
    assert "WARNING" in content


def test_profiled_calls_are_recorded():
    benchmark.clear_profile_data()

    @benchmark.profile_function
    def square(x):
        return x * x

    assert square(3) == 9
    summary = benchmark.get_profile_summary()

    assert len(summary) == 1
    stats = next(iter(summary.values()))
    assert stats["call_count"] == 1
    assert stats["failure_count"] == 0
    benchmark.clear_profile_data()


def test_synthetic_roster():
    stores, employees = benchmark.build_synthetic_roster(store_count=2, employees_per_store=3)

    assert len(stores) == 2
    assert len(employees) == 6
    assert all(e.store_id in {s.id for s in stores} for e in employees)
