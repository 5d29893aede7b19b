"""
Tests for the built-in components.

Tests for:
- PassThroughComponent (component1)
- MessengerComponent (component2)
- Channel and function wiring between running components
"""

import asyncio
import logging

import pytest

from blockgraph.components import MessengerComponent, MessengerConfig, PassThroughComponent, PassThroughConfig
from blockgraph.errors import CapabilityRevokedError
from blockgraph.scheduler import ExecutionScheduler
from blockgraph.values import BoolValue, ChannelHandle, FunctionHandle, StringValue

WIRED = """
component2 "b" { message = "producer" }
component2 "c" {
    channel  = component2_b_exports_channel
    function = component2_b_exports_function
}
"""

READER_ONLY = """
component2 "b" {}
component2 "c" { channel = component2_b_exports_channel }
"""


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


# =============================================================================
# PassThroughComponent Tests
# =============================================================================


class TestPassThroughComponent:
    """Tests for component1."""

    def test_exports_enabled(self):
        component = PassThroughComponent()
        component.kind = "component1"
        component.configure("a", PassThroughConfig(enabled=True))

        assert dict(component.exports()) == {"enabled": BoolValue(True)}
        assert component.name == "component1.a"

    def test_exports_are_read_only(self):
        component = PassThroughComponent()
        component.configure("a", PassThroughConfig())
        with pytest.raises(TypeError):
            component.exports()["enabled"] = BoolValue(True)

    @pytest.mark.asyncio
    async def test_run_reports_state(self, caplog):
        component = PassThroughComponent()
        component.kind = "component1"
        component.configure("a", PassThroughConfig(enabled=True))
        scheduler = ExecutionScheduler()

        with caplog.at_level(logging.INFO, logger="blockgraph.components.passthrough"):
            await scheduler.start([component])

        assert "[passthrough] Running component1.a | enabled=True" in caplog.text
        assert scheduler.tasks == []
        await scheduler.shutdown()


# =============================================================================
# MessengerComponent Tests
# =============================================================================


class TestMessengerComponent:
    """Tests for component2 configuration and exports."""

    def test_exports(self):
        component = MessengerComponent()
        component.kind = "component2"
        component.configure("b", MessengerConfig(enabled=True, message="hi"))
        exports = component.exports()

        assert list(exports) == ["enabled", "message", "channel", "function"]
        assert exports["enabled"] == BoolValue(True)
        assert exports["message"] == StringValue("hi")
        assert isinstance(exports["channel"], ChannelHandle)
        assert isinstance(exports["function"], FunctionHandle)

    def test_channel_named_after_export(self):
        component = MessengerComponent()
        component.kind = "component2"
        component.configure("b", MessengerConfig())

        assert component.output_channel.name == "component2_b_exports_channel"

    def test_channel_capacity_from_factory(self):
        component = MessengerComponent(channel_capacity=5)
        component.configure("b", MessengerConfig())
        assert component.output_channel.capacity == 5

    def test_function_returns_greeting(self):
        component = MessengerComponent()
        component.configure("b", MessengerConfig())
        assert component.exports()["function"]() == "hello from b"

    def test_config_is_strict(self):
        with pytest.raises(ValueError):
            MessengerConfig(message=1)

    def test_registry_factory_uses_settings(self, registry, fast_settings):
        component = registry.lookup("component2").instantiate()
        component.configure("b", MessengerConfig())
        assert component.output_channel.capacity == fast_settings.channel_capacity

    @pytest.mark.asyncio
    async def test_cleanup_closes_channel_and_revokes_function(self):
        component = MessengerComponent()
        component.configure("b", MessengerConfig())

        await component.cleanup()

        assert component.output_channel.closed
        with pytest.raises(CapabilityRevokedError):
            component.exports()["function"]()


# =============================================================================
# Wiring Tests
# =============================================================================


class TestWiring:
    """Tests for running components connected through capability handles."""

    @pytest.mark.asyncio
    async def test_scenario_consumer_receives_producer_messages(
        self, evaluator, scenario_text, fast_settings, metrics
    ):
        """Test c's reader observes messages written by b's writer."""
        graph = evaluator.evaluate_source(scenario_text)
        c = graph.require("component2", "c")
        scheduler = ExecutionScheduler(settings=fast_settings, metrics=metrics)

        await scheduler.start(graph.components)
        try:
            await wait_until(lambda: len(c.received) >= 3)
        finally:
            await scheduler.shutdown()

        assert set(c.received) == {"A message from b"}
        assert metrics.messages_received == len(c.received)
        assert metrics.messages_sent >= len(c.received)
        assert scheduler.failures == []

    @pytest.mark.asyncio
    async def test_messages_delivered_once_in_order(self, evaluator, fast_settings):
        """Test every message sent on b's channel reaches c exactly once, in order."""
        graph = evaluator.evaluate_source(WIRED)
        b = graph.require("component2", "b")
        c = graph.require("component2", "c")
        scheduler = ExecutionScheduler(settings=fast_settings)

        # Only the consumer runs, so the test is the only producer
        await scheduler.start([c])
        try:
            for message in ("x", "y", "z"):
                await b.output_channel.send(message)
            await wait_until(lambda: len(c.received) >= 3)
            await asyncio.sleep(0.02)
        finally:
            await scheduler.shutdown()

        assert c.received == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_consumer_calls_producer_function(self, evaluator, fast_settings):
        graph = evaluator.evaluate_source(WIRED)
        c = graph.require("component2", "c")
        scheduler = ExecutionScheduler(settings=fast_settings)

        await scheduler.start(graph.components)
        try:
            await wait_until(lambda: len(c.call_results) >= 2)
        finally:
            await scheduler.shutdown()

        assert set(c.call_results) == {"hello from b"}

    @pytest.mark.asyncio
    async def test_tasks_per_component(self, evaluator, fast_settings):
        """Test readers and callers start only when wired."""
        graph = evaluator.evaluate_source(WIRED)
        scheduler = ExecutionScheduler(settings=fast_settings)

        await scheduler.start(graph.components)
        names = sorted(task.get_name() for task in scheduler.tasks)
        await scheduler.shutdown()

        assert names == [
            "component2.b:writer",
            "component2.c:caller",
            "component2.c:reader",
            "component2.c:writer",
        ]

    @pytest.mark.asyncio
    async def test_reader_stops_at_end_of_stream(self, evaluator, fast_settings):
        """Test a reader finishes normally once its producer closes the channel."""
        graph = evaluator.evaluate_source(READER_ONLY)
        b = graph.require("component2", "b")
        c = graph.require("component2", "c")
        scheduler = ExecutionScheduler(settings=fast_settings)

        await scheduler.start([c])
        await b.output_channel.send("last")
        await b.cleanup()
        await wait_until(lambda: "component2.c:reader" not in {t.get_name() for t in scheduler.tasks})
        await scheduler.shutdown()

        assert c.received == ["last"]
        assert scheduler.failures == []

    @pytest.mark.asyncio
    async def test_revoked_function_fails_caller_task_only(self, evaluator, fast_settings):
        """Test a caller hitting a revoked function is isolated as a task failure."""
        graph = evaluator.evaluate_source(WIRED)
        b = graph.require("component2", "b")
        c = graph.require("component2", "c")
        b.output_function.revoke()
        scheduler = ExecutionScheduler(settings=fast_settings)

        await scheduler.start([c])
        await wait_until(lambda: scheduler.failures)
        remaining = sorted(task.get_name() for task in scheduler.tasks)
        await scheduler.shutdown()

        failure = scheduler.failures[0]
        assert failure.task == "caller"
        assert isinstance(failure.error, CapabilityRevokedError)
        assert remaining == ["component2.c:reader", "component2.c:writer"]
