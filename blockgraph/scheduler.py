"""
Execution scheduler.

Runs a built graph:

1. start(): call run(ctx) on every component, in construction order.
   Components start background coroutines through ctx.spawn(); the
   scheduler owns the resulting tasks.
2. wait_for_shutdown(): block until request_shutdown() is called (signal
   handler, test harness) or a timeout elapses.
3. shutdown(): cancel every task, wait for all of them to finish, then
   call cleanup() on every component in reverse construction order.

Failure isolation:
    A task that raises is logged and recorded as a TaskFailure. Nothing is
    re-raised and no other task is affected. The same applies to run() and
    cleanup() raising.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from .config.schemas import AppSettings
from .observability import RuntimeMetrics

if TYPE_CHECKING:
    from .component import Component
    from .observability import GraphLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskFailure:
    """An execution-phase failure isolated by the scheduler."""

    component: str
    task: str
    error: BaseException
    phase: Literal["run", "task", "cleanup"] = "task"

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "task": self.task,
            "phase": self.phase,
            "error_type": type(self.error).__name__,
            "error": str(self.error),
        }


class RunContext:
    """
    Handed to Component.run().

    Gives a component access to runtime settings and metrics, and lets it
    start background coroutines owned by the scheduler.
    """

    def __init__(self, scheduler: ExecutionScheduler, component: Component):
        self._scheduler = scheduler
        self.component = component

    @property
    def settings(self) -> AppSettings:
        return self._scheduler.settings

    @property
    def metrics(self) -> RuntimeMetrics:
        return self._scheduler.metrics

    @property
    def stopping(self) -> bool:
        return self._scheduler.stopping

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        """
        Start a background task for this component.

        The task is cancelled at shutdown. If it raises, the failure is
        recorded and logged; it never propagates.
        """
        return self._scheduler._spawn(self.component, coro, name)


class ExecutionScheduler:
    """
    Starts components and owns their background tasks.

    Example:
        scheduler = ExecutionScheduler(settings=settings)
        failures = await scheduler.run(graph.components, duration=10.0)

        # Or step by step
        await scheduler.start(graph.components)
        await scheduler.wait_for_shutdown()
        await scheduler.shutdown()
    """

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        metrics: RuntimeMetrics | None = None,
        events: GraphLogger | None = None,
    ):
        self.settings = settings if settings is not None else AppSettings()
        self.metrics = metrics if metrics is not None else RuntimeMetrics()
        self._events = events
        self._components: list[Component] = []
        self._tasks: dict[asyncio.Task, tuple[str, str]] = {}
        self._failures: list[TaskFailure] = []
        self._shutdown_event = asyncio.Event()
        self._started = False
        self._stopping = False
        self._stopped = False
        self._shutdown_task: asyncio.Future | None = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def stopping(self) -> bool:
        return self._stopping

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def tasks(self) -> list[asyncio.Task]:
        """Background tasks that have not finished yet."""
        return [task for task in self._tasks if not task.done()]

    @property
    def failures(self) -> list[TaskFailure]:
        return list(self._failures)

    async def start(self, components: Sequence[Component]) -> None:
        """
        Run every component, in order.

        Raises:
            RuntimeError: If the scheduler was already started
        """
        if self._started:
            raise RuntimeError("Scheduler already started")
        self._started = True
        self._components = list(components)

        logger.info(f"[scheduler] Starting {len(self._components)} components")

        for component in self._components:
            before = len(self._tasks)
            try:
                component.run(RunContext(self, component))
            except Exception as e:
                logger.error(f"[scheduler] Component '{component.name}' failed to run: {e}", exc_info=True)
                self._record_failure(component.name, "run", e, "run")
                continue

            self.metrics.components_started += 1
            task_count = len(self._tasks) - before
            logger.debug(f"[scheduler] Started {component.name} | tasks={task_count}")
            if self._events:
                self._events.component_started(component.name, task_count)

    def request_shutdown(self) -> None:
        """Trigger shutdown. Safe to call from a signal handler."""
        if not self._shutdown_event.is_set():
            logger.info("[scheduler] Shutdown requested")
            self._shutdown_event.set()

    async def wait_for_shutdown(self, timeout: float | None = None) -> bool:
        """
        Wait until shutdown is requested.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if shutdown was requested, False if the timeout elapsed
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout)
            return True
        except TimeoutError:
            return False

    async def shutdown(self) -> None:
        """
        Cancel every task, wait for them, then clean up components.

        Concurrent callers share one shutdown: every caller returns only
        once cleanup has finished.
        """
        if self._shutdown_task is None:
            self._stopping = True
            self._shutdown_task = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        start_time = time.perf_counter()

        pending = self.tasks
        logger.info(f"[scheduler] Shutting down | tasks={len(pending)}")
        if self._events:
            self._events.shutdown_started(len(pending))

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        for component in reversed(self._components):
            try:
                await component.cleanup()
            except Exception as e:
                logger.error(f"[scheduler] Cleanup of '{component.name}' failed: {e}", exc_info=True)
                self._record_failure(component.name, "cleanup", e, "cleanup")

        self._stopped = True
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"[scheduler] Shutdown complete | failures={len(self._failures)} | "
            f"duration_ms={duration_ms:.1f}"
        )
        if self._events:
            self._events.shutdown_completed(len(self._failures), duration_ms)

    async def run(
        self,
        components: Sequence[Component],
        *,
        duration: float | None = None,
    ) -> list[TaskFailure]:
        """
        Start, wait for a shutdown trigger (or `duration` seconds), shut down.

        Returns:
            Failures recorded during the run
        """
        await self.start(components)
        try:
            await self.wait_for_shutdown(duration)
        finally:
            await self.shutdown()
        return self.failures

    def _spawn(
        self,
        component: Component,
        coro: Coroutine[Any, Any, Any],
        name: str,
    ) -> asyncio.Task:
        if self._stopping:
            coro.close()
            raise RuntimeError(f"Cannot start '{name}' for '{component.name}': scheduler is stopping")

        task = asyncio.get_running_loop().create_task(coro, name=f"{component.name}:{name}")
        self._tasks[task] = (component.name, name)
        task.add_done_callback(self._on_task_done)
        self.metrics.tasks_started += 1
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        component, name = self._tasks.pop(task)
        if task.cancelled():
            self.metrics.tasks_cancelled += 1
            return

        error = task.exception()
        if error is None:
            logger.debug(f"[scheduler] Task '{task.get_name()}' finished")
            return

        logger.error(f"[scheduler] Task '{task.get_name()}' failed: {error}", exc_info=error)
        self._record_failure(component, name, error, "task")

    def _record_failure(
        self,
        component: str,
        task: str,
        error: BaseException,
        phase: Literal["run", "task", "cleanup"],
    ) -> None:
        self._failures.append(TaskFailure(component=component, task=task, error=error, phase=phase))
        if phase == "task":
            self.metrics.tasks_failed += 1
        if self._events:
            self._events.task_failed(component, task, str(error), type(error).__name__)
