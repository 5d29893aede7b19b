"""
Graph Runtime.

The single entry point for turning a named document into running
components.

Flow:
    1. loader.load(name) fetches the source text
    2. GraphEvaluator parses and evaluates it into a Graph
    3. ExecutionScheduler runs every component until shutdown is
       requested or the run duration elapses
    4. A RunReport summarises what happened

Construction errors propagate to the caller unchanged. Execution errors
are isolated by the scheduler and show up in RunReport.failures.

Usage:
    runtime = create_runtime()
    report = await runtime.run("demo", duration=5.0)
    print(report.to_dict())
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .components import create_default_registry
from .config import get_settings
from .config.schemas import AppSettings
from .errors import DocumentNotFoundError
from .evaluator import Graph, GraphEvaluator
from .loaders import DocumentLoader, FileDocumentLoader, SourceDocument, demo_loader
from .observability import GraphLogger, RuntimeMetrics
from .registry import ComponentRegistry
from .scheduler import ExecutionScheduler, TaskFailure

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Outcome of one run."""

    document: str
    run_id: str
    components: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    failures: list[TaskFailure] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document,
            "run_id": self.run_id,
            "components": self.components,
            "environment": self.environment,
            "failures": [failure.to_dict() for failure in self.failures],
            "metrics": self.metrics,
            "duration_s": round(self.duration_s, 3),
        }


class GraphRuntime:
    """
    Loads, evaluates and runs configuration documents.

    A runtime owns one registry (frozen on construction), one loader and
    one metrics instance. Runs are sequential; request_shutdown() stops
    the run in progress and is safe to call from a signal handler.
    """

    def __init__(
        self,
        registry: ComponentRegistry | None = None,
        loader: DocumentLoader | None = None,
        *,
        settings: AppSettings | None = None,
        metrics: RuntimeMetrics | None = None,
        run_id: str | None = None,
    ):
        """
        Initialize runtime.

        Args:
            registry: Component kinds (defaults to the built-in kinds)
            loader: Document source (defaults to files under settings.config_dir)
            settings: Runtime settings (defaults to get_settings())
            metrics: Metrics instance (a fresh one by default)
            run_id: Correlation id for structured events
        """
        self.settings = settings if settings is not None else get_settings()
        self.registry = registry if registry is not None else create_default_registry(self.settings)
        self.loader = loader if loader is not None else FileDocumentLoader(self.settings.config_dir)
        self.metrics = metrics if metrics is not None else RuntimeMetrics()
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.events = GraphLogger(run_id=self.run_id)
        self.evaluator = GraphEvaluator(self.registry, metrics=self.metrics, events=self.events)
        self._scheduler: ExecutionScheduler | None = None
        self._shutdown_requested = False

    @property
    def scheduler(self) -> ExecutionScheduler | None:
        """Scheduler of the run in progress, if any."""
        return self._scheduler

    async def load_graph(self, name: str) -> Graph:
        """
        Load and evaluate a document.

        Raises:
            DocumentNotFoundError: If the loader has no such document
            BlockGraphError: On any construction error
        """
        source = await self.loader.load(name)
        return self.build_graph(source)

    def build_graph(self, source: SourceDocument) -> Graph:
        return self.evaluator.evaluate_source(source.text, source.filename)

    async def run(self, name: str, *, duration: float | None = None) -> RunReport:
        """
        Load, evaluate and run a document.

        Args:
            name: Document name, resolved by the loader
            duration: Seconds to run (defaults to settings.run_duration;
                None runs until request_shutdown())
        """
        graph = await self.load_graph(name)
        return await self.run_graph(graph, duration=duration, document=name)

    async def run_graph(
        self,
        graph: Graph,
        *,
        duration: float | None = None,
        document: str = "<graph>",
    ) -> RunReport:
        """Run an already built graph to completion."""
        if duration is None:
            duration = self.settings.run_duration

        scheduler = ExecutionScheduler(settings=self.settings, metrics=self.metrics, events=self.events)
        self._scheduler = scheduler
        if self._shutdown_requested:
            scheduler.request_shutdown()

        logger.info(
            f"[runtime] Running {document} | components={len(graph)} | "
            f"duration={duration if duration is not None else 'until signalled'}"
        )
        start_time = time.perf_counter()
        try:
            failures = await scheduler.run(graph.components, duration=duration)
        finally:
            self._scheduler = None
            self._shutdown_requested = False
        elapsed = time.perf_counter() - start_time

        report = RunReport(
            document=document,
            run_id=self.run_id,
            components=[component.name for component in graph],
            environment=graph.environment.describe(),
            failures=failures,
            metrics=self.metrics.get_stats(),
            duration_s=elapsed,
        )
        logger.info(
            f"[runtime] Run of {document} finished | failures={len(failures)} | "
            f"duration_s={elapsed:.2f}"
        )
        return report

    def request_shutdown(self) -> None:
        """Stop the run in progress, or the next one as soon as it starts."""
        if self._scheduler is not None:
            self._scheduler.request_shutdown()
        else:
            self._shutdown_requested = True


def create_runtime(
    settings: AppSettings | None = None,
    *,
    loader: DocumentLoader | None = None,
    registry: ComponentRegistry | None = None,
) -> GraphRuntime:
    """
    Create a runtime with the built-in kinds.

    Without a loader, documents are read from settings.config_dir, and
    the name "demo" falls back to the embedded demo document when no such
    file exists there.
    """
    settings = settings if settings is not None else get_settings()
    if loader is None:
        loader = _FallbackLoader(FileDocumentLoader(settings.config_dir), demo_loader())
    return GraphRuntime(registry, loader, settings=settings)


class _FallbackLoader:
    """Tries each loader in turn."""

    def __init__(self, *loaders: DocumentLoader):
        self._loaders = loaders

    async def load(self, name: str) -> SourceDocument:
        first_error: DocumentNotFoundError | None = None
        for loader in self._loaders:
            try:
                return await loader.load(name)
            except DocumentNotFoundError as e:
                first_error = first_error or e
        raise first_error or DocumentNotFoundError(f"Document '{name}' not found")

    async def list_documents(self) -> list[str]:
        names: set[str] = set()
        for loader in self._loaders:
            names.update(await loader.list_documents())
        return sorted(names)
