"""
Graph evaluator.

Drives the construction phase, in a single left-to-right pass:

1. Validate every block header against the registry (kind registered,
   label count matches) before anything is decoded
2. For each block, in source order:
   a. decode it against the environment built so far
   b. instantiate the kind and configure it
   c. bind its exports as {kind}_{label}_exports_{field}
3. Freeze the environment and return the Graph

Only backward references resolve: a block can use exports of blocks
declared before it, never after. There is no dependency analysis, no
reordering and no cycle detection. Any error aborts the whole evaluation;
no partially built graph is returned.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

from .component import Component
from .decoder import BlockDecoder
from .environment import VariableEnvironment, export_prefix
from .errors import BlockGraphError, DecodeError, DuplicateExportError, LabelArityError, UnknownKindError
from .observability import GraphLogger, RuntimeMetrics
from .registry import ComponentRegistry
from .syntax.parser import Document, RawBlock, parse

logger = logging.getLogger(__name__)


@dataclass
class Graph:
    """Result of evaluating a document: configured components and their exports."""

    components: list[Component] = field(default_factory=list)
    environment: VariableEnvironment = field(default_factory=VariableEnvironment)

    def get(self, kind: str, label: str) -> Component | None:
        for component in self.components:
            if component.kind == kind and component.label == label:
                return component
        return None

    def require(self, kind: str, label: str) -> Component:
        component = self.get(kind, label)
        if component is None:
            raise KeyError(f'No component {kind} "{label}" in graph')
        return component

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)


class GraphEvaluator:
    """
    Builds a Graph from a parsed document.

    Example:
        evaluator = GraphEvaluator(create_default_registry())
        graph = evaluator.evaluate_source(text, filename="demo.hcl")

        for component in graph:
            print(component.name, dict(component.exports()))
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        *,
        decoder: BlockDecoder | None = None,
        metrics: RuntimeMetrics | None = None,
        events: GraphLogger | None = None,
    ):
        """
        Initialize evaluator.

        The registry is frozen: no kind can be registered once documents
        are being evaluated against it.
        """
        registry.freeze()
        self._registry = registry
        self._decoder = decoder or BlockDecoder()
        self._metrics = metrics
        self._events = events

    @property
    def registry(self) -> ComponentRegistry:
        return self._registry

    def validate(self, document: Document) -> None:
        """
        Check every block header against the registered block schemas.

        Raises:
            UnknownKindError: If a block kind is not registered
            LabelArityError: If a block has the wrong number of labels
        """
        schemas = {schema.kind: schema for schema in self._registry.block_schemas()}

        for block in document:
            schema = schemas.get(block.kind)
            if schema is None:
                available = ", ".join(schemas) or "none"
                raise UnknownKindError(
                    f"unknown component kind '{block.kind}' (registered: {available})",
                    kind=block.kind,
                    line=block.line,
                )
            if len(block.labels) != schema.label_arity:
                raise LabelArityError(
                    f"{block.kind} blocks take exactly {schema.label_arity} label(s) "
                    f"({', '.join(schema.label_names)}), got {len(block.labels)}",
                    kind=block.kind,
                    line=block.line,
                )

    def evaluate(self, document: Document) -> Graph:
        """
        Evaluate a parsed document.

        Raises:
            SchemaMismatchError: On unknown kinds or wrong label counts
            DecodeError: On attribute failures (including forward references)
            DuplicateExportError: On (kind, label) or export name collisions
        """
        start_time = time.perf_counter()
        logger.info(f"[evaluator] Evaluating {document.filename} | blocks={len(document)}")
        if self._events:
            self._events.evaluation_started(document.filename, len(document))

        try:
            graph = self._evaluate(document)
        except BlockGraphError as e:
            logger.error(f"[evaluator] Evaluation of {document.filename} failed: {e}")
            if self._events:
                self._events.evaluation_failed(str(e), type(e).__name__)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"[evaluator] Graph built | components={len(graph)} | "
            f"exports={len(graph.environment)} | duration_ms={duration_ms:.1f}"
        )
        if self._events:
            self._events.evaluation_completed(len(graph), len(graph.environment), duration_ms)
        return graph

    def evaluate_source(self, text: str, filename: str = "<config>") -> Graph:
        """Parse and evaluate source text."""
        return self.evaluate(parse(text, filename))

    def _evaluate(self, document: Document) -> Graph:
        self.validate(document)

        environment = VariableEnvironment()
        components: list[Component] = []
        seen: set[tuple[str, str]] = set()

        for index, block in enumerate(document.blocks):
            descriptor = self._registry.lookup(block.kind)

            try:
                config = self._decoder.decode(block, descriptor, environment.view())
            except DecodeError as e:
                explained = self._explain_forward_reference(e, document.blocks[index + 1 :])
                if explained is e:
                    raise
                raise explained from e

            component = descriptor.instantiate()
            component.configure(block.label, config)

            key = (block.kind, block.label)
            if key in seen:
                raise DuplicateExportError(
                    export_prefix(block.kind, block.label),
                    f'line {block.line}: {block.kind} "{block.label}" is declared more than once',
                )
            seen.add(key)

            bound = environment.bind_exports(block.kind, block.label, component.exports())
            components.append(component)

            logger.debug(f"[evaluator] Configured {component.name} | exports={bound}")
            if self._metrics:
                self._metrics.record_block(len(bound))
            if self._events:
                self._events.block_decoded(block.kind, block.label, [a.name for a in block.attributes])
                self._events.exports_bound(block.kind, block.label, bound)

        environment.freeze()
        return Graph(components=components, environment=environment)

    def _explain_forward_reference(
        self,
        error: DecodeError,
        later_blocks: tuple[RawBlock, ...],
    ) -> DecodeError:
        """Point out unknown variables that a later block would have exported."""
        if error.variable is None:
            return error
        for later in later_blocks:
            if error.variable.startswith(export_prefix(later.kind, later.label)):
                return error.with_context(
                    reason=(
                        f"unknown variable '{error.variable}': it is exported by "
                        f'{later.kind} "{later.label}" declared later (line {later.line}); '
                        "blocks can only reference exports of blocks declared before them"
                    )
                )
        return error
