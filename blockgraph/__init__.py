"""
blockgraph - declarative component graphs from block configuration documents.

A document is a sequence of typed, labelled blocks. Each block becomes a
component; its exports are bound as `{kind}_{label}_exports_{field}` and
can be referenced by any block declared after it, including live
capabilities such as channels and functions:

    component1 "a" {
        enabled = true
    }

    component2 "b" {
        enabled = !component1_a_exports_enabled
        message = component1_a_exports_enabled ? "a is on" : "a is off"
    }

    component2 "c" {
        channel  = component2_b_exports_channel
        function = component2_b_exports_function
    }

Quick Start:
    >>> from blockgraph import create_runtime
    >>>
    >>> runtime = create_runtime()
    >>> report = await runtime.run("demo", duration=3.0)

Custom kinds:
    >>> registry = create_default_registry()
    >>> registry.register(ComponentKind("timer", TimerConfig, TimerComponent))
    >>> graph = GraphEvaluator(registry).evaluate_source(text)
"""

__version__ = "0.1.0"
__license__ = "MIT"

from blockgraph.component import Component
from blockgraph.components import create_default_registry
from blockgraph.config import AppSettings, get_settings
from blockgraph.errors import (
    BlockGraphError,
    CapabilityTypeError,
    DecodeError,
    DuplicateExportError,
    ParseError,
    SchemaMismatchError,
)
from blockgraph.evaluator import Graph, GraphEvaluator
from blockgraph.registry import ComponentKind, ComponentRegistry
from blockgraph.runtime import GraphRuntime, RunReport, create_runtime
from blockgraph.scheduler import ExecutionScheduler, RunContext
from blockgraph.values import BoolValue, ChannelHandle, ExportValue, FunctionHandle, StringValue

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Graph construction
    "Component",
    "ComponentKind",
    "ComponentRegistry",
    "Graph",
    "GraphEvaluator",
    "create_default_registry",
    # Values
    "BoolValue",
    "ChannelHandle",
    "ExportValue",
    "FunctionHandle",
    "StringValue",
    # Execution
    "ExecutionScheduler",
    "GraphRuntime",
    "RunContext",
    "RunReport",
    "create_runtime",
    # Settings
    "AppSettings",
    "get_settings",
    # Errors
    "BlockGraphError",
    "CapabilityTypeError",
    "DecodeError",
    "DuplicateExportError",
    "ParseError",
    "SchemaMismatchError",
]
