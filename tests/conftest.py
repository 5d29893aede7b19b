"""
Pytest configuration and fixtures for blockgraph tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from blockgraph import ...` to work without installing
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from blockgraph.components import create_default_registry  # noqa: E402
from blockgraph.config.schemas import AppSettings  # noqa: E402
from blockgraph.evaluator import GraphEvaluator  # noqa: E402
from blockgraph.observability import RuntimeMetrics  # noqa: E402

SCENARIO = """
component1 "a" { enabled = true }
component2 "b" { enabled = !component1_a_exports_enabled; message = "hi" }
component2 "c" {
    enabled = !component1_a_exports_enabled; message = "hi"; channel = component2_b_exports_channel
}
"""


@pytest.fixture
def fast_settings():
    """Settings with short intervals so background loops turn over quickly."""
    return AppSettings(send_interval=0.01, call_interval=0.01)


@pytest.fixture
def registry(fast_settings):
    """Registry with the built-in kinds."""
    return create_default_registry(fast_settings)


@pytest.fixture
def metrics():
    return RuntimeMetrics()


@pytest.fixture
def evaluator(registry, metrics):
    """Evaluator over the built-in kinds."""
    return GraphEvaluator(registry, metrics=metrics)


@pytest.fixture
def scenario_text():
    """Three-block document: a flag, a producer, and a consumer of its channel."""
    return SCENARIO
