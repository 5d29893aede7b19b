"""
Tests for the runtime layer.

Tests for:
- GraphRuntime
- RunReport
- create_runtime
"""

import asyncio

import pytest

from blockgraph.config.schemas import AppSettings
from blockgraph.errors import DecodeError, DocumentNotFoundError
from blockgraph.loaders import DEMO_DOCUMENT, MemoryDocumentLoader
from blockgraph.runtime import GraphRuntime, RunReport, create_runtime

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def loader(scenario_text):
    return MemoryDocumentLoader(
        {
            "scenario": scenario_text,
            "broken": 'component1 "a" { enabled = "yes" }',
        }
    )


@pytest.fixture
def runtime(loader, fast_settings):
    return GraphRuntime(loader=loader, settings=fast_settings, run_id="test-run")


# =============================================================================
# GraphRuntime Tests
# =============================================================================


class TestGraphRuntime:
    """Tests for GraphRuntime."""

    @pytest.mark.asyncio
    async def test_load_graph(self, runtime):
        graph = await runtime.load_graph("scenario")
        assert len(graph) == 3
        assert runtime.registry.frozen

    @pytest.mark.asyncio
    async def test_load_graph_construction_error(self, runtime):
        """Test construction errors propagate unchanged."""
        with pytest.raises(DecodeError):
            await runtime.load_graph("broken")

    @pytest.mark.asyncio
    async def test_load_graph_missing_document(self, runtime):
        with pytest.raises(DocumentNotFoundError):
            await runtime.load_graph("nope")

    @pytest.mark.asyncio
    async def test_run_with_duration(self, runtime):
        """Test a timed run produces a report with the wiring exercised."""
        report = await asyncio.wait_for(runtime.run("scenario", duration=0.1), 5.0)

        assert isinstance(report, RunReport)
        assert report.ok
        assert report.run_id == "test-run"
        assert report.document == "scenario"
        assert report.components == ["component1.a", "component2.b", "component2.c"]
        assert report.environment["component2_b_exports_channel"] == "<channel>"
        assert report.metrics["messages"]["received"] > 0
        assert report.duration_s > 0

    @pytest.mark.asyncio
    async def test_request_shutdown_during_run(self, runtime):
        run = asyncio.create_task(runtime.run("scenario"))
        await asyncio.sleep(0.05)
        assert runtime.scheduler is not None

        runtime.request_shutdown()
        report = await asyncio.wait_for(run, 5.0)

        assert report.ok
        assert runtime.scheduler is None

    @pytest.mark.asyncio
    async def test_request_shutdown_before_run(self, runtime):
        """Test a shutdown requested before start stops the next run at once."""
        runtime.request_shutdown()
        report = await asyncio.wait_for(runtime.run("scenario"), 5.0)
        assert report.ok

    @pytest.mark.asyncio
    async def test_duration_from_settings(self, loader):
        settings = AppSettings(run_duration=0.05, send_interval=0.01, call_interval=0.01)
        runtime = GraphRuntime(loader=loader, settings=settings)

        report = await asyncio.wait_for(runtime.run("scenario"), 5.0)

        assert report.ok

    def test_report_to_dict(self):
        report = RunReport(document="d", run_id="r", duration_s=1.23456)
        assert report.to_dict() == {
            "document": "d",
            "run_id": "r",
            "components": [],
            "environment": {},
            "failures": [],
            "metrics": {},
            "duration_s": 1.235,
        }


# =============================================================================
# create_runtime Tests
# =============================================================================


class TestCreateRuntime:
    """Tests for create_runtime."""

    @pytest.mark.asyncio
    async def test_demo_available_without_file(self, tmp_path):
        """Test "demo" falls back to the embedded document."""
        runtime = create_runtime(AppSettings(config_dir=str(tmp_path)))
        graph = await runtime.load_graph("demo")
        assert [c.label for c in graph] == ["yo", "yo2", "yo3"]

    @pytest.mark.asyncio
    async def test_file_takes_precedence(self, tmp_path):
        (tmp_path / "demo.hcl").write_text('component1 "only" {}\n')
        runtime = create_runtime(AppSettings(config_dir=str(tmp_path)))

        graph = await runtime.load_graph("demo")

        assert [c.label for c in graph] == ["only"]

    @pytest.mark.asyncio
    async def test_missing_reports_file_path(self, tmp_path):
        runtime = create_runtime(AppSettings(config_dir=str(tmp_path)))
        with pytest.raises(DocumentNotFoundError, match="missing.hcl"):
            await runtime.load_graph("missing")

    @pytest.mark.asyncio
    async def test_lists_documents(self, tmp_path):
        (tmp_path / "mine.hcl").write_text("")
        runtime = create_runtime(AppSettings(config_dir=str(tmp_path)))
        assert await runtime.loader.list_documents() == ["demo", "mine"]

    def test_custom_loader(self):
        loader = MemoryDocumentLoader({"demo": DEMO_DOCUMENT})
        runtime = create_runtime(AppSettings(), loader=loader)
        assert runtime.loader is loader
