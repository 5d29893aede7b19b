"""
Tests for the command line.

Tests for:
- Exit codes
- --check output
- Settings overrides
- Signal-driven shutdown
"""

import asyncio
import logging
import os
import signal
import sys

import pytest

from blockgraph import cli
from blockgraph.config import get_settings
from blockgraph.runtime import create_runtime


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at an empty directory with fast intervals."""
    monkeypatch.setenv("BLOCKGRAPH_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("BLOCKGRAPH_SEND_INTERVAL", "0.01")
    monkeypatch.setenv("BLOCKGRAPH_CALL_INTERVAL", "0.01")
    monkeypatch.delenv("BLOCKGRAPH_RUN_DURATION", raising=False)
    get_settings.cache_clear()

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


class TestCheck:
    """Tests for --check."""

    def test_check_demo_prints_exports(self, capsys):
        exit_code = cli.main(["--check"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "component1_yo_exports_enabled = true" in out
        assert "component2_yo2_exports_message = 'yo is enabled'" in out
        assert "component2_yo2_exports_channel = <channel>" in out

    def test_check_file(self, tmp_path, capsys):
        path = tmp_path / "one.hcl"
        path.write_text('component1 "a" { enabled = false }\n')

        exit_code = cli.main([str(path), "--check"])

        assert exit_code == 0
        assert "component1_a_exports_enabled = false" in capsys.readouterr().out


class TestExitCodes:
    """Tests for process exit codes."""

    def test_construction_error_exits_1(self, tmp_path, capsys):
        path = tmp_path / "bad.hcl"
        path.write_text('component1 "a" { enabled = "yes" }\n')

        exit_code = cli.main([str(path)])

        assert exit_code == 1
        assert "error:" in capsys.readouterr().err

    def test_missing_document_exits_1(self, capsys):
        assert cli.main(["does-not-exist"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_timed_run_exits_0(self, capsys):
        exit_code = cli.main(["--duration", "0.05"])

        assert exit_code == 0
        assert "Ran 3 components" in capsys.readouterr().out

    def test_report_json(self, capsys):
        exit_code = cli.main(["--duration", "0.05", "--report"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert '"components": [' in out

    def test_non_positive_duration_exits_1(self):
        assert cli.main(["--duration", "0"]) == 1

    def test_interrupt_exits_130(self, monkeypatch):
        def interrupted(settings):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli, "create_runtime", interrupted)

        assert cli.main([]) == 130

    @pytest.mark.parametrize(
        "name,value",
        [
            ("BLOCKGRAPH_SEND_INTERVAL", "fast"),
            ("BLOCKGRAPH_CALL_INTERVAL", "-1"),
            ("BLOCKGRAPH_CHANNEL_CAPACITY", "lots"),
        ],
    )
    def test_invalid_environment_exits_1(self, monkeypatch, capsys, name, value):
        monkeypatch.setenv(name, value)

        exit_code = cli.main(["--check"])

        assert exit_code == 1
        assert "error: invalid settings" in capsys.readouterr().err

    def test_invalid_log_level_exits_1(self, capsys):
        exit_code = cli.main(["--check", "--log-level", "bogus"])

        assert exit_code == 1
        assert "unknown log level" in capsys.readouterr().err


# =============================================================================
# Signals
# =============================================================================


@pytest.mark.skipif(sys.platform == "win32", reason="signal handlers need a Unix event loop")
class TestSignals:
    """Tests for SIGTERM/SIGINT handling during a run."""

    @pytest.mark.asyncio
    async def test_sigterm_shuts_down_cleanly(self, capsys):
        runtime = create_runtime(get_settings())
        graphs = []
        load_graph = runtime.load_graph

        async def recording_load_graph(name):
            graph = await load_graph(name)
            graphs.append(graph)
            return graph

        runtime.load_graph = recording_load_graph

        async def terminate_when_running():
            while runtime.scheduler is None or not runtime.scheduler.started:
                await asyncio.sleep(0.005)
            await asyncio.sleep(0.05)
            os.kill(os.getpid(), signal.SIGTERM)

        loop = asyncio.get_running_loop()
        killer = asyncio.create_task(terminate_when_running())
        try:
            exit_code = await asyncio.wait_for(cli.run_document(runtime, "demo"), 5.0)
        finally:
            killer.cancel()
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGTERM)

        assert exit_code == 0
        assert "Ran 3 components" in capsys.readouterr().out
        producer = graphs[0].require("component2", "yo2")
        assert producer.output_channel.closed
        assert producer.output_function.revoked


class TestOverrides:
    """Tests for flag overrides."""

    def test_log_level_flag(self):
        cli.main(["--check", "--log-level", "warning"])
        assert logging.getLogger().level == logging.WARNING

    def test_parser_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.document == "demo"
        assert args.duration is None
        assert not args.json_logs
