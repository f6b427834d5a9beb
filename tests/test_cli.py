"""
Tests for terminal rendering and the CLI commands.
"""

import json

import pytest

import main
from collectors.registry import SourceRegistry
from delivery.output import format_progress, summary_line
from models import AggregateResult, Article
from orchestrator.engine import CollectionOrchestrator
from storage.db import Storage

from conftest import StubCollector


@pytest.fixture
def stub_run(monkeypatch, config):
    """Point the CLI at stub sources and a temp database."""
    def build(_config):
        registry = SourceRegistry([
            StubCollector("a", 3, label="Alpha"),
            StubCollector("b", label="Beta", error=RuntimeError("HTTP 500")),
        ])
        orch = CollectionOrchestrator(registry, max_items=50)
        orch.initialize()
        return orch

    monkeypatch.setattr(main, "build_orchestrator", build)
    monkeypatch.setattr(main, "load_config", lambda: config)
    return config


class TestRendering:
    def test_summary_line(self):
        result = AggregateResult(12, {"a": 12, "b": 0}, [], ["Beta collection failed: x"])
        assert summary_line(result) == "12 items collected, 1 sources failed"

    def test_every_event_renders(self, stub_run):
        events = list(main.build_orchestrator(stub_run).stream())
        lines = [format_progress(e) for e in events]

        assert lines[0].startswith("[  0%] Collecting from 2 sources: Alpha, Beta")
        assert any("Beta collection failed: HTTP 500" in line for line in lines)
        assert lines[-1] == "[100%] Done. 3 items collected, 1 sources failed"

    def test_unknown_object(self):
        with pytest.raises(TypeError):
            format_progress(Article(title="t", content="c"))


class TestCommands:
    def test_collect_json(self, stub_run, capsys):
        main.cli(["collect", "--json", "--no-save"])
        data = json.loads(capsys.readouterr().out)

        assert data["totalCollected"] == 3
        assert data["bySource"] == {"a": 3, "b": 0}

    def test_collect_saves(self, stub_run, capsys):
        main.cli(["collect"])
        out = capsys.readouterr().out

        assert "3 items collected, 1 sources failed" in out
        assert "3 new evidence rows stored" in out
        storage = Storage(stub_run.db_path)
        try:
            assert storage.get_stats()["total_evidence"] == 3
        finally:
            storage.close()

    def test_collect_single_source(self, stub_run, capsys):
        main.cli(["collect", "--source", "a", "--json", "--no-save"])
        assert json.loads(capsys.readouterr().out)["bySource"] == {"a": 3}

    def test_collect_unknown_source(self, stub_run, capsys):
        with pytest.raises(SystemExit) as exc:
            main.cli(["collect", "--source", "zzz", "--no-save"])
        assert exc.value.code == 2
        assert "Unknown source" in capsys.readouterr().err

    def test_stream(self, stub_run, capsys):
        main.cli(["stream", "--no-save"])
        out = capsys.readouterr().out.splitlines()

        assert out[0].startswith("[  0%]")
        assert out[-1].startswith("[100%] Done.")

    def test_stats(self, stub_run, capsys):
        main.cli(["collect", "--no-save"])
        main.cli(["stats"])
        assert "Total evidence: 0" in capsys.readouterr().out

    def test_sources(self, stub_run, capsys):
        main.cli(["sources"])
        out = capsys.readouterr().out
        assert "2 sources" in out
        assert "Alpha" in out

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit):
            main.cli([])
