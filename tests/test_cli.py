"""
Tests for the relay command line (typer CliRunner, mocked transport).
"""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

import main
from relay.config.schema import RelayConfig
from relay.llm.service import LLMService
from tests.helpers import openai_body, sse

runner = CliRunner()


def _stream_or_sync(request: httpx.Request) -> httpx.Response:
    if json.loads(request.content).get("stream"):
        return httpx.Response(200, content=sse(
            {"choices": [{"delta": {"content": "Cur"}}]},
            {"choices": [{"delta": {"content": "s BNR"}}]},
        ))
    return httpx.Response(200, json=openai_body("EUR 4.97\n\nUSD 4.60"))


@pytest.fixture(autouse=True)
def _no_logging_reconfig():
    with patch.object(main, "configure_logging"):
        yield


@pytest.fixture
def service_factory():
    def build(config_path=None):
        return LLMService.from_config(
            RelayConfig(),
            {"OPENAI_API_KEY": "sk-openai"},
            client=httpx.AsyncClient(transport=httpx.MockTransport(_stream_or_sync)),
        )

    with patch.object(main, "_build_service", side_effect=build) as mock:
        yield mock


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "offices.json"
    path.write_text(json.dumps({"offices": [{"name": "Centru", "EUR": 4.97}]}))
    return path


class TestProvidersCommand:

    def test_lists_every_provider(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("RELAY_CONFIG_PATH", raising=False)
        result = runner.invoke(main.app, ["providers"])
        assert result.exit_code == 0
        for label in ("OpenAI", "Claude", "DeepSeek"):
            assert label in result.output

    def test_bad_config_exits_nonzero(self, tmp_path):
        result = runner.invoke(main.app, ["providers", "--config", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Config not found" in result.output


class TestAskCommand:

    def test_sync_answer(self, service_factory):
        result = runner.invoke(main.app, ["ask", "Best EUR rate?"])
        assert result.exit_code == 0
        assert "EUR 4.97" in result.output
        assert "openai/gpt-4-turbo" in result.output

    def test_stream_prints_incrementally(self, service_factory):
        result = runner.invoke(main.app, ["ask", "Rate?", "--stream"])
        assert result.exit_code == 0
        assert "Curs BNR" in result.output

    def test_no_provider_shows_error_panel(self):
        def build(config_path=None):
            return LLMService.from_config(RelayConfig(), {}, client=httpx.AsyncClient())

        with patch.object(main, "_build_service", side_effect=build):
            result = runner.invoke(main.app, ["ask", "hi"])
        assert result.exit_code == 1
        assert "No LLM provider is available" in result.output


class TestDataCommands:

    def test_insights(self, service_factory, data_file):
        result = runner.invoke(main.app, ["insights", str(data_file)])
        assert result.exit_code == 0
        assert "• EUR 4.97" in result.output
        assert "• USD 4.60" in result.output

    def test_question(self, service_factory, data_file):
        result = runner.invoke(main.app, ["question", "Where is EUR cheapest?", str(data_file)])
        assert result.exit_code == 0
        assert "EUR 4.97" in result.output

    def test_report(self, service_factory, data_file):
        result = runner.invoke(main.app, ["report", str(data_file), "--template", "Compare"])
        assert result.exit_code == 0
        assert "Report" in result.output

    def test_unreadable_data_file(self, service_factory, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")
        result = runner.invoke(main.app, ["insights", str(bad)])
        assert result.exit_code == 1
        assert "Could not read data file" in result.output
        service_factory.assert_not_called()
