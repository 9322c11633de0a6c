"""Tests for the command-line entry point."""

from __future__ import annotations

from typing import Any

import pytest

from toolbridge import __main__ as cli
from toolbridge import __version__
from toolbridge.foundation.config import BridgeSettings, ConfluenceSettings, JiraSettings
from toolbridge.foundation.testing import StubBackend, json_response


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    for var in ("CONFLUENCE_BASE_URL", "CONFLUENCE_API_TOKEN", "CONFLUENCE_MAX_CHARS", "JIRA_BASE_URL", "JIRA_API_TOKEN"):
        monkeypatch.delenv(var, raising=False)


class TestParser:
    def test_adapter_and_options(self) -> None:
        args = cli.build_parser().parse_args(["jira", "--log-level", "debug", "--log-format", "json"])
        assert (args.adapter, args.log_level, args.log_format) == ("jira", "DEBUG", "json")

    def test_unknown_adapter(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["github"])
        assert exc_info.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"toolbridge {__version__}"


class TestMain:
    def test_missing_configuration_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["confluence"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "invalid configuration (ConfluenceSettings)" in captured.err
        assert "CONFLUENCE_BASE_URL" in captured.err
        assert "CONFLUENCE_API_TOKEN" in captured.err

    def test_invalid_url_reported(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.setenv("JIRA_BASE_URL", "jira.example.com")
        monkeypatch.setenv("JIRA_API_TOKEN", "t")
        assert cli.main(["jira"]) == 1
        assert "JIRA_BASE_URL" in capsys.readouterr().err

    def test_length_cap_below_marker_reported(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("CONFLUENCE_BASE_URL", "https://wiki.example.com")
        monkeypatch.setenv("CONFLUENCE_API_TOKEN", "t")
        monkeypatch.setenv("CONFLUENCE_MAX_CHARS", "5")
        served: list[Any] = []
        monkeypatch.setattr(cli, "serve_stdio", lambda *a: served.append(a) or 0)

        assert cli.main(["confluence"]) == 1
        err = capsys.readouterr().err
        assert "invalid configuration (ConfluenceSettings)" in err
        assert "CONFLUENCE_MAX_CHARS must be greater than the marker length (6)" in err
        assert "Traceback" not in err
        assert served == []

    def test_starts_server_with_adapter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JIRA_BASE_URL", "https://jira.example.com")
        monkeypatch.setenv("JIRA_API_TOKEN", "t")
        served: list[Any] = []

        def fake_serve(dispatcher: Any, cleanup: Any) -> int:
            served.append(dispatcher)
            return 0

        monkeypatch.setattr(cli, "serve_stdio", fake_serve)
        assert cli.main(["jira", "--log-format", "none"]) == 0
        assert "get_issue" in served[0].registry


class TestBuildDispatcher:
    @pytest.mark.asyncio
    async def test_confluence_handshake(self) -> None:
        backend = StubBackend(lambda req: json_response({}))
        settings = ConfluenceSettings(base_url="https://wiki.example.com", api_token="t")
        dispatcher, cleanup = cli.build_dispatcher("confluence", BridgeSettings(), settings, transport=backend.transport)

        reply = await dispatcher.handle_line('{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}')
        await cleanup()
        assert reply["result"]["serverInfo"] == {"name": "toolbridge-confluence", "version": __version__}
        assert len(dispatcher.registry) == 20

    def test_jira_registry(self) -> None:
        settings = JiraSettings(base_url="https://jira.example.com", api_token="t")
        dispatcher, _ = cli.build_dispatcher("jira", BridgeSettings(), settings)
        assert dispatcher.registry.names[0] == "get_projects"
        assert len(dispatcher.registry) == 11

    def test_unknown_adapter(self) -> None:
        with pytest.raises(ValueError):
            cli.build_dispatcher("github", BridgeSettings(), BridgeSettings())
