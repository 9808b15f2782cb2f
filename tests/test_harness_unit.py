import io
import json
import logging
import sys

import pytest

import config
import webvizio_mcp
from util.logging_setup import ROOT_LOGGER, configure_logging, get_logger


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "USER_CONFIG_PATH", tmp_path / "no-config.yaml")
    monkeypatch.delenv(config.API_KEY_ENV, raising=False)
    monkeypatch.delenv(config.INSECURE_TLS_ENV, raising=False)
    return tmp_path


def test_missing_api_key_exits_with_help(isolated, capsys):
    code = webvizio_mcp.main(["--log-level", "ERROR"], stdin=io.StringIO(""), stdout=io.StringIO(), install_signals=False)

    assert code == 1
    err = capsys.readouterr().err
    assert "Configuration Help" in err
    assert "WEBVIZIO_API_KEY=your_key_here" in err


def test_serves_requests_with_assignment_key(isolated):
    stdin = io.StringIO(
        json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
        + "\n"
        + json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})
        + "\n"
        + json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
        + "\n"
    )
    stdout = io.StringIO()

    code = webvizio_mcp.main(
        ["WEBVIZIO_API_KEY=abc", "--log-level", "ERROR"], stdin=stdin, stdout=stdout, install_signals=False
    )

    assert code == 0
    replies = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert replies[0]["result"]["serverInfo"]["name"] == "webvizio-mcp"
    assert len(replies[1]["result"]["tools"]) == 11


def test_parser_flags():
    args = webvizio_mcp.build_parser().parse_args(["--insecure", "--api-key", "k", "X=1"])
    assert args.insecure is True
    assert args.api_key == "k"
    assert args.assignments == ["X=1"]


def test_loop_failure_returns_one_and_closes_client(isolated, monkeypatch):
    closed = []

    def explode(server, stdin=None, stdout=None):
        raise RuntimeError("stdin went away")

    monkeypatch.setattr(webvizio_mcp, "run_stdio", explode)
    monkeypatch.setattr(webvizio_mcp.WebvizioClient, "close", lambda self: closed.append(True))

    code = webvizio_mcp.main(["WEBVIZIO_API_KEY=abc", "--log-level", "ERROR"], install_signals=False)

    assert code == 1
    assert closed == [True]


def test_excepthook_logs_uncaught_errors(monkeypatch, caplog):
    monkeypatch.setattr(sys, "excepthook", sys.__excepthook__)
    logger = logging.getLogger("test.webvizio.hook")
    webvizio_mcp._install_excepthook(logger)

    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        with caplog.at_level(logging.CRITICAL, logger="test.webvizio.hook"):
            sys.excepthook(type(exc), exc, exc.__traceback__)

    assert "Unhandled exception" in caplog.text
    assert "boom" in caplog.text


def test_configure_logging_replaces_its_own_sink_only():
    root = logging.getLogger(ROOT_LOGGER)
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    first, second = io.StringIO(), io.StringIO()
    try:
        configure_logging("INFO", stream=first)
        configure_logging("INFO", stream=second)
        get_logger("test").info("hello")

        assert first.getvalue() == ""
        assert "hello" in second.getvalue()
        assert foreign in root.handlers
        assert sum(isinstance(h, logging.StreamHandler) for h in root.handlers) == 1
    finally:
        root.removeHandler(foreign)
