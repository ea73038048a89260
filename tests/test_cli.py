"""CLI tests — commands run against the app in-process.

Learn: `_client` is swapped for an httpx client on ASGITransport, so
the admin commands hit a real app and hub without a server.
"""

import httpx
import pytest
from click.testing import CliRunner

from streamhub.auth.jwt import verify_token
from streamhub.cli import main as cli


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def in_process(monkeypatch, app):
    def _client(token, timeout=30.0):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://test",
            headers=headers,
        )

    monkeypatch.setattr(cli, "_client", _client)


def test_token_command(runner):
    result = runner.invoke(cli.main, ["token", "user:42"])
    assert result.exit_code == 0
    payload = verify_token(result.output.strip())
    assert payload["sub"] == "user:42"
    assert payload["scopes"] == []


def test_admin_token_command(runner):
    result = runner.invoke(cli.main, ["token", "ops", "--admin"])
    assert result.exit_code == 0
    assert verify_token(result.output.strip())["scopes"] == ["admin"]


def test_admin_commands_need_token(runner, monkeypatch):
    monkeypatch.delenv("STREAMHUB_TOKEN", raising=False)
    result = runner.invoke(cli.main, ["stats"])
    assert result.exit_code == 1
    assert "--token required" in result.output


def test_broadcast_command(runner, in_process, hub, admin_token):
    conn = hub.register("user:42")
    result = runner.invoke(
        cli.main, ["broadcast", "announcement", '{"text": "hi"}', "-t", admin_token]
    )
    assert result.exit_code == 0, result.output
    assert "delivered: 1" in result.output
    event = conn._queue.get_nowait()
    assert event.event_type == "announcement"
    assert event.payload == {"text": "hi"}


def test_send_command_plain_text_payload(runner, in_process, hub, admin_token):
    conn = hub.register("user:42")
    result = runner.invoke(
        cli.main, ["send", "user:42", "note", "just text", "-t", admin_token]
    )
    assert result.exit_code == 0, result.output
    assert conn._queue.get_nowait().payload == "just text"


def test_stats_command(runner, in_process, hub, admin_token, monkeypatch):
    monkeypatch.setenv("STREAMHUB_TOKEN", admin_token)
    hub.register("user:42")
    hub.register("user:42")
    result = runner.invoke(cli.main, ["stats"])
    assert result.exit_code == 0, result.output
    assert "Connections: 2" in result.output
    assert "user:42: 2" in result.output


def test_forbidden_for_non_admin(runner, in_process, user_token):
    result = runner.invoke(cli.main, ["stats", "-t", user_token])
    assert result.exit_code == 1
    assert "403" in result.output
