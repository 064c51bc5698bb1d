"""Tests for the reverie-server command line."""

from __future__ import annotations

import logging

import pytest
from typer.testing import CliRunner

from reverie.core.server import main
from reverie.core.storage.encryption import FieldEncryptor

runner = CliRunner()


class FakeServer:
    def __init__(self) -> None:
        self.run_kwargs: dict | None = None

    def run(self, **kwargs) -> None:
        self.run_kwargs = kwargs


@pytest.fixture
def fake_server(monkeypatch) -> FakeServer:
    server = FakeServer()
    monkeypatch.setattr(main, "create_app", lambda: server)
    return server


class TestHostChecks:
    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "::1"])
    def test_loopback(self, host):
        assert main._is_loopback_host(host)

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.5", "example.com"])
    def test_not_loopback(self, host):
        assert not main._is_loopback_host(host)

    def test_plain_http_to_remote_backend(self):
        assert main._sends_token_in_clear("http://api.example.com")
        assert not main._sends_token_in_clear("https://api.example.com")
        assert not main._sends_token_in_clear("http://127.0.0.1:5000")


class TestServe:
    def test_default_command_serves(self, fake_server):
        result = runner.invoke(main.app, [])
        assert result.exit_code == 0
        assert fake_server.run_kwargs == {
            "transport": "streamable-http",
            "host": "127.0.0.1",
            "port": 8001,
        }

    def test_overrides(self, fake_server):
        result = runner.invoke(main.app, ["serve", "--host", "::1", "--port", "9100"])
        assert result.exit_code == 0
        assert fake_server.run_kwargs["host"] == "::1"
        assert fake_server.run_kwargs["port"] == 9100

    def test_refuses_public_bind(self, fake_server):
        result = runner.invoke(main.app, ["serve", "--host", "0.0.0.0"])
        assert isinstance(result.exception, RuntimeError)
        assert "REVERIE_ALLOW_INSECURE_BIND" in str(result.exception)
        assert fake_server.run_kwargs is None

    def test_insecure_bind_can_be_allowed(self, fake_server, monkeypatch):
        monkeypatch.setenv("REVERIE_ALLOW_INSECURE_BIND", "true")
        result = runner.invoke(main.app, ["serve", "--host", "0.0.0.0"])
        assert result.exit_code == 0
        assert fake_server.run_kwargs["host"] == "0.0.0.0"

    def test_warns_about_plaintext_backend(self, fake_server, monkeypatch, caplog):
        monkeypatch.setenv("REVERIE_API_URL", "http://api.example.com")
        with caplog.at_level(logging.WARNING, logger=main.__name__):
            runner.invoke(main.app, ["serve"])
        assert "plain HTTP" in caplog.text


def test_generate_key_prints_usable_key():
    result = runner.invoke(main.app, ["generate-key"])
    assert result.exit_code == 0
    key = result.stdout.strip()
    enc = FieldEncryptor(key)
    assert enc.decrypt(enc.encrypt("dream")) == "dream"
