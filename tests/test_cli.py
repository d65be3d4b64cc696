"""Tests for the command-line entry point."""

from unittest.mock import patch

import pytest

from giftrim import cli


@pytest.fixture
def run_serve(monkeypatch, tmp_path):
    monkeypatch.setenv("GIFTRIM_WORK_DIR", str(tmp_path))

    def _run(*argv):
        monkeypatch.setattr("sys.argv", ["giftrim", "serve", *argv])
        with patch("giftrim.cli.load_dotenv"), \
                patch("giftrim.cli.ffutil.check_ffmpeg"), \
                patch("giftrim.web.create_app") as mock_create:
            cli.main()
        return mock_create.return_value.run.call_args.kwargs

    return _run


class TestServe:
    def test_default_port(self, run_serve, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        assert run_serve()["port"] == 3000

    def test_port_from_environment(self, run_serve, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert run_serve()["port"] == 8080

    def test_flag_overrides_environment(self, run_serve, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        kwargs = run_serve("--port", "9000", "--host", "0.0.0.0")
        assert kwargs["port"] == 9000
        assert kwargs["host"] == "0.0.0.0"
