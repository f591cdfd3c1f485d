"""
Unit tests for the command line entry point.
"""

from tinyhttpd import __version__
from tinyhttpd.__main__ import build_parser, main
from tinyhttpd.config import ServerConfig

import pytest


class TestParser:

    def test_defaults_come_from_config(self):
        defaults = ServerConfig(port=3000, root="/srv")

        args = build_parser(defaults).parse_args([])

        assert args.port == 3000
        assert args.root == "/srv"

    def test_flags(self):
        args = build_parser(ServerConfig()).parse_args([
            "-H", "127.0.0.1", "-p", "9000", "-d", "public",
            "-w", "3", "--deadline", "2.5", "-l", "debug", "--log-format", "json",
        ])

        assert args.host == "127.0.0.1"
        assert args.port == 9000
        assert args.root == "public"
        assert args.workers == 3
        assert args.deadline == 2.5
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser(ServerConfig()).parse_args(["--version"])

        assert __version__ in capsys.readouterr().out


class TestMain:

    def test_missing_root_exits_1(self, tmp_path, capsys):
        assert main(["-d", str(tmp_path / "nope")]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_workers_exits_1(self, served_root):
        assert main(["-d", str(served_root), "-w", "0"]) == 1

    def test_bad_environment_exits_1(self, monkeypatch):
        monkeypatch.setenv("TINYHTTPD_PORT", "eighty")

        assert main([]) == 1
