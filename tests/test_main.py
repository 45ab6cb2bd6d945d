"""Tests for the command line entry point."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from main import build_parser, main, resolve_callback


@pytest.fixture
def keep_sys_path(monkeypatch):
    """main() puts the working directory on sys.path."""
    monkeypatch.setattr(sys, "path", list(sys.path))


class TestMain:

    def test_usage_error_exits_zero(self, capsys):
        """A missing callback argument is reported but the status stays 0."""
        assert main([]) == 0
        assert "callback" in capsys.readouterr().err

    def test_help_exits_zero(self, capsys):
        assert main(["--help"]) == 0
        assert "--env-file" in capsys.readouterr().out

    def test_unresolvable_callback_exits_zero(self, tmp_path, keep_sys_path):
        status = main(["no_such_package_here.steps:run", "--env-file", str(tmp_path / ".env")])
        assert status == 0


class TestResolveCallback:

    def test_resolves_function(self):
        assert resolve_callback("os.path:join") is os.path.join

    @pytest.mark.parametrize("target", ["os.path", ":join", "os.path:"])
    def test_malformed_target(self, target):
        with pytest.raises(ValueError):
            resolve_callback(target)

    def test_not_callable(self):
        with pytest.raises(ValueError):
            resolve_callback("os:sep")

    def test_env_file_default(self):
        assert build_parser().parse_args(["pkg.mod:fn"]).env_file == ".env"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
