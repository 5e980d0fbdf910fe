"""Tests for executable lookups and the command runner."""

import asyncio
import os
from unittest.mock import MagicMock, patch

import pytest

from common.errors import CommandError
from execution.file_exists import file_exists, local_file_exists
from execution.runner import RunOptions, build_command, build_env, run_script


def _make_bin(directory, name):
    bin_dir = os.path.join(directory, "node_modules", ".bin")
    os.makedirs(bin_dir, exist_ok=True)
    path = os.path.join(bin_dir, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write("#!/bin/sh\n")
    return bin_dir


class TestLocalFileExists:
    """Walking up for node_modules/.bin executables."""

    def test_found_in_ancestor(self, tmp_path):
        bin_dir = _make_bin(str(tmp_path / "a"), "tool")
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)
        assert local_file_exists(str(nested), "tool") == bin_dir

    def test_missing(self, tmp_path):
        assert local_file_exists(str(tmp_path), "definitely-not-a-bin-xyz") is None

    def test_stops_at_root(self, tmp_path):
        _make_bin(str(tmp_path / "a"), "tool")
        start = tmp_path / "a" / "b"
        start.mkdir(parents=True)
        assert local_file_exists(str(start), "tool", root=str(start)) is None

    def test_file_exists_ignores_directories(self, tmp_path):
        assert file_exists(str(tmp_path)) is False
        (tmp_path / "f").write_text("x")
        assert file_exists(str(tmp_path / "f")) is True


class TestBuildCommand:
    """Shell command construction."""

    def test_quotes_arguments(self):
        assert build_command("cowsay", ["hello world", "it's"], "sh") == [
            "sh", "-c", "cowsay 'hello world' 'it'\"'\"'s'",
        ]

    def test_call_string_is_passed_verbatim(self):
        assert build_command("echo $HOME && ls", [], "bash") == ["bash", "-c", "echo $HOME && ls"]

    def test_shell_itself(self):
        assert build_command("sh", [], "sh") == ["sh"]


class TestBuildEnv:
    """Environment handed to the command."""

    def test_bin_paths_first_and_lifecycle_vars(self, tmp_path):
        (tmp_path / "package.json").write_text("{}")
        opts = RunOptions(bin_paths=["/cache/abc/node_modules/.bin"], path=str(tmp_path))

        env = build_env(opts, base={"PATH": "/usr/bin", "HOME": "/home/u"})

        entries = env["PATH"].split(os.pathsep)
        assert entries[0] == "/cache/abc/node_modules/.bin"
        assert entries[1] == os.path.join(str(tmp_path), "node_modules", ".bin")
        assert entries[-1] == "/usr/bin"
        assert env["npm_lifecycle_event"] == "npx"
        assert env["npm_package_json"] == os.path.join(str(tmp_path), "package.json")
        assert env["HOME"] == "/home/u"

    def test_no_package_json(self, tmp_path):
        env = build_env(RunOptions(path=str(tmp_path)), base={})
        assert "npm_package_json" not in env


class TestRunScript:
    """Running the command through the shell."""

    def _run(self, opts, returncode=0, tty=False, ci=False):
        with patch("execution.runner.subprocess.run", return_value=MagicMock(returncode=returncode)) as run, \
             patch("execution.runner.no_tty", return_value=not tty), \
             patch("execution.runner.is_ci", return_value=ci):
            try:
                status = asyncio.run(run_script(opts))
            finally:
                self.run_mock = run
        return status

    def test_runs_args_in_run_path(self, tmp_path):
        opts = RunOptions(args=["cowsay", "hello world"], bin_paths=["/b"], path=str(tmp_path), run_path=str(tmp_path))

        assert self._run(opts) == 0

        argv = self.run_mock.call_args.args[0]
        kwargs = self.run_mock.call_args.kwargs
        assert argv == ["sh", "-c", "cowsay 'hello world'"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["env"]["PATH"].split(os.pathsep)[0] == "/b"

    def test_call_takes_precedence(self, tmp_path):
        opts = RunOptions(args=["ignored"], call="echo hi", path=str(tmp_path), run_path=str(tmp_path))
        self._run(opts)
        assert self.run_mock.call_args.args[0] == ["sh", "-c", "echo hi ignored"]

    def test_non_zero_exit(self, tmp_path):
        opts = RunOptions(args=["false"], path=str(tmp_path), run_path=str(tmp_path))
        with pytest.raises(CommandError) as excinfo:
            self._run(opts, returncode=2)
        assert excinfo.value.exit_code == 2

    def test_signal_exit_maps_to_shell_status(self, tmp_path):
        opts = RunOptions(args=["sleep", "10"], path=str(tmp_path), run_path=str(tmp_path))
        with pytest.raises(CommandError) as excinfo:
            self._run(opts, returncode=-15)
        assert excinfo.value.status == 143

    def test_interactive_shell_banner(self, tmp_path):
        output = MagicMock()
        opts = RunOptions(path=str(tmp_path), run_path=str(tmp_path), output=output)

        assert self._run(opts, tty=True) == 0

        assert self.run_mock.call_args.args[0] == ["sh"]
        banner = output.call_args.args[0]
        assert "Entering npm script environment" in banner
        assert str(tmp_path) in banner

    def test_interactive_shell_skipped_in_ci(self, tmp_path, caplog):
        opts = RunOptions(path=str(tmp_path), run_path=str(tmp_path), output=MagicMock())
        assert self._run(opts, tty=True, ci=True) == 0
        self.run_mock.assert_not_called()
        assert "Interactive mode disabled in CI environment" in caplog.text
