import os
from pathlib import Path

import pytest

from plastic_bridge.core.errors import ExternalToolError, ExternalToolTimeoutError
from plastic_bridge.services.process_service import (
    ProcessService,
    format_command_line,
    resolve_profile_path,
)

posix_only = pytest.mark.skipif(os.name == "nt", reason="fake tools are shell scripts")


def _write_tool(tmp_path: Path, body: str) -> str:
    script = tmp_path / "fake-cm"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    script.chmod(0o755)
    return str(script)


@posix_only
def test_run_drops_blank_lines_and_keeps_order(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, "printf 'one\\n\\ntwo\\n\\nthree\\n'\n")

    lines = ProcessService(tool).run(None, "lrep")

    assert lines == ["one", "two", "three"]


@posix_only
def test_run_failure_carries_all_output(tmp_path: Path) -> None:
    tool = _write_tool(
        tmp_path,
        "echo first\necho second\necho 'no such branch' >&2\nexit 3\n",
    )

    with pytest.raises(ExternalToolError) as exc_info:
        ProcessService(tool).run(None, "stb", "br:/missing")

    error = exc_info.value
    assert error.exit_code == 3
    assert "first" in error.output
    assert "second" in error.output
    assert "no such branch" in error.output
    assert "\n" not in error.output


@posix_only
def test_run_passes_arguments_verbatim(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, 'for a in "$@"; do echo "[$a]"; done\n')

    lines = ProcessService(tool).run(None, "mklb", "release 1.0", 'say "hi"', None)

    assert lines == ["[mklb]", "[release 1.0]", '[say "hi"]']


@posix_only
def test_run_uses_working_directory(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, "pwd\n")
    workdir = tmp_path / "ws"
    workdir.mkdir()

    lines = ProcessService(tool).run(workdir, "wi")

    assert Path(lines[0]).resolve() == workdir.resolve()


@posix_only
def test_run_overrides_profile_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", "/nonexistent-profile")
    tool = _write_tool(tmp_path, 'echo "$HOME"\n')

    lines = ProcessService(tool).run(None, "version")

    assert lines == [resolve_profile_path()]


@posix_only
def test_run_times_out_and_kills_process(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, "echo started\nexec sleep 5\n")

    with pytest.raises(ExternalToolTimeoutError) as exc_info:
        ProcessService(tool, timeout=0.3).run(None, "upd", ".")

    assert exc_info.value.timeout == 0.3
    assert "started" in exc_info.value.output


def test_run_missing_executable(tmp_path: Path) -> None:
    service = ProcessService(str(tmp_path / "does-not-exist"))

    with pytest.raises(ExternalToolError):
        service.run(None, "version")


def test_format_command_line_quotes_each_argument() -> None:
    rendered = format_command_line("label", ["lb:v1", "-R", 'a"b'])

    assert rendered == 'label "lb:v1" "-R" "a\\"b"'
