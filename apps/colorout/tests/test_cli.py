import logging
import os
import re
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

from colorout.cli import main

_LINE_RE = re.compile(r"\x1b\[\d+m(\d+)> (.*)\x1b\[0m")
_SRC_DIR = Path(__file__).resolve().parents[1] / "src"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch) -> None:  # noqa: ANN001
    for name in (
        "COLOROUT_SHELL",
        "COLOROUT_FAIL",
        "COLOROUT_CANCEL_ON_START_FAILURE",
        "COLOROUT_KILL_GRACE_SECONDS",
        "COLOROUT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("COLOROUT_POLL_INTERVAL", "0.02")


def _lines(text: str) -> list[tuple[int, str]]:
    parsed: list[tuple[int, str]] = []
    for raw in text.splitlines():
        match = _LINE_RE.fullmatch(raw)
        if match is not None:
            parsed.append((int(match.group(1)), match.group(2)))
    return parsed


def test_runs_commands_and_exits_zero(capsys) -> None:
    status = main(["echo one", "echo two"])

    captured = capsys.readouterr()
    assert status == 0
    assert sorted(_lines(captured.out)) == [(0, "one"), (1, "two")]
    assert (0, "Running: echo one") in _lines(captured.err)
    assert (1, "Running: echo two") in _lines(captured.err)


def test_failures_exit_zero_unless_propagated(capsys) -> None:
    assert main(["exit 2"]) == 0
    assert (0, "command failed with exit status 2") in _lines(capsys.readouterr().err)

    assert main(["--propagate-failure", "exit 2"]) == 1
    assert main(["--propagate-failure", "true"]) == 0


def test_fail_flag_cancels_other_tasks(capsys) -> None:
    status = main(["--fail", "exit 1", "sleep 30"])

    diagnostics = _lines(capsys.readouterr().err)
    assert status == 0
    assert (0, "command failed with exit status 1") in diagnostics
    assert any(index == 1 and text.startswith("command failed with canceled") for index, text in diagnostics)


def test_too_many_commands_is_fatal(capsys, caplog) -> None:
    with caplog.at_level(logging.CRITICAL, logger="colorout"):
        status = main([f"echo {n}" for n in range(8)])

    captured = capsys.readouterr()
    assert status == 1
    assert captured.out == ""
    assert "Running:" not in captured.err
    assert any("Too many commands!" in record.getMessage() for record in caplog.records)


def test_invalid_environment_exits_with_usage_status(monkeypatch, capsys) -> None:
    monkeypatch.setenv("COLOROUT_LOG_LEVEL", "LOUD")

    assert main(["true"]) == 2
    assert "invalid settings" in capsys.readouterr().err


def test_commands_are_required() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_empty_command_is_accepted(capsys) -> None:
    assert main([""]) == 0
    assert (0, "Command exited successfully") in _lines(capsys.readouterr().err)


def test_interrupt_terminates_children() -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(_SRC_DIR), env.get("PYTHONPATH")]))
    env["COLOROUT_POLL_INTERVAL"] = "0.02"
    env["COLOROUT_KILL_GRACE_SECONDS"] = "1"
    process = subprocess.Popen(
        [sys.executable, "-m", "colorout", "echo $$; sleep 30 & sleep 30"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env,
    )
    try:
        first = process.stdout.readline().decode()
        match = _LINE_RE.fullmatch(first.rstrip("\n"))
        assert match is not None, first
        group = int(match.group(2))

        process.send_signal(signal.SIGINT)
        assert process.wait(timeout=10) == 130
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()
        process.stdout.close()
        process.stderr.close()

    deadline = time.monotonic() + 5
    while True:
        try:
            os.killpg(group, 0)
        except ProcessLookupError:
            break
        if time.monotonic() > deadline:
            os.killpg(group, signal.SIGKILL)
            raise AssertionError(f"process group {group} survived the interrupt")
        time.sleep(0.05)
