from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from typing import IO

from pydantic import BaseModel

from colorout.cancel import CancelSignal
from colorout.models import TaskStatus
from colorout.sink import ByteWriter

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class ExecutionOutcome(BaseModel):
    status: TaskStatus
    message: str
    exit_code: int | None = None
    start_failed: bool = False


def run_command(
    command: str,
    cancel: CancelSignal,
    out: ByteWriter,
    err: ByteWriter,
    *,
    shell: str = "bash",
    kill_grace_seconds: float = 3.0,
    poll_interval: float = 0.05,
) -> ExecutionOutcome:
    if cancel.is_cancelled:
        return ExecutionOutcome(status=TaskStatus.CANCELED, message="canceled before start")

    try:
        process = subprocess.Popen(
            [shell, "-c", command],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        logger.debug("failed to start %r with %s: %s", command, shell, exc)
        return ExecutionOutcome(
            status=TaskStatus.FAILED,
            message=f"start failed: {exc}",
            start_failed=True,
        )
    logger.debug("started pid %d: %s -c %r", process.pid, shell, command)

    pumps = [
        _start_pump(process.stdout, out, f"colorout-{process.pid}-stdout"),
        _start_pump(process.stderr, err, f"colorout-{process.pid}-stderr"),
    ]
    returncode: int | None = None
    killed_shell = False
    try:
        while True:
            if returncode is None:
                try:
                    returncode = process.wait(timeout=poll_interval)
                except subprocess.TimeoutExpired:
                    pass
            else:
                # background processes may still hold the output pipes
                alive = [pump for pump in pumps if pump.is_alive()]
                if not alive:
                    break
                alive[0].join(poll_interval)
            if cancel.is_cancelled:
                killed_shell = returncode is None
                returncode = _terminate(process, pumps, kill_grace_seconds)
                break
    finally:
        for pump in pumps:
            pump.join()
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                stream.close()

    exit_code = returncode if returncode >= 0 else None
    if killed_shell and returncode != 0:
        return ExecutionOutcome(
            status=TaskStatus.CANCELED,
            message=f"canceled ({describe_returncode(returncode)})",
            exit_code=exit_code,
        )
    if returncode == 0:
        return ExecutionOutcome(status=TaskStatus.SUCCESS, message="exited successfully", exit_code=0)
    return ExecutionOutcome(
        status=TaskStatus.FAILED,
        message=describe_returncode(returncode),
        exit_code=exit_code,
    )


def describe_returncode(returncode: int) -> str:
    if returncode >= 0:
        return f"exit status {returncode}"
    try:
        name = signal.Signals(-returncode).name
    except ValueError:
        name = str(-returncode)
    return f"signal: {name}"


def _start_pump(stream: IO[bytes] | None, sink: ByteWriter, name: str) -> threading.Thread:
    thread = threading.Thread(target=_pump, args=(stream, sink, name), name=name, daemon=True)
    thread.start()
    return thread


def _pump(stream: IO[bytes] | None, sink: ByteWriter, name: str) -> None:
    if stream is None:
        return
    write_failed = False
    while True:
        chunk = stream.read1(_CHUNK_SIZE)
        if not chunk:
            return
        if write_failed:
            continue
        try:
            sink.write(chunk)
        except Exception:  # noqa: BLE001
            # keep draining so the child never blocks on a full pipe
            write_failed = True
            logger.warning("%s: output write failed, discarding further output", name, exc_info=True)


def _terminate(process: subprocess.Popen, pumps: list[threading.Thread], kill_grace_seconds: float) -> int:
    logger.debug("terminating process group %d", process.pid)
    _signal_group(process, signal.SIGTERM)
    if not _wait_group(process, pumps, time.monotonic() + kill_grace_seconds):
        logger.debug("process group %d ignored SIGTERM, killing", process.pid)
        _signal_group(process, signal.SIGKILL)
    return process.wait()


def _wait_group(process: subprocess.Popen, pumps: list[threading.Thread], deadline: float) -> bool:
    try:
        process.wait(timeout=max(0.0, deadline - time.monotonic()))
    except subprocess.TimeoutExpired:
        return False
    for pump in pumps:
        pump.join(max(0.0, deadline - time.monotonic()))
        if pump.is_alive():
            return False
    return True


def _signal_group(process: subprocess.Popen, sig: signal.Signals) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        return
