from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import BinaryIO

from colorout.cancel import CancelSignal
from colorout.colorizer import LineColorizer
from colorout.config import Settings
from colorout.errors import TooManyTasksError
from colorout.executor import ExecutionOutcome, run_command
from colorout.models import RunReport, Task, TaskResult, TaskStatus, utc_now
from colorout.palette import Palette, default_palette
from colorout.sink import ByteWriter, SynchronizedSink

logger = logging.getLogger(__name__)

Executor = Callable[..., ExecutionOutcome]


class TaskRunner:
    """Runs every command of one run concurrently, one thread per task."""

    def __init__(
        self,
        commands: Sequence[str],
        out_sink: ByteWriter,
        err_sink: ByteWriter,
        *,
        palette: Palette | None = None,
        settings: Settings | None = None,
        executor: Executor = run_command,
    ) -> None:
        self._palette = palette or default_palette()
        if len(commands) > len(self._palette):
            raise TooManyTasksError(len(commands), len(self._palette))

        self._settings = settings or Settings()
        self._out_sink = out_sink
        self._err_sink = err_sink
        self._executor = executor
        self._cancel = CancelSignal()
        self._tasks = [
            Task(index=index, command=command, color=self._palette.color_for(index))
            for index, command in enumerate(commands)
        ]
        self._results: dict[int, TaskResult] = {
            task.index: TaskResult(
                index=task.index,
                command=task.command,
                status=TaskStatus.PENDING,
                message="pending",
            )
            for task in self._tasks
        }
        self._lock = threading.Lock()
        self._started = False

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def cancel_signal(self) -> CancelSignal:
        return self._cancel

    def result(self, index: int) -> TaskResult:
        with self._lock:
            return self._results[index]

    def cancel(self, reason: str = "canceled by caller") -> bool:
        return self._cancel.trigger(reason)

    def run(self) -> RunReport:
        with self._lock:
            if self._started:
                raise RuntimeError("task runner can only run once")
            self._started = True

        threads: list[threading.Thread] = []
        try:
            for task in self._tasks:
                out = LineColorizer(self._out_sink, task.index, self._palette)
                err = LineColorizer(self._err_sink, task.index, self._palette)
                err.write_line(f"Running: {task.command}")
                thread = threading.Thread(
                    target=self._run_task,
                    args=(task, out, err),
                    name=f"colorout-task-{task.index}",
                    daemon=True,
                )
                thread.start()
                threads.append(thread)
            for thread in threads:
                thread.join()
        except BaseException as exc:
            if self._cancel.trigger(f"run aborted: {exc!r}"):
                logger.info("run aborted, canceling running tasks")
            _join_all(threads)
            raise

        with self._lock:
            results = [self._results[task.index] for task in self._tasks]
        report = RunReport(results=results, cancelled=self._cancel.is_cancelled)
        logger.info(
            "run finished: %d succeeded, %d failed, %d canceled",
            len(report.succeeded),
            len(report.failed),
            len(report.canceled),
        )
        return report

    def _run_task(self, task: Task, out: LineColorizer, err: LineColorizer) -> None:
        try:
            self._execute_task(task, out, err)
        except Exception as exc:  # noqa: BLE001
            logger.exception("task %d crashed", task.index)
            self._finish(task.index, status=TaskStatus.FAILED, message=f"internal error: {exc}")
        finally:
            for colorizer in (out, err):
                try:
                    colorizer.close()
                except Exception:  # noqa: BLE001
                    logger.warning("task %d: failed to flush trailing output", task.index, exc_info=True)

    def _execute_task(self, task: Task, out: LineColorizer, err: LineColorizer) -> None:
        with self._lock:
            current = self._results[task.index]
            if self._cancel.is_cancelled:
                skipped = current.model_copy(
                    update={
                        "status": TaskStatus.CANCELED,
                        "message": "canceled before start",
                        "finished_at": utc_now(),
                    }
                )
                self._results[task.index] = skipped
            else:
                skipped = None
                self._results[task.index] = current.model_copy(
                    update={
                        "status": TaskStatus.RUNNING,
                        "message": "running",
                        "started_at": utc_now(),
                    }
                )
        if skipped is not None:
            err.write_line(f"command failed with {skipped.message}")
            return

        outcome = self._executor(
            task.command,
            self._cancel,
            out,
            err,
            shell=self._settings.shell,
            kill_grace_seconds=self._settings.kill_grace_seconds,
            poll_interval=self._settings.poll_interval,
        )
        final = self._finish(
            task.index,
            status=outcome.status,
            message=outcome.message,
            exit_code=outcome.exit_code,
        )

        if final.status == TaskStatus.FAILED:
            if self._settings.fail_fast or (outcome.start_failed and self._settings.cancel_on_start_failure):
                if self._cancel.trigger(f"task {task.index} failed with {final.message}"):
                    logger.info("task %d failed, canceling remaining tasks", task.index)

        # unterminated output goes out ahead of the status line
        out.close()
        err.close()
        if final.status == TaskStatus.SUCCESS:
            err.write_line("Command exited successfully")
        else:
            err.write_line(f"command failed with {final.message}")

    def _finish(
        self,
        index: int,
        *,
        status: TaskStatus,
        message: str,
        exit_code: int | None = None,
    ) -> TaskResult:
        with self._lock:
            current = self._results[index]
            if current.status.is_terminal:
                return current
            final = current.model_copy(
                update={
                    "status": status,
                    "message": message,
                    "exit_code": exit_code,
                    "finished_at": utc_now(),
                }
            )
            self._results[index] = final
            return final


def run_tasks(
    commands: Sequence[str],
    *,
    stdout: BinaryIO,
    stderr: BinaryIO,
    palette: Palette | None = None,
    settings: Settings | None = None,
    executor: Executor = run_command,
) -> RunReport:
    out_sink = SynchronizedSink(stdout)
    err_sink = out_sink if stderr is stdout else SynchronizedSink(stderr)
    runner = TaskRunner(
        commands,
        out_sink,
        err_sink,
        palette=palette,
        settings=settings,
        executor=executor,
    )
    return runner.run()


def _join_all(threads: list[threading.Thread]) -> None:
    pending = list(threads)
    while pending:
        try:
            pending[0].join()
        except KeyboardInterrupt:
            # cancellation is already under way, finish reaping
            continue
        pending.pop(0)
