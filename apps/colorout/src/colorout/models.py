from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCESS, TaskStatus.FAILED, TaskStatus.CANCELED)


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    command: str
    color: str


class TaskResult(BaseModel):
    index: int = Field(ge=0)
    command: str
    status: TaskStatus
    message: str
    exit_code: int | None = None
    started_at: str | None = None
    finished_at: str | None = None


class RunReport(BaseModel):
    results: list[TaskResult] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> list[TaskResult]:
        return [result for result in self.results if result.status == TaskStatus.SUCCESS]

    @property
    def failed(self) -> list[TaskResult]:
        return [result for result in self.results if result.status == TaskStatus.FAILED]

    @property
    def canceled(self) -> list[TaskResult]:
        return [result for result in self.results if result.status == TaskStatus.CANCELED]

    @property
    def ok(self) -> bool:
        return all(result.status == TaskStatus.SUCCESS for result in self.results)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
