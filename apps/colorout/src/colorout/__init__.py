from colorout.colorizer import LineColorizer
from colorout.errors import ColoroutError, ConfigError, TooManyTasksError
from colorout.models import RunReport, Task, TaskResult, TaskStatus
from colorout.palette import Palette, default_palette
from colorout.runner import TaskRunner, run_tasks
from colorout.sink import SynchronizedSink

__all__ = [
    "ColoroutError",
    "ConfigError",
    "LineColorizer",
    "Palette",
    "RunReport",
    "SynchronizedSink",
    "Task",
    "TaskResult",
    "TaskRunner",
    "TaskStatus",
    "TooManyTasksError",
    "default_palette",
    "run_tasks",
]
