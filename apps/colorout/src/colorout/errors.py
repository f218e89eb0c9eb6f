from __future__ import annotations


class ColoroutError(Exception):
    pass


class TooManyTasksError(ColoroutError, ValueError):
    def __init__(self, task_count: int, palette_size: int) -> None:
        super().__init__(f"Too many commands! ({task_count} given, palette has {palette_size} colors)")
        self.task_count = task_count
        self.palette_size = palette_size


class ConfigError(ColoroutError, ValueError):
    pass
