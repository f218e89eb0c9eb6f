from __future__ import annotations

from dataclasses import dataclass

COLOR_RESET = "\x1b[0m"
COLOR_RED = "\x1b[31m"
COLOR_GREEN = "\x1b[32m"
COLOR_YELLOW = "\x1b[33m"
COLOR_BLUE = "\x1b[34m"
COLOR_MAGENTA = "\x1b[35m"
COLOR_CYAN = "\x1b[36m"
COLOR_WHITE = "\x1b[37m"

DEFAULT_COLORS: tuple[str, ...] = (
    COLOR_RED,
    COLOR_GREEN,
    COLOR_YELLOW,
    COLOR_BLUE,
    COLOR_MAGENTA,
    COLOR_CYAN,
    COLOR_WHITE,
)


@dataclass(frozen=True)
class Palette:
    colors: tuple[str, ...] = DEFAULT_COLORS
    reset: str = COLOR_RESET

    def __post_init__(self) -> None:
        if len(self.colors) == 0:
            raise ValueError("palette must contain at least one color")

    def __len__(self) -> int:
        return len(self.colors)

    def color_for(self, index: int) -> str:
        if index < 0 or index >= len(self.colors):
            raise IndexError(f"color index {index} out of range for palette of {len(self.colors)}")
        return self.colors[index]


def default_palette() -> Palette:
    return Palette()
