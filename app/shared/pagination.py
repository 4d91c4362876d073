"""Pagination utilities.

Chat lists use a growing window rather than offset pages: the limit grows by
a fixed step and the whole window is re-fetched from the top. "Has more" is a
heuristic, a full page means more rows probably exist.
"""

from dataclasses import dataclass


def page_is_full(returned: int, requested: int) -> bool:
    """Return True when a fetch filled the page it asked for."""
    return returned == requested


@dataclass
class WindowPagination:
    """Running limit for a re-fetched window of rows."""

    step: int
    limit: int = 0

    def __post_init__(self):
        if self.limit <= 0:
            self.limit = self.step

    def grow(self) -> int:
        self.limit += self.step
        return self.limit

    def reset(self) -> int:
        self.limit = self.step
        return self.limit

