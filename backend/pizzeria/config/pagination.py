from dataclasses import dataclass


@dataclass(frozen=True)
class PageWindow:
    default: int
    maximum: int


# staff board: a full evening of orders fits on the first page
ORDER_BOARD = PageWindow(default=100, maximum=200)
REVIEWS = PageWindow(default=50, maximum=200)
