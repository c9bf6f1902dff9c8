"""Counter - integer accumulator used for in-flight work tracking."""


class Counter:
    """Integer accumulator that moves both ways.

    Callers are expected to keep it non-negative; it is not clamped.
    """

    def __init__(self, count: int = 0):
        self.count = count

    def inc(self, n: int = 1) -> None:
        self.count += n

    def dec(self, n: int = 1) -> None:
        self.count -= n

    def value(self) -> int:
        return self.count
