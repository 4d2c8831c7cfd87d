"""Example: instance, class and static methods report their defining class."""

import example_recorder


class Counter:
    def __init__(self, start: int = 0) -> None:
        self._n = start

    def inc(self, by: int = 1) -> int:
        self._n += by
        return self._n

    @classmethod
    def start_at(cls, n: int) -> "Counter":
        return cls(n)

    @staticmethod
    def add(a: int, b: int) -> int:
        return a + b


def main() -> None:
    with example_recorder.record(__file__) as recorder:
        c = Counter.start_at(2)
        c.inc()
        c.inc(by=5)
        Counter.add(3, 4)
    for example in recorder.serialized_examples():
        print(example["class_name"], example["method_name"], example["arguments"], example["return"])


if __name__ == "__main__":
    main()
