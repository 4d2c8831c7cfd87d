"""Example: only the thread that started recording contributes examples."""

from __future__ import annotations

import threading

import example_recorder


def worker(name: str, out: list[str]) -> int:
    out.append(name)
    return len(out)


def main() -> None:
    out: list[str] = []
    with example_recorder.record(__file__) as recorder:
        t1 = threading.Thread(target=worker, args=("t1", out))
        t2 = threading.Thread(target=worker, args=("t2", out))
        t1.start(); t2.start()
        t1.join(); t2.join()
        worker("main", [])
    print("ok", len(recorder), recorder.serialized_examples()[0]["arguments"]["name"])


if __name__ == "__main__":
    main()
