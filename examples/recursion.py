"""Example: every level of a recursive call becomes its own example."""

import example_recorder


def factorial(n: int) -> int:
    return 1 if n <= 1 else n * factorial(n - 1)


def is_even(n: int) -> bool:
    return n == 0 or is_odd(n - 1)


def is_odd(n: int) -> bool:
    return n != 0 and is_even(n - 1)


def main() -> None:
    with example_recorder.record(__file__) as recorder:
        factorial(5)
        is_even(4)
    for example in recorder.serialized_examples():
        args = {name: field["value"] for name, field in example["arguments"].items()}
        print(example["method_name"], args, "->", example["return"]["value"])


if __name__ == "__main__":
    main()
