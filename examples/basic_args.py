"""Example: record a function with every argument kind.

Positional-only, positional-or-keyword, ``*args``, keyword-only and
``**kwargs`` parameters all appear in the recorded example.
"""

import example_recorder


def f(p, /, q, *args, r, **kwargs):
    return (p, q, args, r, kwargs)


def main() -> None:
    with example_recorder.record(__file__) as recorder:
        f(1, 2, 3, 4, 5, r=6, a=7, b=8)
        f(1, 2, 3, 4, 5, r=6, a=7, b=8)  # duplicate, stored once
    print(recorder.dump_examples(indent=2))


if __name__ == "__main__":
    main()
