"""Example: nested containers are projected into plain JSON structures."""

import example_recorder


def accept(**kwargs):
    return kwargs


def main() -> None:
    with example_recorder.record(__file__, overrides={"on_field_error": "stringify"}) as recorder:
        accept(a=1, b={"x": [1, 2], "y": {"z": 3}}, c=(4, 5), d={6, 7}, e=len)
    print(recorder.dump_examples(indent=2))


if __name__ == "__main__":
    main()
