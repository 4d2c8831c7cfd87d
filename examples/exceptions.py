"""Example: calls that raise leave no example behind."""

import example_recorder


def parse_port(text: str) -> int:
    port = int(text)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range: {port}")
    return port


def main() -> None:
    with example_recorder.record(__file__) as recorder:
        parse_port("8080")
        for bad in ("http", "70000"):
            try:
                parse_port(bad)
            except ValueError as e:
                print("handled", type(e).__name__)
    print(recorder.dump_examples(indent=2))


if __name__ == "__main__":
    main()
