"""Unit tests for the exchange document projection."""
from __future__ import annotations

import enum
import inspect
import json
import threading
from typing import Any

import pytest

from example_recorder.errors import FieldSerializationError
from example_recorder.model import (
    DefiningType,
    FunctionIdentity,
    InvocationRecord,
    TypedValue,
)
from example_recorder.serializer import (
    Unrepresentable,
    dumps,
    safe_repr,
    serialize_example,
    serialize_examples,
    to_exchange_value,
)
from example_recorder.values import type_name

FUNC = FunctionIdentity("app", "Shop.checkout", "checkout", "/src/app.py", 42)


def _record(result: Any, **arguments: Any) -> InvocationRecord:
    params = tuple(
        inspect.Parameter(name, inspect.Parameter.POSITIONAL_OR_KEYWORD) for name in arguments
    )
    record = InvocationRecord(
        defining_type=DefiningType("app", "Shop"),
        function=FUNC,
        parameters=params,
        arguments={name: TypedValue(type_name(v), v) for name, v in arguments.items()},
    )
    return record.complete(TypedValue(type_name(result), result))


class Color(enum.Enum):
    RED = "red"


class Item:
    def __init__(self, sku: str, tags: list) -> None:
        self.sku = sku
        self.tags = tags


class Slot:
    __slots__ = ("sku",)

    def __init__(self, sku: str) -> None:
        self.sku = sku


def test_serialize_example_projects_every_field() -> None:
    example = serialize_example(_record(7.5, cart=["a", "b"], coupon=None))

    assert example == {
        "class_name": "Shop",
        "method_name": "checkout",
        "method_location": {"path": "/src/app.py", "line": 42},
        "arguments": {
            "cart": {"class_name": "Array", "value": ["a", "b"]},
            "coupon": {"class_name": "None", "value": None},
        },
        "return": {"class_name": "Float", "value": 7.5},
    }
    assert list(example["arguments"]) == ["cart", "coupon"]


def test_value_projection() -> None:
    assert to_exchange_value((1, [2, (3,)])) == [1, [2, [3]]]
    assert to_exchange_value(b"raw") == "b'raw'"
    assert to_exchange_value(1 + 2j) == [1.0, 2.0]
    assert to_exchange_value({3, 1, 2}) == [1, 2, 3]
    assert to_exchange_value(Color.RED) == "red"
    assert to_exchange_value(Item) == f"{__name__}.Item"
    assert to_exchange_value(Item("x1", ["new"])) == {"sku": "x1", "tags": ["new"]}
    assert to_exchange_value(Slot("s1")) == {"sku": "s1"}
    assert to_exchange_value({"nested": {"ok": True}}) == {"nested": {"ok": True}}


def test_value_projection_rejects_unrepresentable_values() -> None:
    loop: list = []
    loop.append(loop)

    with pytest.raises(Unrepresentable):
        to_exchange_value(loop)
    with pytest.raises(Unrepresentable):
        to_exchange_value({1: "int key"})
    with pytest.raises(Unrepresentable):
        to_exchange_value(threading.Lock())
    with pytest.raises(Unrepresentable):
        to_exchange_value(lambda: None)


def test_shared_references_are_not_cycles() -> None:
    shared = [1]
    assert to_exchange_value([shared, shared]) == [[1], [1]]


def test_field_errors_are_stringified_by_default() -> None:
    lock = threading.Lock()
    example = serialize_example(_record(1, lock=lock, qty=2))

    assert example["arguments"]["lock"]["value"] == safe_repr(lock)
    assert example["arguments"]["qty"] == {"class_name": "Integer", "value": 2}


def test_field_errors_can_be_omitted() -> None:
    loop: list = []
    loop.append(loop)
    example = serialize_example(_record(loop, qty=2), on_field_error="omit")

    assert example["return"] == {"class_name": "Array"}
    assert example["arguments"]["qty"]["value"] == 2


def test_field_errors_can_be_raised() -> None:
    with pytest.raises(FieldSerializationError) as excinfo:
        serialize_example(_record(1, callback=print), on_field_error="raise")

    error = excinfo.value
    assert error.function == FUNC
    assert error.field == "arguments.callback"
    assert "Shop.checkout" in str(error)


def test_serialization_does_not_mutate_records() -> None:
    record = _record({"total": [1, 2]}, cart=["a"])

    first = serialize_examples([record])
    first[0]["arguments"]["cart"]["value"].append("b")
    first[0]["return"]["value"]["total"].append(3)

    assert serialize_examples([record]) == serialize_examples([record])
    assert record.arguments["cart"].value == ["a"]
    assert record.return_value.value == {"total": [1, 2]}


def test_pending_records_and_unknown_policies_are_rejected() -> None:
    pending = InvocationRecord(DefiningType("app"), FUNC, (), {})
    with pytest.raises(ValueError):
        serialize_example(pending)
    with pytest.raises(ValueError):
        serialize_example(_record(1), on_field_error="ignore")


def test_safe_repr_truncates_and_survives_broken_repr() -> None:
    class Broken:
        def __repr__(self) -> str:
            raise RuntimeError("no repr")

    assert safe_repr("x" * 500).endswith("...")
    assert len(safe_repr("x" * 500)) == 200
    assert safe_repr(Broken()) == "<unrepresentable Broken>"


def test_dumps_renders_json() -> None:
    document = serialize_examples([_record(3, a=1)])
    assert json.loads(dumps(document)) == document
    assert "\n" in dumps(document, indent=2)
