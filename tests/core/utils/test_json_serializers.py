import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from core.utils.json_serializers import json_serializer


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class SampleObj:
    def __init__(self, x, y):
        self.x = x
        self.y = y


# =========================================================================
# json_serializer
# =========================================================================


class TestJsonSerializer:

    def test_serializes_datetime_to_isoformat(self):
        dt = datetime(2025, 6, 15, 10, 30, 0)
        assert json_serializer(dt) == "2025-06-15T10:30:00"

    def test_serializes_date_to_isoformat(self):
        assert json_serializer(date(2025, 1, 2)) == "2025-01-02"

    def test_serializes_decimal_to_float(self):
        result = json_serializer(Decimal("3.14"))
        assert result == 3.14
        assert isinstance(result, float)

    def test_serializes_path_to_string(self):
        assert json_serializer(Path("/tmp/x.log")) == "/tmp/x.log"

    def test_serializes_bytes_as_text(self):
        assert json_serializer(b"hello") == "hello"

    def test_invalid_utf8_bytes_are_replaced(self):
        assert json_serializer(b"\xff") == "\ufffd"

    def test_serializes_read_only_mapping(self):
        assert json_serializer(MappingProxyType({"a": 1})) == {"a": 1}

    def test_serializes_tuple_and_set_to_list(self):
        assert json_serializer(("a", "b")) == ["a", "b"]
        assert json_serializer(frozenset({"a"})) == ["a"]

    def test_serializes_enum_to_value(self):
        assert json_serializer(Color.RED) == "red"

    def test_serializes_object_dict(self):
        assert json_serializer(SampleObj(1, 2)) == {"x": 1, "y": 2}

    def test_fallback_to_string(self):
        assert json_serializer(object.__new__(type("Slotted", (), {"__slots__": ()}))).startswith("<")

    def test_usable_as_json_default(self):
        data = {"headers": MappingProxyType({"id": "1"}), "payload": b"x"}
        assert json.loads(json.dumps(data, default=json_serializer)) == {
            "headers": {"id": "1"},
            "payload": "x",
        }
