"""Tests for the immutable Message value."""

import dataclasses

import pytest

from streamfn.message import CONTENT_TYPE, ID, TIMESTAMP, Message


class TestMessage:

    def test_headers_are_read_only(self):
        message = Message("x", {"a": 1})
        with pytest.raises(TypeError):
            message.headers["a"] = 2

    def test_headers_copied_from_input(self):
        source = {"a": 1}
        message = Message("x", source)
        source["a"] = 2
        assert message.headers["a"] == 1

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Message("x").payload = "y"

    def test_create_stamps_id_and_timestamp(self):
        message = Message.create(b"x", {"foo": "bar"})
        assert message.headers[ID]
        assert isinstance(message.headers[TIMESTAMP], int)
        assert message.headers["foo"] == "bar"
        assert message.id == message.headers[ID]

    def test_create_keeps_given_id(self):
        assert Message.create("x", {ID: "fixed"}).id == "fixed"

    def test_with_payload_keeps_headers(self):
        original = Message("a", {"h": 1})
        updated = original.with_payload("b")
        assert updated.payload == "b"
        assert dict(updated.headers) == {"h": 1}
        assert original.payload == "a"

    def test_with_headers_merges(self):
        original = Message("a", {"h": 1, "k": 1})
        updated = original.with_headers({"k": 2, "n": 3})
        assert dict(updated.headers) == {"h": 1, "k": 2, "n": 3}
        assert dict(original.headers) == {"h": 1, "k": 1}

    def test_with_header(self):
        assert Message("a").with_header("x", "y").headers["x"] == "y"

    def test_content_type_reads_alias(self):
        assert Message("a", {"contentType": "text/plain"}).content_type == "text/plain"
        assert Message("a", {CONTENT_TYPE: "application/json"}).content_type == "application/json"
        assert Message("a").content_type is None

    def test_with_content_type_replaces_aliases(self):
        updated = Message("a", {"contentType": "text/plain"}).with_content_type("application/json")
        assert dict(updated.headers) == {CONTENT_TYPE: "application/json"}

    def test_without_headers(self):
        message = Message("a", {"a": 1, "b": 2})
        assert dict(message.without_headers(["a", "missing"]).headers) == {"b": 2}

    def test_without_headers_nothing_to_remove_returns_same(self):
        message = Message("a", {"a": 1})
        assert message.without_headers(["missing"]) is message
