"""
Reply classification and typed conversion tests
"""

import pytest

from redis_wrapper.errors import ReplyTypeError
from redis_wrapper.replies import Reply, ReplyKind


@pytest.mark.parametrize("raw,kind", [
    (None, ReplyKind.ABSENT),
    (True, ReplyKind.BOOLEAN),
    (7, ReplyKind.INTEGER),
    (1.5, ReplyKind.FLOAT),
    (b"raw", ReplyKind.STRING),
    ("text", ReplyKind.STRING),
    ([b"a", 1], ReplyKind.SEQUENCE),
    ({b"field": b"value"}, ReplyKind.SEQUENCE),
])
def test_from_raw_kinds(raw, kind):
    assert Reply.from_raw(raw).kind is kind


def test_from_raw_rejects_unknown_types():
    with pytest.raises(ReplyTypeError):
        Reply.from_raw(object())


def test_absent_reply_converts_to_none():
    reply = Reply.from_raw(None)
    assert reply.is_absent
    assert reply.as_str() is None
    assert reply.as_int() is None
    assert reply.as_float() is None
    assert reply.as_bool() is None
    assert reply.as_list() is None
    assert reply.as_dict() == {}


def test_string_conversions():
    assert Reply.from_raw(b"hello").as_str() == "hello"
    assert Reply.from_raw(b"hello").as_bytes() == b"hello"
    assert Reply.from_raw("42").as_int() == 42
    assert Reply.from_raw(b"-3.25").as_float() == -3.25
    assert Reply.from_raw(12).as_str() == "12"


@pytest.mark.parametrize("raw,wanted", [
    (b"abc", "as_int"),
    (b"1.5", "as_int"),
    (b"abc", "as_float"),
    (b"4_2", "as_int"),
    (b"1_000", "as_int"),
    (b" 7\n", "as_int"),
    (b"", "as_int"),
    (b"1_0.5", "as_float"),
    (b" 2.5", "as_float"),
    (b"2.5\r\n", "as_float"),
    (b"maybe", "as_bool"),
    ([b"a"], "as_str"),
    ([b"a"], "as_int"),
    (5, "as_list"),
    (5, "as_bytes"),
])
def test_mismatched_conversions_raise(raw, wanted):
    """A reply of the wrong shape is an error, never a silent default"""
    with pytest.raises(ReplyTypeError):
        getattr(Reply.from_raw(raw), wanted)()


@pytest.mark.parametrize("raw,expected", [
    (1, True),
    (0, False),
    (b"1", True),
    (b"true", True),
    (b"T", True),
    (b"0", False),
    (b"False", False),
    (True, True),
])
def test_bool_conversions(raw, expected):
    assert Reply.from_raw(raw).as_bool() is expected


@pytest.mark.parametrize("raw,expected", [
    (b"+5", 5),
    (b"-12", -12),
    (b"007", 7),
    (b"18446744073709551616", 2 ** 64),
])
def test_signed_decimal_text_is_an_integer(raw, expected):
    assert Reply.from_raw(raw).as_int() == expected


@pytest.mark.parametrize("raw,expected", [
    (b"10.5", 10.5),
    (b"-.5", -0.5),
    (b"3", 3.0),
    (b"1.5e3", 1500.0),
    (b"inf", float("inf")),
    (b"-inf", float("-inf")),
])
def test_float_text_conversions(raw, expected):
    assert Reply.from_raw(raw).as_float() == expected


def test_integer_conversions_accept_booleans_and_floats_accept_integers():
    assert Reply.from_raw(True).as_int() == 1
    assert Reply.from_raw(3).as_float() == 3.0


def test_sequence_items_are_replies():
    items = Reply.from_raw([b"a", None, 3]).as_list()
    assert [item.kind for item in items] == [ReplyKind.STRING, ReplyKind.ABSENT, ReplyKind.INTEGER]
    assert Reply.from_raw([b"a", None]).as_strings() == ["a", None]


def test_as_dict_from_flattened_pairs():
    reply = Reply.from_raw([b"name", b"ada", b"role", b"admin"])
    assert reply.as_dict() == {"name": "ada", "role": "admin"}


def test_as_dict_from_resp3_map():
    assert Reply.from_raw({"status": "active"}).as_dict() == {"status": "active"}


def test_as_dict_rejects_odd_length():
    with pytest.raises(ReplyTypeError):
        Reply.from_raw([b"lonely"]).as_dict()


def test_invalid_utf8_is_a_type_error():
    with pytest.raises(ReplyTypeError):
        Reply.from_raw(b"\xff\xfe").as_str()
