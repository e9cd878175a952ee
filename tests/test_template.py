"""Unit tests for the {time} placeholder substitution."""

import datetime

from static_responder.template import format_query_params, render_template

FIXED_NOW = datetime.datetime(2024, 5, 1, 12, 30, 45, 123456)


def fixed_clock():
    return FIXED_NOW


def test_placeholder_is_replaced_with_timestamp_and_query() -> None:
    rendered = render_template(b"<p>{time}</p>", {"x": "3", "y": "2"}, fixed_clock)

    assert rendered == b"<p>2024-05-01T12:30:45.123456 | Query: {x=3, y=2}</p>"


def test_empty_query_renders_empty_braces() -> None:
    assert render_template(b"{time}", {}, fixed_clock) == b"2024-05-01T12:30:45.123456 | Query: {}"


def test_every_occurrence_is_replaced_with_one_clock_read() -> None:
    reads = []

    def clock():
        reads.append(1)
        return FIXED_NOW

    rendered = render_template(b"{time} and {time}", {}, clock)

    assert b"{time}" not in rendered
    assert rendered.count(b"2024-05-01T12:30:45.123456") == 2
    assert len(reads) == 1


def test_other_braces_are_left_alone() -> None:
    rendered = render_template(b"{name} {time} {{time}}", {}, fixed_clock)

    assert rendered.startswith(b"{name} 2024-05-01")
    assert rendered.endswith(b"{2024-05-01T12:30:45.123456 | Query: {}}")


def test_non_utf8_template_bytes_are_preserved() -> None:
    rendered = render_template(b"\xff{time}\xfe", {}, fixed_clock)

    assert rendered.startswith(b"\xff") and rendered.endswith(b"\xfe")


def test_query_values_are_encoded_as_utf8() -> None:
    rendered = render_template(b"{time}", {"name": "é"}, fixed_clock)

    assert rendered.endswith("{name=é}".encode("utf-8"))


def test_format_query_params() -> None:
    assert format_query_params({"a": "1", "b": ""}) == "{a=1, b=}"
