"""Unit tests for response framing."""

import io
import socket

import pytest

from static_responder.response import ResponseWriter


@pytest.fixture
def pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


def read_all(server_side, client_side) -> bytes:
    server_side.close()
    chunks = []
    while True:
        chunk = client_side.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def test_response_with_body(pair) -> None:
    server_side, client_side = pair
    ResponseWriter(server_side).send_response(200, "text/html", b"<h1>hi</h1>")

    assert read_all(server_side, client_side) == (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/html\r\n"
        b"Content-Length: 11\r\n"
        b"Connection: close\r\n"
        b"\r\n"
        b"<h1>hi</h1>"
    )


@pytest.mark.parametrize("status_code,status_line", [
    (400, b"HTTP/1.1 400 Bad Request\r\n"),
    (403, b"HTTP/1.1 403 Forbidden\r\n"),
    (404, b"HTTP/1.1 404 Not Found\r\n"),
])
def test_error_responses_are_bodyless(pair, status_code, status_line) -> None:
    server_side, client_side = pair
    ResponseWriter(server_side).send_error(status_code)

    data = read_all(server_side, client_side)
    assert data == (status_line +
                    b"Content-Type: text/plain\r\n"
                    b"Content-Length: 0\r\n"
                    b"Connection: close\r\n\r\n")


def test_missing_content_type_falls_back_to_text(pair) -> None:
    server_side, client_side = pair
    ResponseWriter(server_side).send_response(200, None, b"x")

    assert b"Content-Type: text/plain\r\n" in read_all(server_side, client_side)


def test_stream_is_copied_after_headers(pair) -> None:
    server_side, client_side = pair
    payload = bytes(range(256)) * 300
    writer = ResponseWriter(server_side)

    writer.send_stream(200, "image/png", io.BytesIO(payload), len(payload))

    head, _, body = read_all(server_side, client_side).partition(b"\r\n\r\n")
    assert b"Content-Length: 76800" in head
    assert body == payload
    assert writer.bytes_sent == len(head) + 4 + len(payload)


def test_stream_reports_bytes_copied(pair) -> None:
    server_side, client_side = pair
    writer = ResponseWriter(server_side)

    copied = writer.send_stream(200, "text/plain", io.BytesIO(b"short"), 100)

    assert copied == 5
    head, _, body = read_all(server_side, client_side).partition(b"\r\n\r\n")
    assert b"Content-Length: 100" in head
    assert body == b"short"
