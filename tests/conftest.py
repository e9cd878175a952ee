"""Shared fixtures: a document root and a config pointing at it."""

import datetime

import pytest

from static_responder.config import ServerConfig

INDEX_BYTES = b"<!DOCTYPE html>\n<h1>Index</h1>\n"
CLASSIC_BYTES = b"<p>{time}</p>\n"
FIXED_NOW = datetime.datetime(2024, 5, 1, 12, 30, 45)


@pytest.fixture
def public_dir(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_bytes(INDEX_BYTES)
    (public / "classic.html").write_bytes(CLASSIC_BYTES)
    (public / "spring.png").write_bytes(bytes(range(256)) * 40)
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return public


@pytest.fixture
def config(public_dir):
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        pool_size=4,
        root_dir=str(public_dir),
        allow_list={"/index.html", "/classic.html", "/spring.png", "/events.html", "/../secret.txt"},
    )


def read_response(client_socket) -> bytes:
    chunks = []
    while True:
        chunk = client_socket.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def split_response(data: bytes):
    """Return (status_line, headers dict, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("ascii").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body
