"""Response framing."""

import socket
from typing import BinaryIO, Optional

from .resolver import DEFAULT_CONTENT_TYPE

PROTOCOL_VERSION = "HTTP/1.1"
CHUNK_SIZE = 64 * 1024

STATUS_MESSAGES = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
}


class ResponseWriter:
    """
    Writes exactly one response to a client socket.

    Every response carries Content-Type, Content-Length and Connection: close
    and nothing else. Socket errors propagate to the caller as OSError.
    """

    def __init__(self, client_socket: socket.socket):
        self.client_socket = client_socket
        self.bytes_sent = 0

    def _send(self, data: bytes):
        self.client_socket.sendall(data)
        self.bytes_sent += len(data)

    def format_head(self, status_code: int, content_type: Optional[str], content_length: int) -> bytes:
        status_text = STATUS_MESSAGES.get(status_code, "Unknown")
        head = (
            f"{PROTOCOL_VERSION} {status_code} {status_text}\r\n"
            f"Content-Type: {content_type or DEFAULT_CONTENT_TYPE}\r\n"
            f"Content-Length: {content_length}\r\n"
            "Connection: close\r\n"
            "\r\n"
        )
        return head.encode('ascii')

    def send_response(self, status_code: int, content_type: Optional[str] = None,
                      body: Optional[bytes] = None):
        """
        Send a status line, headers and optional body.

        Args:
            status_code: HTTP status code
            content_type: MIME type, the default textual type when None
            body: Body bytes, or None for a bodyless response
        """
        body = body or b""
        self._send(self.format_head(status_code, content_type, len(body)) + body)

    def send_error(self, status_code: int):
        """Send a bodyless error response."""
        self.send_response(status_code, DEFAULT_CONTENT_TYPE)

    def send_stream(self, status_code: int, content_type: Optional[str],
                    stream: BinaryIO, content_length: int):
        """
        Send headers, then copy the stream to the socket in chunks.

        Args:
            status_code: HTTP status code
            content_type: MIME type of the stream
            stream: Binary file object positioned at the start of the body
            content_length: Number of body bytes announced in the headers

        Returns:
            Number of body bytes copied, which differs from content_length
            when the stream changed size after the headers went out
        """
        self._send(self.format_head(status_code, content_type, content_length))
        copied = 0
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            self._send(chunk)
            copied += len(chunk)
        return copied
