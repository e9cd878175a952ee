#!/usr/bin/env python3
"""
Multi-threaded allow-list static responder using socket programming.

One accept loop hands connections to a fixed pool of worker threads. Each
worker handles exactly one connection end to end:

    read one line -> parse -> allow-list / escape guard -> file or template -> close

No keep-alive and no header parsing: the first line is the whole request.
"""

import datetime
import logging
import os
import queue
import signal
import socket
import sys
import threading
from typing import Callable, List, Optional, Tuple

from .config import (DEFAULT_HOST, DEFAULT_POOL_SIZE, DEFAULT_PORT,
                     ServerConfig)
from .request import MalformedRequestLine, Request, parse_request_line
from .resolver import PathResolver, Resolution, ResourceLocation
from .response import ResponseWriter
from .template import render_template

LOGGER_NAME = "StaticServer"
MAX_REQUEST_LINE_BYTES = 8192
MAX_DISCARD_READS = 16

RESOLUTION_STATUS = {
    Resolution.NOT_ALLOWED: 404,
    Resolution.ESCAPE_ATTEMPT: 403,
    Resolution.RESOURCE_MISSING: 404,
}


def is_overlong(raw: bytes) -> bool:
    """True when readline stopped at the size limit instead of a newline."""
    return len(raw) >= MAX_REQUEST_LINE_BYTES and not raw.endswith(b'\n')


def setup_logging(log_dir: str = "logs", level: int = logging.INFO) -> logging.Logger:
    """
    Configure the server logger with a file and a console handler.

    Args:
        log_dir: Directory for server.log (created if missing)
        level: Logging level for both handlers

    Returns:
        The configured logger
    """
    os.makedirs(log_dir, exist_ok=True)

    log_format = "%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    file_handler = logging.FileHandler(os.path.join(log_dir, "server.log"), mode='a')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # Prevent duplicate logs
    logger.propagate = False
    return logger


class ConnectionHandler:
    """
    Handles one connection from first byte to close.

    Holds only read-only collaborators, so a single instance is shared by
    all workers.
    """

    def __init__(self, config: ServerConfig, logger: Optional[logging.Logger] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.config = config
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.clock = clock
        self.resolver = PathResolver(config.root_dir, config.allow_list)

    def handle(self, client_socket: socket.socket, client_address: Tuple[str, int]):
        """
        Serve a single request and close the socket.

        Args:
            client_socket: Accepted client socket, owned by this call
            client_address: Client address tuple (host, port)
        """
        thread_name = threading.current_thread().name
        connection_id = f"{client_address[0]}:{client_address[1]}"

        try:
            raw = self._read_request_line(client_socket)
            if raw is None:
                self.logger.info(f"[{thread_name}] Connection closed before request line: {connection_id}")
                return

            writer = ResponseWriter(client_socket)
            if is_overlong(raw):
                self.logger.warning(f"[{thread_name}] Bad request from {connection_id}: "
                                    f"request line exceeds {MAX_REQUEST_LINE_BYTES} bytes")
                writer.send_error(400)
                return
            line = raw.rstrip(b'\r\n').decode('utf-8', errors='replace')
            self._respond(writer, line, connection_id, thread_name)
        except OSError as e:
            self.logger.error(f"[{thread_name}] Transport error on {connection_id}: {e}")
        finally:
            client_socket.close()

    def _read_request_line(self, client_socket: socket.socket) -> Optional[bytes]:
        """
        Read one raw line, or None when the peer closed without sending anything.

        An overlong line comes back cut at MAX_REQUEST_LINE_BYTES. The rest of it
        is read and dropped so that closing the socket does not reset the peer
        before it sees the 400.
        """
        with client_socket.makefile('rb') as rfile:
            raw = rfile.readline(MAX_REQUEST_LINE_BYTES)
            if is_overlong(raw):
                for _ in range(MAX_DISCARD_READS):
                    rest = rfile.readline(MAX_REQUEST_LINE_BYTES)
                    if not rest or rest.endswith(b'\n'):
                        break
        return raw or None

    def _respond(self, writer: ResponseWriter, line: str, connection_id: str, thread_name: str):
        request = parse_request_line(line)
        if isinstance(request, MalformedRequestLine):
            self.logger.warning(f"[{thread_name}] Bad request from {connection_id}: {request.reason} ({request.line!r})")
            writer.send_error(400)
            return

        self.logger.info(f"[{thread_name}] Request: {request.method} {request.path} "
                         f"QueryParams: {dict(request.query_params)}")

        location = self.resolver.resolve(request.path)
        if not location.found:
            status_code = RESOLUTION_STATUS[location.resolution]
            if location.resolution is Resolution.ESCAPE_ATTEMPT:
                self.logger.warning(f"[{thread_name}] Security violation - path escapes root: "
                                    f"{request.path} -> {location.file_path}")
            else:
                self.logger.info(f"[{thread_name}] {status_code} for {request.path} ({location.resolution.value})")
            writer.send_error(status_code)
            return

        if request.path == self.config.template_path:
            self._serve_template(writer, request, location, thread_name)
        else:
            self._serve_file(writer, location, thread_name)

    def _serve_template(self, writer: ResponseWriter, request: Request,
                        location: ResourceLocation, thread_name: str):
        with open(location.file_path, 'rb') as f:
            template = f.read()

        content = render_template(template, request.query_params, self.clock)
        writer.send_response(200, location.content_type, content)
        self.logger.info(f"[{thread_name}] Served template {location.file_path} ({len(content)} bytes)")

    def _serve_file(self, writer: ResponseWriter, location: ResourceLocation, thread_name: str):
        with open(location.file_path, 'rb') as f:
            file_size = os.fstat(f.fileno()).st_size
            copied = writer.send_stream(200, location.content_type, f, file_size)
        if copied != file_size:
            self.logger.warning(f"[{thread_name}] File {location.file_path} changed while serving: "
                                f"announced {file_size} bytes, sent {copied}")
        else:
            self.logger.info(f"[{thread_name}] Served file {location.file_path} ({file_size} bytes)")


class WorkerPool:
    """
    Fixed number of worker threads consuming a queue of accepted connections.

    The queue is unbounded: connections beyond pool capacity wait, they are
    never rejected.
    """

    def __init__(self, size: int, handler: ConnectionHandler, logger: Optional[logging.Logger] = None):
        self.size = size
        self.handler = handler
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.connection_queue = queue.Queue()
        self.threads: List[threading.Thread] = []
        self.running = False

    def start(self):
        """Start the worker threads."""
        self.running = True
        for i in range(self.size):
            thread = threading.Thread(target=self._worker_thread, name=f"Worker-{i+1}")
            thread.daemon = True
            thread.start()
            self.threads.append(thread)

    def dispatch(self, client_socket: socket.socket, client_address: Tuple[str, int]):
        """Queue a connection for the next free worker."""
        self.connection_queue.put((client_socket, client_address))

    def pending(self) -> int:
        return self.connection_queue.qsize()

    def stop(self):
        self.running = False

    def _worker_thread(self):
        """Worker thread that processes connections from the queue."""
        thread_name = threading.current_thread().name

        while self.running:
            try:
                client_socket, client_address = self.connection_queue.get(timeout=1.0)
            except queue.Empty:
                continue

            try:
                self.handler.handle(client_socket, client_address)
            except Exception:
                # The handler already closed the socket; keep the worker alive.
                self.logger.exception(f"[{thread_name}] Unexpected error handling {client_address}")
            finally:
                self.connection_queue.task_done()


class StaticServer:
    """
    Listener: owns the bound port and feeds accepted connections to the pool.
    """

    def __init__(self, config: ServerConfig, logger: Optional[logging.Logger] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.config = config
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.handler = ConnectionHandler(config, self.logger, clock)
        self.pool = WorkerPool(config.pool_size, self.handler, self.logger)
        self.server_socket: Optional[socket.socket] = None
        self.port = config.port
        self.running = False
        self.ready = threading.Event()
        self.total_connections = 0

    def bind(self):
        """Create, bind and listen. Failure here is fatal."""
        try:
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.config.host, self.config.port))
            self.server_socket.listen(self.config.listen_backlog)
        except OSError as e:
            self.logger.error(f"Failed to bind {self.config.host}:{self.config.port}: {e}")
            if self.server_socket:
                self.server_socket.close()
                self.server_socket = None
            raise

        # Port 0 asks the OS for a free port; report the real one.
        self.port = self.server_socket.getsockname()[1]

    def start(self):
        """Bind, start the worker pool and run the accept loop until stopped."""
        self.bind()
        self.running = True
        self.pool.start()

        self.logger.info(f"Server started on {self.config.host}:{self.port}")
        self.logger.info(f"Thread pool size: {self.config.pool_size}, root: {os.path.abspath(self.config.root_dir)}")
        self.ready.set()

        # stop() may clear the attribute from another thread at any time.
        server_socket = self.server_socket
        try:
            while self.running:
                try:
                    client_socket, client_address = server_socket.accept()
                except OSError as e:
                    if self.running:
                        self.logger.error(f"Error accepting connection: {e}")
                    break

                self.total_connections += 1
                self.pool.dispatch(client_socket, client_address)
                self.logger.info(f"New connection from {client_address[0]}:{client_address[1]}, "
                                 f"queue size: {self.pool.pending()}")
        finally:
            self.stop()

    def stop(self):
        """Stop accepting. In-flight connections are not drained."""
        self.running = False
        self.pool.stop()

        server_socket, self.server_socket = self.server_socket, None
        if server_socket:
            try:
                # Wakes a thread blocked in accept() on Linux.
                server_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            server_socket.close()
            self.logger.info(f"Server stopped. Total connections: {self.total_connections}")

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signum}, stopping...")
        self.stop()


def parse_args(argv: List[str]) -> ServerConfig:
    """
    Build the config from ``[port] [host] [pool_size]``.

    Exits with status 1 on invalid values.
    """
    host = DEFAULT_HOST
    port = DEFAULT_PORT
    pool_size = DEFAULT_POOL_SIZE

    if len(argv) >= 2:
        try:
            port = int(argv[1])
        except ValueError:
            print("Error: Port must be an integer")
            sys.exit(1)

    if len(argv) >= 3:
        host = argv[2]

    if len(argv) >= 4:
        try:
            pool_size = int(argv[3])
        except ValueError:
            print("Error: Pool size must be an integer")
            sys.exit(1)

    try:
        return ServerConfig(host=host, port=port, pool_size=pool_size)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """Entry point: parse arguments, configure logging and serve forever."""
    config = parse_args(sys.argv if argv is None else argv)
    logger = setup_logging()

    server = StaticServer(config, logger)
    signal.signal(signal.SIGINT, server._signal_handler)
    signal.signal(signal.SIGTERM, server._signal_handler)

    print(f"Starting server on {config.host}:{config.port} with {config.pool_size} threads...")
    print("Press Ctrl+C to stop the server")
    try:
        server.start()
    except OSError as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
