"""Server configuration and built-in defaults."""

from dataclasses import dataclass, field
from typing import FrozenSet

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9999
DEFAULT_POOL_SIZE = 64
DEFAULT_ROOT_DIR = "public"
DEFAULT_TEMPLATE_PATH = "/classic.html"
LISTEN_BACKLOG = 50

DEFAULT_ALLOW_LIST = frozenset([
    "/index.html",
    "/spring.svg",
    "/spring.png",
    "/resources.html",
    "/styles.css",
    "/app.js",
    "/links.html",
    "/forms.html",
    "/classic.html",
    "/events.html",
    "/events.js",
])


@dataclass(frozen=True)
class ServerConfig:
    """
    Process-wide server settings, read-only once created.

    Workers share one instance without locking, so it must stay immutable.
    """
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    allow_list: FrozenSet[str] = field(default=DEFAULT_ALLOW_LIST)
    pool_size: int = DEFAULT_POOL_SIZE
    root_dir: str = DEFAULT_ROOT_DIR
    template_path: str = DEFAULT_TEMPLATE_PATH
    listen_backlog: int = LISTEN_BACKLOG

    def __post_init__(self):
        if not (0 <= self.port <= 65535):
            raise ValueError(f"Port must be between 0 and 65535, got {self.port}")
        if self.pool_size < 1:
            raise ValueError(f"Pool size must be at least 1, got {self.pool_size}")
        # Accept any iterable of paths but always store a frozenset.
        if not isinstance(self.allow_list, frozenset):
            object.__setattr__(self, 'allow_list', frozenset(self.allow_list))
