"""
Static file server lifecycle for staticserve.

StaticServer owns one listening socket and the uvicorn server running the
application on it. Signal handling is left to the caller: shutdown() is the
only way to stop a running server.
"""

import contextlib
import logging
import socket
import sys
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import uvicorn

from api.main import create_app
from core.config import DEFAULT_PORT, ServerConfig, build_server_config
from core.errors import ConfigError
from core.handlers import HandlerRegistry, TemplateHandler
from templating.renderer import Jinja2Renderer, Renderer

logger = logging.getLogger(__name__)

BACKLOG = 2048


class _ManagedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to its owner."""

    def install_signal_handlers(self):
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class StaticServer:
    """
    A single static file server instance.

    Configure it, register template handlers, then call start() from the
    thread that should serve; shutdown() may be called from any thread or a
    signal handler.
    """

    def __init__(self, renderer: Optional[Renderer] = None):
        """
        Initialize the server.

        Args:
            renderer: Default renderer for template handlers (Jinja2 with
                ERB-style tags when omitted)
        """
        self.renderer = renderer or Jinja2Renderer()
        self.handlers = HandlerRegistry()
        self.config: Optional[ServerConfig] = None
        self.app = None
        self.ready = threading.Event()
        self._lock = threading.RLock()
        self._server: Optional[_ManagedServer] = None
        self._bound_address = None

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def address(self):
        """(host, port) of the bound listener, None when not running."""
        if self._server is None:
            return None
        return self._bound_address

    def configure(
        self,
        root_dir: Union[str, Path],
        bind_address: str = "",
        port: int = DEFAULT_PORT,
        index_files: Optional[Iterable[str]] = None,
        mime_overrides: Optional[Dict[str, str]] = None,
        nondisclosure_names: Optional[List[str]] = None,
        graceful_timeout: Optional[float] = None,
    ) -> ServerConfig:
        """
        Validate and store the configuration. No sockets are opened.

        Raises:
            ConfigError: If the root directory is missing, the port is out of
                range, no index file is given, or the server is running
        """
        if self.running:
            raise ConfigError("Cannot reconfigure a running server")

        values = {
            "root_dir": root_dir,
            "bind_address": bind_address,
            "port": port,
            "mime_overrides": dict(mime_overrides or {}),
            "graceful_timeout": graceful_timeout,
        }
        if index_files is not None:
            values["index_files"] = list(index_files)
        if nondisclosure_names is not None:
            values["nondisclosure_names"] = list(nondisclosure_names)

        config = build_server_config(**values)
        for extension in self.handlers.extensions():
            config.mime_overrides[extension] = self.handlers.get(extension).content_type

        self.config = config
        self.app = create_app(config, self.handlers)
        logger.info(f"Configured document root {config.root_dir} on port {config.port}")
        return config

    def register_template_handler(
        self,
        extension: str,
        content_type: str = "text/html",
        renderer: Optional[Renderer] = None,
    ) -> TemplateHandler:
        """
        Render files with the given extension before sending them.

        Args:
            extension: File extension such as "erb" or ".erb"
            content_type: Content type of rendered responses
            renderer: Renderer to use instead of the server default

        Raises:
            HandlerError: If the extension is already bound differently
        """
        handler = self.handlers.register(extension, content_type, renderer or self.renderer)
        if self.config is not None:
            self.config.mime_overrides[handler.extension] = handler.content_type
        return handler

    def start(self, cancel: Optional[threading.Event] = None):
        """
        Bind the listener and serve until shutdown() is called.

        Args:
            cancel: Stop request that may be set before the server exists;
                when already set, start() returns without serving

        Raises:
            ConfigError: If the server is not configured or the listener
                cannot be bound
        """
        if self.config is None:
            raise ConfigError("Server is not configured")

        with self._lock:
            if self._server is not None:
                logger.warning("Server is already running")
                return
            if cancel is not None and cancel.is_set():
                logger.info("Stop requested before start, not serving")
                return

            sock = self._bind()
            uvicorn_config = uvicorn.Config(
                self.app,
                log_config=None,
                timeout_graceful_shutdown=self.config.graceful_timeout,
            )
            server = _ManagedServer(uvicorn_config)
            self._server = server
            self._bound_address = sock.getsockname()[:2]
            self.ready.set()
            if cancel is not None and cancel.is_set():
                server.should_exit = True

        logger.info(f"Serving {self.config.root_dir} on http://{self._bound_address[0]}:{self._bound_address[1]}")
        try:
            server.run(sockets=[sock])
        finally:
            with self._lock:
                self._server = None
                self.ready.clear()
            sock.close()
            logger.info("Server stopped")

    def shutdown(self):
        """
        Stop accepting connections and let in-flight requests finish.

        start() returns once the listener is released. Calling this when the
        server is not running, or more than once, does nothing.
        """
        with self._lock:
            server = self._server
            if server is None or server.should_exit:
                return
            server.should_exit = True
        logger.info("Shutdown requested, waiting for in-flight requests")

    def _bind(self) -> socket.socket:
        host = self.config.host
        port = self.config.port
        family = socket.AF_INET6 if ":" in host else socket.AF_INET

        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if sys.platform != "win32":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(BACKLOG)
        except OSError as e:
            sock.close()
            raise ConfigError(f"Cannot listen on {host}:{port}: {e.strerror or e}") from e

        sock.set_inheritable(True)
        return sock
