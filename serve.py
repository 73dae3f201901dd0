"""
Local HTTP server for a document root.

Serves the files under STATIC_ROOT (the working directory by default) on
port 8080 and renders .erb files as HTML. Ctrl+C shuts down gracefully.
"""

import logging
import signal
import sys
import threading

from core.config import load_settings
from core.errors import ConfigError, HandlerError
from core.server import StaticServer
from observability.metrics import metrics
from observability.tracing import setup_tracing

logger = logging.getLogger("staticserve")


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main() -> int:
    """Run the server until SIGINT. Returns the process exit status."""
    try:
        settings = load_settings()
    except ConfigError as e:
        configure_logging()
        logger.error("Invalid settings: %s", e)
        return 1

    configure_logging(settings.log_level)

    server = StaticServer()
    try:
        server.configure(
            settings.static_root,
            bind_address=settings.bind_address,
            port=settings.port,
            index_files=settings.index_files,
            graceful_timeout=settings.graceful_timeout,
        )
        server.register_template_handler(settings.template_extension, settings.template_content_type)
    except (ConfigError, HandlerError) as e:
        logger.error("Startup failed: %s", e)
        return 1

    try:
        metrics.start_exporter(settings.metrics_port, settings.bind_address)
    except OSError as e:
        logger.error("Startup failed: cannot start metrics exporter: %s", e)
        return 1
    setup_tracing(server.app, enabled=settings.enable_tracing, endpoint=settings.otlp_endpoint)

    stop = threading.Event()

    def request_stop(signum, frame):
        stop.set()
        server.shutdown()

    previous_handler = signal.signal(signal.SIGINT, request_stop)
    try:
        server.start(cancel=stop)
    except ConfigError as e:
        logger.error("Startup failed: %s", e)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    return 0


if __name__ == "__main__":
    sys.exit(main())
