import time
from prometheus_client import Counter, Histogram, Gauge, start_http_server
import logging

# Configure logger
logger = logging.getLogger(__name__)

# Define metrics
REQUESTS_TOTAL = Counter(
    'staticserve_requests_total',
    'Total number of requests answered',
    ['kind', 'status']
)

RENDER_TIME = Histogram(
    'staticserve_template_render_seconds',
    'Time spent rendering templates',
    ['extension'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

IN_FLIGHT = Gauge(
    'staticserve_requests_in_flight',
    'Number of requests currently being handled'
)


class MetricsCollector:
    """
    Metrics collector for staticserve.
    Provides methods for recording request and rendering metrics.
    """

    @staticmethod
    def in_flight():
        """
        Context manager counting a request as in flight until it exits,
        whether it returns or raises.

        Returns:
            context manager: In-flight tracker
        """
        return IN_FLIGHT.track_inprogress()

    @staticmethod
    def record_request_finished(kind, status):
        """
        Record the outcome of a request.

        Args:
            kind (str): static, template, redirect or error
            status (int): HTTP status sent
        """
        REQUESTS_TOTAL.labels(kind=kind, status=str(status)).inc()
        logger.debug(f"Recorded {kind} request with status {status}")

    @staticmethod
    def render_timer(extension):
        """
        Context manager for timing template rendering.

        Args:
            extension (str): Template extension being rendered

        Returns:
            context manager: Timer context manager
        """
        class Timer:
            def __enter__(self):
                self.start_time = time.time()
                return self

            def __exit__(self, exc_type, exc_val, exc_tb):
                duration = time.time() - self.start_time
                RENDER_TIME.labels(extension=extension).observe(duration)
                logger.debug(f"Rendered .{extension} template in {duration:.3f}s")

        return Timer()

    @staticmethod
    def start_exporter(port, addr=""):
        """
        Serve the metrics registry over HTTP on its own port.

        Args:
            port (int): Exporter port, 0 disables the exporter
            addr (str): Address to bind, empty for all interfaces
        """
        if not port:
            logger.info("Metrics exporter is disabled")
            return False
        start_http_server(port, addr=addr or "0.0.0.0")
        logger.info(f"Metrics exporter listening on port {port}")
        return True


# Create a singleton instance
metrics = MetricsCollector()
