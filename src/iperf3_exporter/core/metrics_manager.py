import logging
import platform
import time
from contextlib import contextmanager

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Info, Summary

from iperf3_exporter import __version__

logger = logging.getLogger(__name__)

NAMESPACE = "iperf3"


class MetricsManager:
    """
    Holds the exporter's own metrics: collection duration, error count and
    build information.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        """
        Initialize the MetricsManager and register its metrics.

        Args:
            registry (CollectorRegistry): Registry served on the metrics path.
                Tests pass a private registry to avoid duplicate registration.
        """
        self.registry = registry
        self.DURATION = Summary(
            "duration_seconds",
            "Duration of collections by the iperf3 exporter.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=registry,
        )
        self.ERRORS = Counter(
            "errors",
            "Errors raised by the iperf3 exporter.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=registry,
        )
        self.BUILD = Info(
            "build",
            "Build information of the iperf3 exporter.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=registry,
        )
        self.BUILD.info(
            {"version": __version__, "python_version": platform.python_version()}
        )
        logger.info("MetricsManager initialized.")

    def record_error(self):
        self.ERRORS.inc()

    @contextmanager
    def track_duration(self):
        """
        Observe the wall-clock time of the block into the duration summary.
        The observation is skipped if the block raises.
        """
        start = time.time()
        yield
        elapsed = time.time() - start
        self.DURATION.observe(elapsed)
        logger.debug(f"Collection finished in {elapsed:.4f}s")
