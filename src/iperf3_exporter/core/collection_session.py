import logging
from typing import Callable, Iterator, Optional

from prometheus_client.core import GaugeMetricFamily

from iperf3_exporter.abstractions.probe_runner import ProbeRunner
from iperf3_exporter.contracts.probe_config import ProbeConfig
from iperf3_exporter.contracts.probe_result import MetricSet
from iperf3_exporter.core.errors import ProbeFailure
from iperf3_exporter.core.metrics_manager import NAMESPACE, MetricsManager
from iperf3_exporter.core.result_cache import ResultCache

logger = logging.getLogger(__name__)

# (MetricSet field, metric suffix, help text) in emission order
PROBE_GAUGES = [
    ("thread", "nb_thread", "Total number of thread used by the client."),
    ("success", "success", "Was the last iperf3 probe successful."),
    ("sent_seconds", "sent_seconds", "Total seconds spent sending packets."),
    ("sent_bytes", "sent_bytes", "Total sent bytes."),
    ("received_seconds", "received_seconds", "Total seconds spent receiving packets."),
    ("received_bytes", "received_bytes", "Total received bytes."),
]


class CollectionSession:
    """
    Produces the metric set for one scrape, reusing the cached measurement
    while it is fresh and probing the target otherwise.
    """

    def __init__(
        self,
        cache: ResultCache,
        runner: ProbeRunner,
        metrics: Optional[MetricsManager] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.cache = cache
        self.runner = runner
        self.metrics = metrics
        self.clock = clock or cache.clock

    def collect(self, config: ProbeConfig) -> MetricSet:
        # The entry lock makes stale-check, probe and update atomic per target
        with self.cache.locked(config.target) as entry:
            if not self.cache.is_stale(entry, self.clock()):
                logger.debug(f"Serving cached measurement for {config.target}")
                return entry.to_metric_set()

            try:
                result = self.runner.run(config)
            except ProbeFailure as e:
                if self.metrics is not None:
                    self.metrics.record_error()
                logger.error(f"Probe against {config.target} failed: {e}")
                return MetricSet.failed()

            entry.update(config.thread, result, self.clock())
            logger.info(
                f"Probe against {config.target} succeeded: sent_bytes={result.sent_bytes}, "
                f"received_bytes={result.received_bytes}"
            )
            return entry.to_metric_set()


def metric_families(metric_set: MetricSet) -> Iterator[GaugeMetricFamily]:
    """
    Yield one gauge per populated MetricSet field. A failed set yields only
    the success gauge.
    """
    for field, suffix, documentation in PROBE_GAUGES:
        value = getattr(metric_set, field)
        if value is None:
            continue
        yield GaugeMetricFamily(f"{NAMESPACE}_{suffix}", documentation, value=float(value))


class ProbeCollector:
    """
    Custom collector that runs a collection session each time its registry is
    rendered.
    """

    def __init__(self, config: ProbeConfig, session: CollectionSession):
        self.config = config
        self.session = session

    def describe(self):
        # Lets CollectorRegistry.register learn the names without probing
        return [
            GaugeMetricFamily(f"{NAMESPACE}_{suffix}", documentation)
            for _, suffix, documentation in PROBE_GAUGES
        ]

    def collect(self):
        yield from metric_families(self.session.collect(self.config))
