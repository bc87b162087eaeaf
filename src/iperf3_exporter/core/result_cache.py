import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from iperf3_exporter.contracts.probe_result import MetricSet, ProbeResult

logger = logging.getLogger(__name__)

# New entries start this far in the past so the first scrape always probes
PRE_EXPIRED_OFFSET_SECONDS = 365 * 24 * 3600.0


class CacheEntry:
    """
    Last successful measurement for one target.
    """

    def __init__(self, last_measurement: float):
        self.last_measurement = last_measurement
        self.thread = 0
        self.sent_seconds = 0.0
        self.sent_bytes = 0.0
        self.received_seconds = 0.0
        self.received_bytes = 0.0
        # Held while a session checks, refreshes and reads this entry
        self.lock = threading.Lock()

    def update(self, thread: int, result: ProbeResult, now: float):
        self.thread = thread
        self.sent_seconds = result.sent_seconds
        self.sent_bytes = result.sent_bytes
        self.received_seconds = result.received_seconds
        self.received_bytes = result.received_bytes
        self.last_measurement = now

    def to_metric_set(self) -> MetricSet:
        return MetricSet(
            success=True,
            thread=self.thread,
            sent_seconds=self.sent_seconds,
            sent_bytes=self.sent_bytes,
            received_seconds=self.received_seconds,
            received_bytes=self.received_bytes,
        )

    def __repr__(self):
        return (
            f"CacheEntry(last_measurement={self.last_measurement}, thread={self.thread}, "
            f"sent_seconds={self.sent_seconds}, sent_bytes={self.sent_bytes}, "
            f"received_seconds={self.received_seconds}, received_bytes={self.received_bytes})"
        )


class ResultCache:
    """
    Process-wide store of the latest measurement per target.

    Entries are keyed by the target string only and are never evicted. Each
    entry carries its own lock so probes against different targets do not
    wait on each other.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        """
        Initialize the ResultCache.

        Args:
            ttl (float): Seconds after which a measurement is considered stale.
            clock (Callable[[], float]): Source of the current time in seconds.
        """
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        logger.info(f"ResultCache initialized with ttl={self.ttl}s")

    def get_or_create(self, target: str) -> CacheEntry:
        with self._lock:
            entry = self._entries.get(target)
            if entry is None:
                entry = CacheEntry(self.clock() - PRE_EXPIRED_OFFSET_SECONDS)
                self._entries[target] = entry
                logger.debug(f"Created expired cache entry for target {target}")
            return entry

    def is_stale(self, entry: CacheEntry, now: float, ttl: Optional[float] = None) -> bool:
        if ttl is None:
            ttl = self.ttl
        return now - entry.last_measurement >= ttl

    @contextmanager
    def locked(self, target: str) -> Iterator[CacheEntry]:
        """
        Hold the entry for target (creating it if needed) for the duration of
        the block.
        """
        entry = self.get_or_create(target)
        with entry.lock:
            yield entry

    def __len__(self):
        with self._lock:
            return len(self._entries)
