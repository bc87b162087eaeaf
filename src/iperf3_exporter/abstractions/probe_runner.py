from abc import ABC, abstractmethod

from iperf3_exporter.contracts.probe_config import ProbeConfig
from iperf3_exporter.contracts.probe_result import ProbeResult


class ProbeRunner(ABC):
    """
    Abstract base class for throughput probe implementations.
    """

    @abstractmethod
    def run(self, config: ProbeConfig) -> ProbeResult:
        """
        Run one probe against config.target, bounded by config.timeout.

        Args:
            config (ProbeConfig): The resolved probe parameters.

        Returns:
            ProbeResult: The measured quantities.

        Raises:
            ProbeFailure: If the probe could not run or its output was unusable.
        """
