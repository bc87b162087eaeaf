import logging
import subprocess
from typing import List

from pydantic import ValidationError

from iperf3_exporter.abstractions.probe_runner import ProbeRunner
from iperf3_exporter.contracts.probe_config import ProbeConfig
from iperf3_exporter.contracts.probe_result import IperfReport, ProbeResult
from iperf3_exporter.core.errors import ProbeErrorKind, ProbeFailure

logger = logging.getLogger(__name__)


class Iperf3Invoker(ProbeRunner):
    """
    Runs the iperf3 client in JSON mode and parses its summary.
    """

    def __init__(self, command: str = "iperf3"):
        self.command = command

    def build_args(self, config: ProbeConfig) -> List[str]:
        return [
            self.command,
            "-J",
            "-t",
            f"{config.period:.0f}",
            "-c",
            config.target,
            "-p",
            str(config.port),
            "-P",
            str(config.thread),
        ]

    def run(self, config: ProbeConfig) -> ProbeResult:
        args = self.build_args(config)
        logger.info(f"Running probe: {' '.join(args)} (timeout={config.timeout}s)")
        output = self._execute(args, config.timeout)
        return self.parse(output)

    def _execute(self, args: List[str], timeout: float) -> bytes:
        if timeout <= 0:
            raise ProbeFailure(
                ProbeErrorKind.EXECUTION_ERROR,
                f"deadline of {timeout}s expired before {args[0]} started",
            )
        try:
            proc = subprocess.Popen(
                args, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except OSError as e:
            raise ProbeFailure(
                ProbeErrorKind.EXECUTION_ERROR, f"could not start {args[0]}: {e}"
            )

        # Leaving the block closes the pipes and reaps the child on every path
        with proc:
            try:
                stdout, stderr = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.communicate()
                raise ProbeFailure(
                    ProbeErrorKind.EXECUTION_ERROR,
                    f"{args[0]} did not finish within {timeout}s",
                )

        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise ProbeFailure(
                ProbeErrorKind.EXECUTION_ERROR,
                f"{args[0]} exited with status {proc.returncode}: {detail[:200]}",
            )
        return stdout

    @staticmethod
    def parse(output: bytes) -> ProbeResult:
        try:
            report = IperfReport.model_validate_json(output)
        except ValidationError as e:
            raise ProbeFailure(
                ProbeErrorKind.PARSE_ERROR,
                f"unexpected iperf3 output: {e.error_count()} validation error(s)",
            )
        return ProbeResult.from_report(report)
