from typing import Optional

from pydantic import BaseModel


class IperfSum(BaseModel):
    seconds: float = 0.0
    bytes: float = 0.0


class IperfEnd(BaseModel):
    sum_sent: IperfSum = IperfSum()
    sum_received: IperfSum = IperfSum()


class IperfReport(BaseModel):
    """
    The part of the iperf3 JSON report (-J) the exporter reads.
    """

    end: IperfEnd = IperfEnd()


class ProbeResult(BaseModel):
    """
    Measured quantities of one successful probe.
    """

    sent_seconds: float
    sent_bytes: float
    received_seconds: float
    received_bytes: float

    @classmethod
    def from_report(cls, report: IperfReport) -> "ProbeResult":
        return cls(
            sent_seconds=report.end.sum_sent.seconds,
            sent_bytes=report.end.sum_sent.bytes,
            received_seconds=report.end.sum_received.seconds,
            received_bytes=report.end.sum_received.bytes,
        )


class MetricSet(BaseModel):
    """
    Values emitted for one scrape. Only success is set when the probe failed.
    """

    success: bool
    thread: Optional[int] = None
    sent_seconds: Optional[float] = None
    sent_bytes: Optional[float] = None
    received_seconds: Optional[float] = None
    received_bytes: Optional[float] = None

    @classmethod
    def failed(cls) -> "MetricSet":
        return cls(success=False)
