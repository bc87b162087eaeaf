"""
Turns the query parameters and headers of a scrape request into a ProbeConfig.
"""
import logging
import math
import re
from typing import Mapping, Optional

from iperf3_exporter.contracts.probe_config import (
    DEFAULT_PERIOD_SECONDS,
    DEFAULT_PORT,
    DEFAULT_THREADS,
    MAX_TIMEOUT_SECONDS,
    ProbeConfig,
)
from iperf3_exporter.core.durations import parse_duration
from iperf3_exporter.core.errors import InvalidRequest

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT_HEADER = "X-Prometheus-Scrape-Timeout-Seconds"

_INTEGER = re.compile(r"[+-]?[0-9]+")
# Decimal or exponent floats plus inf/infinity/nan, as strconv.ParseFloat reads them
_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


def _parse_int(name: str, value: str) -> int:
    if not _INTEGER.fullmatch(value):
        raise InvalidRequest(
            f"'{name}' parameter must be an integer: invalid syntax {value!r}"
        )
    return int(value)


def resolve_timeout(header_value: Optional[str], default_timeout: float) -> float:
    """
    Pick the probe timeout from the scraper header, then the configured
    default, then the ceiling, and clamp the result to the ceiling.
    """
    timeout_seconds = 0.0
    if header_value:
        if not _FLOAT.fullmatch(header_value):
            raise InvalidRequest(
                f"Failed to parse timeout from Prometheus header: {header_value!r}",
                status_code=500,
            )
        timeout_seconds = float(header_value)
        # A negative value is kept and makes the probe fail at once
        if math.isnan(timeout_seconds):
            timeout_seconds = 0.0

    if timeout_seconds == 0:
        if default_timeout > 0:
            timeout_seconds = default_timeout
        else:
            timeout_seconds = MAX_TIMEOUT_SECONDS

    return min(timeout_seconds, MAX_TIMEOUT_SECONDS)


def resolve_probe_config(
    params: Mapping[str, str],
    headers: Mapping[str, str],
    default_timeout: float,
) -> ProbeConfig:
    """
    Build a validated ProbeConfig from request input.

    Args:
        params: Query parameters (target, port, thread, period).
        headers: Request headers; only the scrape timeout header is read.
        default_timeout: Process-wide default timeout in seconds.

    Returns:
        ProbeConfig: Fully defaulted and clamped probe parameters.

    Raises:
        InvalidRequest: If a parameter or the timeout header is malformed.
    """
    target = params.get("target") or ""
    if not target:
        raise InvalidRequest("'target' parameter must be specified")

    port = 0
    if params.get("port"):
        port = _parse_int("port", params["port"])
    if port == 0:
        port = DEFAULT_PORT

    thread = 0
    if params.get("thread"):
        thread = _parse_int("thread", params["thread"])
    if thread <= 0:
        thread = DEFAULT_THREADS

    period = 0.0
    if params.get("period"):
        try:
            period = parse_duration(params["period"])
        except ValueError as e:
            raise InvalidRequest(f"'period' parameter must be a duration: {e}")
    if period == 0:
        period = DEFAULT_PERIOD_SECONDS

    timeout = resolve_timeout(headers.get(SCRAPE_TIMEOUT_HEADER), default_timeout)

    config = ProbeConfig(
        target=target, port=port, thread=thread, period=period, timeout=timeout
    )
    logger.debug(f"Resolved probe config: {config}")
    return config
