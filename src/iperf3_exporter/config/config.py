import os
import re

from iperf3_exporter.core.durations import parse_duration

DEFAULT_CACHE_MINUTES = 60
_MINUTES = re.compile(r"[+-]?[0-9]+")


def cache_time_from_env(value):
    """
    Convert the CACHE_TIME environment value (whole minutes) to seconds,
    falling back to one hour when it is absent or not an integer.
    """
    if value is not None and _MINUTES.fullmatch(value):
        return int(value) * 60.0
    return DEFAULT_CACHE_MINUTES * 60.0


class Config:
    """
    Configuration class for environment variables and default settings.
    """

    LISTEN_ADDRESS = os.environ.get("LISTEN_ADDRESS", ":9579")
    METRICS_PATH = os.environ.get("METRICS_PATH", "/metrics")

    # Default probe timeout as a duration string ("30s", "1m", ...)
    IPERF3_TIMEOUT = parse_duration(os.environ.get("IPERF3_TIMEOUT", "30s"))
    IPERF3_COMMAND = os.environ.get("IPERF3_COMMAND", "iperf3")

    # How long a measurement stays fresh for a given target
    CACHE_TIME_SECONDS = cache_time_from_env(os.environ.get("CACHE_TIME"))

    # Worker threads available to /probe collections at once
    MAX_CONCURRENT_SCRAPES = int(os.environ.get("MAX_CONCURRENT_SCRAPES", "512"))
