import argparse
import logging
import sys

import uvicorn

from iperf3_exporter import __version__
from iperf3_exporter.config.config import Config
from iperf3_exporter.config.logging_config import LOG_LEVEL, setup_logging
from iperf3_exporter.core.durations import parse_duration
from iperf3_exporter.core.probe_invoker import Iperf3Invoker
from iperf3_exporter.core.result_cache import ResultCache
from iperf3_exporter.server import create_app

logger = logging.getLogger(__name__)


def duration_arg(value):
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser():
    parser = argparse.ArgumentParser(
        prog="iperf3-exporter", description="Prometheus exporter for iperf3 probes."
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=Config.LISTEN_ADDRESS,
        help="Address to listen on for web interface and telemetry.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        default=Config.METRICS_PATH,
        help="Path under which to expose metrics.",
    )
    parser.add_argument(
        "--iperf3.timeout",
        dest="timeout",
        type=duration_arg,
        default=Config.IPERF3_TIMEOUT,
        help="iperf3 run timeout, e.g. 30s.",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Minimum level of logged messages.",
    )
    parser.add_argument(
        "--version", action="version", version=f"iperf3_exporter {__version__}"
    )
    return parser


def split_listen_address(address):
    """
    Split "host:port" into its parts. An empty host binds all interfaces.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        host, port = split_listen_address(args.listen_address)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(level=args.log_level)
    logger.info(f"Starting iperf3 exporter version={__version__}")

    app = create_app(
        metrics_path=args.metrics_path,
        default_timeout=args.timeout,
        cache=ResultCache(ttl=Config.CACHE_TIME_SECONDS),
        runner=Iperf3Invoker(Config.IPERF3_COMMAND),
    )

    logger.info(f"Caching enabled, duration: {Config.CACHE_TIME_SECONDS:.0f}s")
    logger.info(f"Listening on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
