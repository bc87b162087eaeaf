import logging
from contextlib import asynccontextmanager
from typing import Optional

import anyio
import anyio.to_thread
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from iperf3_exporter.abstractions.probe_runner import ProbeRunner
from iperf3_exporter.config.config import Config
from iperf3_exporter.contracts.probe_config import ProbeConfig
from iperf3_exporter.core.collection_session import CollectionSession, ProbeCollector
from iperf3_exporter.core.errors import InvalidRequest
from iperf3_exporter.core.metrics_manager import MetricsManager
from iperf3_exporter.core.param_resolver import resolve_probe_config
from iperf3_exporter.core.probe_invoker import Iperf3Invoker
from iperf3_exporter.core.result_cache import ResultCache

logger = logging.getLogger(__name__)

LANDING_PAGE = """<html>
    <head><title>iPerf3 Exporter</title></head>
    <body>
    <h1>iPerf3 Exporter</h1>
    <p><a href="/probe?target=prometheus.io">Probe prometheus.io</a></p>
    <p><a href='{metrics_path}'>Metrics</a></p>
    </body>
    </html>"""


def _first_query_values(request: Request) -> dict:
    # Repeated parameters resolve to their first occurrence
    values = {}
    for key, value in request.query_params.multi_items():
        values.setdefault(key, value)
    return values


def create_app(
    metrics_path: Optional[str] = None,
    default_timeout: Optional[float] = None,
    cache: Optional[ResultCache] = None,
    runner: Optional[ProbeRunner] = None,
    metrics_manager: Optional[MetricsManager] = None,
    max_concurrent_scrapes: Optional[int] = None,
) -> FastAPI:
    """
    Build the exporter application.

    Args:
        metrics_path (Optional[str]): Path of the self-metrics endpoint.
        default_timeout (Optional[float]): Probe timeout used when the scraper
            sends none.
        cache (Optional[ResultCache]): Shared measurement cache.
        runner (Optional[ProbeRunner]): Probe implementation.
        metrics_manager (Optional[MetricsManager]): Exporter self-metrics.
        max_concurrent_scrapes (Optional[int]): Worker threads reserved for
            /probe collections.

    Returns:
        FastAPI: The configured application.
    """
    metrics_path = metrics_path or Config.METRICS_PATH
    if default_timeout is None:
        default_timeout = Config.IPERF3_TIMEOUT
    cache = cache if cache is not None else ResultCache(ttl=Config.CACHE_TIME_SECONDS)
    runner = runner if runner is not None else Iperf3Invoker(Config.IPERF3_COMMAND)
    metrics_manager = metrics_manager if metrics_manager is not None else MetricsManager()
    max_concurrent_scrapes = max_concurrent_scrapes or Config.MAX_CONCURRENT_SCRAPES

    @asynccontextmanager
    async def lifespan(app):
        # Collections block a thread for the whole iperf3 run, so they get
        # their own limiter instead of the shared default pool
        app.state.scrape_limiter = anyio.CapacityLimiter(max_concurrent_scrapes)
        logger.info(f"Probe collections limited to {max_concurrent_scrapes} threads")
        yield

    app = FastAPI(title="iperf3 exporter", lifespan=lifespan)
    app.state.cache = cache
    app.state.runner = runner
    app.state.metrics_manager = metrics_manager

    def collect(config: ProbeConfig) -> bytes:
        with metrics_manager.track_duration():
            registry = CollectorRegistry()
            session = CollectionSession(cache, runner, metrics=metrics_manager)
            registry.register(ProbeCollector(config, session))
            return generate_latest(registry)

    @app.get("/probe")
    async def probe(request: Request):
        try:
            config = resolve_probe_config(
                _first_query_values(request), request.headers, default_timeout
            )
        except InvalidRequest as e:
            metrics_manager.record_error()
            logger.warning(f"Rejected probe request {request.url.query!r}: {e.message}")
            return PlainTextResponse(e.message, status_code=e.status_code)

        output = await anyio.to_thread.run_sync(
            collect, config, limiter=request.app.state.scrape_limiter
        )
        return Response(output, media_type=CONTENT_TYPE_LATEST)

    @app.get(metrics_path)
    async def metrics():
        return Response(
            generate_latest(metrics_manager.registry), media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/", response_class=HTMLResponse)
    async def landing_page():
        return LANDING_PAGE.format(metrics_path=metrics_path)

    return app
