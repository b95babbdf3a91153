"""
HTTP listener: /metrics runs one probe per scrape; anything else gets a landing page.
A failure while assembling the response answers 500 and the server keeps running.
"""
import logging
from typing import Awaitable, Callable

from aiohttp import web

from core.config import ProbeConfig
from core.constants import METRICS_PATH
from core.context import ProbeReport
from core.scanner import run_probe
from reporting.metrics import CONTENT_TYPE, render_metrics

logger = logging.getLogger("mtce.exporter")

LANDING_TEXT = (
    "Mail TLSA Check Exporter\n"
    "------------------------\n"
    f"Metrics are available at path {METRICS_PATH}"
)

CONFIG_KEY = web.AppKey("config", ProbeConfig)
PROBE_KEY = web.AppKey("probe", Callable[[ProbeConfig], Awaitable[ProbeReport]])


async def metrics(request: web.Request) -> web.Response:
    cfg = request.app[CONFIG_KEY]
    probe = request.app[PROBE_KEY]
    try:
        report = await probe(cfg)
        body = render_metrics(report, cfg.protocols)
    except Exception as e:
        logger.exception("Scrape failed: %s", e)
        return web.Response(status=500, text=f"ERROR: {e}", content_type="text/plain")
    return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE})


async def landing(request: web.Request) -> web.Response:
    return web.Response(text=LANDING_TEXT, content_type="text/plain")


def create_app(cfg: ProbeConfig, probe: Callable[[ProbeConfig], Awaitable[ProbeReport]] = run_probe) -> web.Application:
    app = web.Application()
    app[CONFIG_KEY] = cfg
    app[PROBE_KEY] = probe
    app.router.add_route("*", METRICS_PATH, metrics)
    app.router.add_route("*", "/{tail:.*}", landing)
    return app


def serve(cfg: ProbeConfig) -> None:
    """Block serving scrapes on cfg.server_port."""
    logger.info("MAIL-TLSA-CHECK-EXPORTER started on port %d", cfg.server_port)
    web.run_app(create_app(cfg), port=cfg.server_port, print=None)
