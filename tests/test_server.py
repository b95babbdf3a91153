"""
HTTP listener tests.
"""
import asyncio
from unittest.mock import AsyncMock

from aiohttp.test_utils import TestClient, TestServer

from core.config import ProbeConfig
from core.context import CheckResult, IPFamily, ProbeReport, Protocol, TLSARecord
from reporting.server import create_app


def _get(app, path, method="GET"):
    async def fetch():
        async with TestClient(TestServer(app)) as client:
            resp = await client.request(method, path)
            return resp.status, await resp.text(), resp.headers.get("Content-Type", "")

    return asyncio.run(fetch())


class TestExporterApp:
    def setup_method(self):
        self.cfg = ProbeConfig(smtp_hostname="mail.test", ipv4_enabled=True)
        self.report = ProbeReport(
            tlsa=TLSARecord(digest="4a5b", source_name="_25._tcp.mail.test", resolved=True, fetch_seconds=0.1),
            checks=[CheckResult(Protocol.SMTP, IPFamily.V4, True, True, "4a5b", 0.3)],
        )

    def test_metrics_runs_one_probe_per_scrape(self):
        probe = AsyncMock(return_value=self.report)
        status, body, content_type = _get(create_app(self.cfg, probe), "/metrics")
        assert status == 200
        assert content_type.startswith("text/plain")
        assert 'mtce_smtp_status{ip="v4",tlsa_digest="4a5b"} 1.0' in body
        probe.assert_awaited_once_with(self.cfg)

    def test_unexpected_failure_answers_500(self):
        probe = AsyncMock(side_effect=RuntimeError("boom"))
        status, body, _ = _get(create_app(self.cfg, probe), "/metrics")
        assert status == 500
        assert body == "ERROR: boom"

    def test_other_paths_show_landing_page(self):
        probe = AsyncMock(return_value=self.report)
        status, body, _ = _get(create_app(self.cfg, probe), "/")
        assert status == 200
        assert body.startswith("Mail TLSA Check Exporter")
        assert "/metrics" in body
        probe.assert_not_awaited()

    def test_any_method_on_metrics_path_scrapes(self):
        scrape = AsyncMock(return_value=self.report)
        status, body, _ = _get(create_app(self.cfg, scrape), "/metrics", method="POST")
        assert status == 200
        assert 'mtce_smtp_status{ip="v4",tlsa_digest="4a5b"} 1.0' in body
        scrape.assert_awaited_once_with(self.cfg)
