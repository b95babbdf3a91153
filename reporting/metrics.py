"""
Prometheus exposition of one ProbeReport. A fresh registry per scrape: the
exporter keeps no state between probes.
"""
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from core.constants import METRIC_PREFIX
from core.context import ProbeReport, Protocol

CONTENT_TYPE = CONTENT_TYPE_LATEST


def _protocol_gauges(registry: CollectorRegistry, protocol: Protocol) -> tuple[Gauge, Gauge, Gauge]:
    name = protocol.name
    prefix = f"{METRIC_PREFIX}_{protocol.value}"
    status = Gauge(
        f"{prefix}_status", f"{name} server status (1 = up, 0 = failed)",
        ["ip", "tlsa_digest"], registry=registry,
    )
    cert_status = Gauge(
        f"{prefix}_cert_status", f"{name} certificate status (1 = valid, 0 = invalid)",
        ["ip", "tlsa_digest", "cert_digest"], registry=registry,
    )
    seconds = Gauge(
        f"{prefix}_seconds", f"{name} check duration in seconds",
        ["ip", "tlsa_digest"], registry=registry,
    )
    return status, cert_status, seconds


def build_registry(report: ProbeReport, protocols: list[Protocol] | None = None) -> CollectorRegistry:
    """
    Gauges for the TLSA fetch and every check in the report, labelled by IP
    family, pinned digest and observed digest. protocols lists the configured
    protocols; their metric families are declared even when no family is enabled.
    """
    registry = CollectorRegistry(auto_describe=True)
    tlsa = report.tlsa
    Gauge(
        f"{METRIC_PREFIX}_tlsa_status", "TLSA record fetch status (1 = up, 0 = failed)",
        ["tlsa_digest"], registry=registry,
    ).labels(tlsa_digest=tlsa.digest).set(1 if tlsa.resolved else 0)
    Gauge(
        f"{METRIC_PREFIX}_tlsa_fetch_seconds", "TLSA record fetch duration in seconds",
        ["tlsa_digest"], registry=registry,
    ).labels(tlsa_digest=tlsa.digest).set(tlsa.fetch_seconds)

    if protocols is None:
        protocols = [p for p in Protocol if report.for_protocol(p)]
    for protocol in protocols:
        status, cert_status, seconds = _protocol_gauges(registry, protocol)
        for check in report.for_protocol(protocol):
            ip = check.ip_family.value
            status.labels(ip=ip, tlsa_digest=tlsa.digest).set(1 if check.reachable else 0)
            cert_status.labels(ip=ip, tlsa_digest=tlsa.digest, cert_digest=check.observed_digest).set(
                1 if check.certificate_valid else 0
            )
            seconds.labels(ip=ip, tlsa_digest=tlsa.digest).set(check.duration_seconds)
    return registry


def render_metrics(report: ProbeReport, protocols: list[Protocol] | None = None) -> bytes:
    """Text exposition format for one probe."""
    return generate_latest(build_registry(report, protocols))
