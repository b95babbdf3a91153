"""
Probe orchestration: TLSA fetch first, then one STARTTLS check per enabled
(protocol, IP family). Every check is raced against the configured timeout and
every failure is converted into a CheckResult; nothing here raises for a bad
server or a bad network.
"""
import asyncio
from datetime import datetime, timezone
import logging
import ssl
import time

from core.config import ProbeConfig
from core.constants import CLOSE_TIMEOUT, EHLO_IDENTITY, READ_CHUNK_SIZE, TLSA_MATCH_SHA256, TLSA_SELECTOR_SPKI
from core.context import CheckResult, IPFamily, ProbeReport, Protocol
from core.errors import CheckConnectionError, ProbeError
from core.settle import race
from core.utils import decode_chunk, elapsed_since
from dns_checks.tlsa import fetch_tlsa
from smtp.certificate import NegotiatedCertificate, validate
from smtp.imap_starttls import ImapNegotiator
from smtp.negotiator import Negotiator
from smtp.starttls import SmtpNegotiator

logger = logging.getLogger("mtce.probe")


def make_negotiator(protocol: Protocol, hostname: str, ehlo_name: str = EHLO_IDENTITY) -> Negotiator:
    if protocol is Protocol.SMTP:
        return SmtpNegotiator(hostname, ehlo_name)
    return ImapNegotiator()


def _tls_context() -> ssl.SSLContext:
    # The pin is the trust decision; chain and hostname are not verified.
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def negotiate(
    negotiator: Negotiator,
    hostname: str,
    port: int,
    ip_family: IPFamily,
    timeout: float,
) -> tuple[NegotiatedCertificate, float]:
    """
    Connect, drive the negotiator to TLS_UP, upgrade in place.
    Returns the leaf certificate and seconds elapsed until the handshake completed.
    The connection is closed on every exit path, with a short wait for a clean
    shutdown; on cancellation it is aborted.
    """
    start = time.perf_counter()
    reader, writer = await asyncio.open_connection(hostname, port, family=ip_family.address_family)
    logger.info("-> Connected to %s:%s via %s", hostname, port, ip_family.label)
    try:
        while not negotiator.done:
            data = await reader.read(READ_CHUNK_SIZE)
            if not data:
                raise CheckConnectionError(f"connection closed by server in state {negotiator.state.value}")
            step = negotiator.feed(decode_chunk(data))
            if step.outbound:
                logger.info("-> Sending %s...", step.outbound.decode("utf-8").strip())
                writer.write(step.outbound)
                await writer.drain()
        logger.info("-> Switching to TLS...")
        await writer.start_tls(_tls_context(), server_hostname=hostname, ssl_handshake_timeout=timeout)
        ssl_object = writer.get_extra_info("ssl_object")
        der = ssl_object.getpeercert(binary_form=True) if ssl_object else None
        seconds = elapsed_since(start)
        if not der:
            raise CheckConnectionError("server presented no certificate")
        logger.info("-> TLS connected.")
        return NegotiatedCertificate.from_der(der), seconds
    except asyncio.CancelledError:
        writer.transport.abort()
        raise
    finally:
        # An aborted transport or a failed upgrade has nothing left to wait for.
        graceful = not writer.transport.is_closing()
        writer.close()
        if graceful:
            try:
                await asyncio.wait_for(writer.wait_closed(), CLOSE_TIMEOUT)
            except (OSError, asyncio.TimeoutError):
                pass


def _error_code(exc: BaseException) -> str:
    if isinstance(exc, ssl.SSLError):
        return f"tls_error:{getattr(exc, 'reason', None) or str(exc) or type(exc).__name__}"
    if isinstance(exc, ProbeError):
        return f"{exc.code}:{exc}"
    if isinstance(exc, OSError):
        return f"connection_error:{exc.strerror or str(exc) or type(exc).__name__}"
    return f"error:{exc}"


async def run_check(
    protocol: Protocol,
    hostname: str,
    port: int,
    ip_family: IPFamily,
    expected_digest: str,
    timeout: float,
    ehlo_name: str = EHLO_IDENTITY,
    selector: int = TLSA_SELECTOR_SPKI,
    matching_type: int = TLSA_MATCH_SHA256,
) -> CheckResult:
    """One STARTTLS check. Always returns a CheckResult."""
    logger.info("%s Validation Check - %s:%s via %s", protocol.name, hostname, port, ip_family.label)
    start = time.perf_counter()

    async def _check() -> CheckResult:
        negotiator = make_negotiator(protocol, hostname, ehlo_name)
        cert, seconds = await negotiate(negotiator, hostname, port, ip_family, timeout)
        verdict = validate(cert, expected_digest, datetime.now(timezone.utc), selector, matching_type)
        return CheckResult(
            protocol=protocol,
            ip_family=ip_family,
            reachable=True,
            certificate_valid=verdict.valid,
            observed_digest=verdict.digest,
            duration_seconds=seconds,
            error=verdict.error,
        )

    def on_timeout() -> CheckResult:
        logger.warning("-> Timeout Error - Closing connection... [ ERROR ]")
        return CheckResult.unreachable(protocol, ip_family, timeout, "timeout")

    def on_error(exc: BaseException) -> CheckResult:
        code = _error_code(exc)
        if isinstance(exc, (OSError, ProbeError)):
            logger.warning("%s check via %s failed: %s [ ERROR ]", protocol.name, ip_family.label, code)
        else:
            logger.error("%s check via %s failed unexpectedly", protocol.name, ip_family.label, exc_info=exc)
        return CheckResult.unreachable(protocol, ip_family, elapsed_since(start), code)

    return await race(_check(), timeout, on_timeout, on_error)


async def run_probe(cfg: ProbeConfig) -> ProbeReport:
    """
    One probe invocation. The TLSA digest is resolved before any check starts;
    checks then run one at a time, or concurrently when cfg.concurrent_checks.
    """
    tlsa = await fetch_tlsa(cfg.tlsa_record_name, cfg.timeout)
    jobs = []
    for protocol in cfg.protocols:
        hostname, port = cfg.endpoint(protocol)
        for family in cfg.ip_families:
            jobs.append(
                lambda p=protocol, h=hostname, pt=port, f=family: run_check(
                    p, h, pt, f, tlsa.digest, cfg.timeout, cfg.ehlo_name, tlsa.selector, tlsa.matching_type,
                )
            )
    if cfg.concurrent_checks:
        checks = list(await asyncio.gather(*(job() for job in jobs)))
    else:
        checks = [await job() for job in jobs]
    for c in checks:
        logger.debug(
            "%s %s: reachable=%s valid=%s digest=%s seconds=%.3f error=%s",
            c.protocol.name, c.ip_family.value, c.reachable, c.certificate_valid,
            c.observed_digest, c.duration_seconds, c.error,
        )
    return ProbeReport(tlsa=tlsa, checks=checks)
