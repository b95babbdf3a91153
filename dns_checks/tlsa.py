"""
TLSA record fetch: the pinned digest every certificate check is compared against.
Only the first record's association data is used; multiple records are not aggregated.
"""
import logging
import time

import dns.asyncresolver
import dns.exception
import dns.resolver

from core.constants import SMTP_PORT_MX
from core.context import TLSARecord
from core.errors import CheckTimeout, ResolutionError
from core.settle import race
from core.utils import elapsed_since

logger = logging.getLogger("mtce.dns")


def default_record_name(hostname: str, port: int = SMTP_PORT_MX) -> str:
    """TLSA owner name for a TCP service: _<port>._tcp.<hostname>."""
    return f"_{port}._tcp.{hostname.rstrip('.')}"


async def _query(record_name: str, timeout: float, resolver: dns.asyncresolver.Resolver | None = None) -> TLSARecord:
    """Resolve TLSA for record_name. Raises ResolutionError or CheckTimeout."""
    resolver = resolver or dns.asyncresolver.Resolver()
    start = time.perf_counter()
    try:
        answers = await resolver.resolve(record_name, "TLSA", lifetime=timeout)
    except dns.resolver.NXDOMAIN:
        raise ResolutionError(f"{record_name}: domain does not exist")
    except dns.resolver.NoAnswer:
        raise ResolutionError(f"{record_name}: no TLSA records")
    except dns.resolver.NoNameservers as e:
        raise ResolutionError(f"{record_name}: no nameservers answered ({e})")
    except dns.exception.Timeout:
        raise CheckTimeout(f"{record_name}: lookup exceeded {timeout}s")
    except dns.exception.DNSException as e:
        raise ResolutionError(f"{record_name}: {e}")
    if not answers.rrset:
        raise ResolutionError(f"{record_name}: empty answer")
    first = answers.rrset[0]
    digest = first.cert.hex()
    return TLSARecord(
        digest=digest,
        source_name=record_name,
        resolved=True,
        fetch_seconds=elapsed_since(start),
        usage=first.usage,
        selector=first.selector,
        matching_type=first.mtype,
    )


async def fetch_tlsa(record_name: str, timeout: float, resolver: dns.asyncresolver.Resolver | None = None) -> TLSARecord:
    """
    Fetch the TLSA record. Never raises for DNS problems:
    failure -> resolved=False with elapsed time; timeout -> resolved=False with fetch_seconds=timeout.
    """
    logger.info("Fetching TLSA record %s...", record_name)
    start = time.perf_counter()

    def on_timeout() -> TLSARecord:
        logger.warning("-> Timeout Error fetching TLSA record %s [ ERROR ]", record_name)
        return TLSARecord.failed(record_name, timeout)

    def on_error(exc: BaseException) -> TLSARecord:
        if isinstance(exc, CheckTimeout):
            return on_timeout()
        if isinstance(exc, ResolutionError):
            logger.warning("TLSA lookup failed: %s [ ERROR ]", exc)
        else:
            logger.exception("Unexpected TLSA lookup failure for %s", record_name, exc_info=exc)
        return TLSARecord.failed(record_name, elapsed_since(start))

    record = await race(_query(record_name, timeout, resolver), timeout, on_timeout, on_error)
    if record.resolved:
        logger.info(
            "TLSA record hash digest: %s (usage=%d selector=%d mtype=%d)",
            record.digest, record.usage, record.selector, record.matching_type,
        )
    return record
