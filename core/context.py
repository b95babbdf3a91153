"""
Probe state: TLSA expectation, per-check results and the report of one probe.
Everything here is created fresh per scrape and never mutated afterwards.
"""
from dataclasses import dataclass, field
import enum
import socket
from typing import Optional

from core.constants import TLSA_USAGE_DANE_EE, TLSA_SELECTOR_SPKI, TLSA_MATCH_SHA256


class Protocol(str, enum.Enum):
    SMTP = "smtp"
    IMAP = "imap"


class IPFamily(str, enum.Enum):
    V4 = "v4"
    V6 = "v6"

    @property
    def address_family(self) -> int:
        return socket.AF_INET if self is IPFamily.V4 else socket.AF_INET6

    @property
    def label(self) -> str:
        return "IPv4" if self is IPFamily.V4 else "IPv6"


@dataclass(frozen=True)
class TLSARecord:
    """Pinned expectation fetched from DNS."""

    digest: str
    source_name: str
    resolved: bool
    fetch_seconds: float
    usage: int = TLSA_USAGE_DANE_EE
    selector: int = TLSA_SELECTOR_SPKI
    matching_type: int = TLSA_MATCH_SHA256

    @classmethod
    def failed(cls, source_name: str, seconds: float) -> "TLSARecord":
        return cls(digest="", source_name=source_name, resolved=False, fetch_seconds=seconds)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one protocol / IP family validation attempt."""

    protocol: Protocol
    ip_family: IPFamily
    reachable: bool
    certificate_valid: bool
    observed_digest: str
    duration_seconds: float
    # Machine code for failures: timeout | connection_error:... | tls_error:... | certificate_date | digest_mismatch
    error: Optional[str] = None

    def __post_init__(self):
        if not self.reachable and (self.certificate_valid or self.observed_digest):
            raise ValueError("unreachable check cannot carry a certificate verdict")

    @classmethod
    def unreachable(cls, protocol: Protocol, ip_family: IPFamily, seconds: float, error: str) -> "CheckResult":
        return cls(
            protocol=protocol,
            ip_family=ip_family,
            reachable=False,
            certificate_valid=False,
            observed_digest="",
            duration_seconds=seconds,
            error=error,
        )


@dataclass(frozen=True)
class ProbeReport:
    """TLSA fetch plus every enabled check of one probe invocation."""

    tlsa: TLSARecord
    checks: list[CheckResult] = field(default_factory=list)

    def for_protocol(self, protocol: Protocol) -> list[CheckResult]:
        return [c for c in self.checks if c.protocol is protocol]
