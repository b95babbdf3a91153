"""
Error taxonomy. Every probe error is converted into a structured result at the
resolver/orchestrator boundary; only ConfigError ends the process (at startup).
"""


class ProbeError(Exception):
    """Base class for errors raised while probing."""

    code = "error"


class ResolutionError(ProbeError):
    """TLSA lookup failed or returned no usable record."""

    code = "resolution_error"


class CheckTimeout(ProbeError, TimeoutError):
    """A bounded operation did not finish inside the configured window."""

    code = "timeout"


class CheckConnectionError(ProbeError, ConnectionError):
    """Transport-level failure: refused, reset, unreachable, closed early."""

    code = "connection_error"


class CertificateDateError(ProbeError):
    """Leaf certificate is outside its validity window."""

    code = "certificate_date"


class DigestMismatch(ProbeError):
    """Observed association data differs from the pinned TLSA digest."""

    code = "digest_mismatch"

    def __init__(self, expected: str, observed: str):
        super().__init__(f"expected {expected!r} but received {observed!r}")
        self.expected = expected
        self.observed = observed


class ConfigError(ProbeError):
    """Invalid or incomplete configuration."""

    code = "config_error"
