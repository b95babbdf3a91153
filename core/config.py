"""
Configuration: environment variables (MTCE_*) and CLI overrides.
CLI arguments override env vars. The merged result is frozen into a ProbeConfig
once at startup and passed explicitly to the probe; nothing reads os.environ later.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Optional

from core.constants import (
    CHECK_TIMEOUT_MS,
    EHLO_IDENTITY,
    IMAP_PORT,
    SERVER_PORT,
    SMTP_PORT,
    SMTP_PORT_MX,
)
from core.context import IPFamily, Protocol
from core.errors import ConfigError
from dns_checks.tlsa import default_record_name

logger = logging.getLogger("mtce.config")


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.environ.get(name, "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return default


def _env_int(name: str, default: int | None = None) -> int | None:
    v = os.environ.get(name, "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        logger.warning("Env %s has invalid value %r; using default %s.", name, v, default)
        return default


def _env_str(name: str) -> str | None:
    return os.environ.get(name, "").strip() or None


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables (MTCE_*)."""
    return {
        "smtp_hostname": _env_str("MTCE_SMTP_HOSTNAME"),
        "smtp_port": _env_int("MTCE_SMTP_PORT", SMTP_PORT),
        "imap_hostname": _env_str("MTCE_IMAP_HOSTNAME"),
        "imap_port": _env_int("MTCE_IMAP_PORT", IMAP_PORT),
        "tlsa_record": _env_str("MTCE_TLSA_RECORD"),
        "timeout_ms": _env_int("MTCE_CHECK_TIMEOUT", CHECK_TIMEOUT_MS),
        "ipv4_enabled": _env_bool("MTCE_IPV4_ENABLED", False),
        "ipv6_enabled": _env_bool("MTCE_IPV6_ENABLED", False),
        "server_port": _env_int("MTCE_SERVER_PORT", SERVER_PORT),
        "ehlo_name": _env_str("MTCE_EHLO_NAME") or EHLO_IDENTITY,
        "concurrent_checks": _env_bool("MTCE_CONCURRENT_CHECKS", False),
        "verbose": _env_bool("MTCE_VERBOSE", False),
        "log_file": _env_str("MTCE_LOG_FILE"),
    }


def merge_config(env: dict[str, Any], cli: dict[str, Any]) -> dict[str, Any]:
    """Merge env (base), then CLI. CLI overrides env where set."""
    out = dict(env)
    for k, v in cli.items():
        if v is not None:
            out[k] = v
    return out


@dataclass(frozen=True)
class ProbeConfig:
    """Read-only probe configuration."""

    smtp_hostname: Optional[str] = None
    smtp_port: int = SMTP_PORT
    imap_hostname: Optional[str] = None
    imap_port: int = IMAP_PORT
    tlsa_record: Optional[str] = None
    timeout_ms: int = CHECK_TIMEOUT_MS
    ipv4_enabled: bool = False
    ipv6_enabled: bool = False
    server_port: int = SERVER_PORT
    ehlo_name: str = EHLO_IDENTITY
    concurrent_checks: bool = False
    verbose: bool = False
    log_file: Optional[str] = None

    @property
    def timeout(self) -> float:
        """Per-operation timeout in seconds."""
        return self.timeout_ms / 1000

    @property
    def tlsa_record_name(self) -> str:
        if self.tlsa_record:
            return self.tlsa_record
        return default_record_name(self.smtp_hostname, SMTP_PORT_MX)

    @property
    def ip_families(self) -> list[IPFamily]:
        families = []
        if self.ipv4_enabled:
            families.append(IPFamily.V4)
        if self.ipv6_enabled:
            families.append(IPFamily.V6)
        return families

    def endpoint(self, protocol: Protocol) -> tuple[Optional[str], int]:
        if protocol is Protocol.SMTP:
            return self.smtp_hostname, self.smtp_port
        return self.imap_hostname, self.imap_port

    @property
    def protocols(self) -> list[Protocol]:
        """Protocols with a configured hostname, SMTP first."""
        return [p for p in (Protocol.SMTP, Protocol.IMAP) if self.endpoint(p)[0]]

    def validate(self) -> None:
        """Raise ConfigError if the probe cannot run with this configuration."""
        if not self.smtp_hostname and not self.tlsa_record:
            raise ConfigError("Must provide at least one of MTCE_TLSA_RECORD or MTCE_SMTP_HOSTNAME env variable!")
        if not self.smtp_hostname and not self.imap_hostname:
            raise ConfigError("Must provide at least one of MTCE_SMTP_HOSTNAME or MTCE_IMAP_HOSTNAME env variable!")
        if self.timeout_ms <= 0:
            raise ConfigError(f"Check timeout must be positive, got {self.timeout_ms} ms")
        for name, port in (("SMTP", self.smtp_port), ("IMAP", self.imap_port), ("server", self.server_port)):
            if not 0 < port < 65536:
                raise ConfigError(f"{name} port out of range: {port}")
        if not self.ip_families:
            logger.warning("Neither IPv4 nor IPv6 checks are enabled; only the TLSA record will be probed.")


def build_config(merged: dict[str, Any]) -> ProbeConfig:
    """Freeze a merged config dict into a validated ProbeConfig. Unknown keys are ignored."""
    known = ProbeConfig.__dataclass_fields__.keys()
    cfg = ProbeConfig(**{k: v for k, v in merged.items() if k in known and v is not None})
    cfg.validate()
    return cfg
