"""
Leaf certificate validation against the pinned TLSA digest.

Only the validity window is checked; chain and hostname verification are out of
scope (DANE-EE pins the key, not the issuer). The association data follows the
TLSA record's selector and matching type, defaulting to SPKI + SHA-256.
"""
from dataclasses import dataclass
from datetime import datetime
import hashlib
import logging
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from core.constants import (
    TLSA_MATCH_EXACT,
    TLSA_MATCH_SHA256,
    TLSA_MATCH_SHA512,
    TLSA_SELECTOR_FULL,
    TLSA_SELECTOR_SPKI,
)
from core.errors import CertificateDateError, DigestMismatch

logger = logging.getLogger("mtce.smtp")


@dataclass(frozen=True)
class NegotiatedCertificate:
    """Leaf certificate from a completed TLS handshake."""

    not_before: datetime
    not_after: datetime
    public_key_digest: str
    der: bytes = b""
    spki_der: bytes = b""

    @classmethod
    def from_der(cls, der: bytes) -> "NegotiatedCertificate":
        cert = x509.load_der_x509_certificate(der)
        spki = cert.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
        return cls(
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            public_key_digest=hashlib.sha256(spki).hexdigest(),
            der=der,
            spki_der=spki,
        )

    def association_data(self, selector: int = TLSA_SELECTOR_SPKI, matching_type: int = TLSA_MATCH_SHA256) -> str:
        """Hex association data as a TLSA record with this selector / matching type would carry it."""
        if selector == TLSA_SELECTOR_SPKI and matching_type == TLSA_MATCH_SHA256:
            return self.public_key_digest
        if selector == TLSA_SELECTOR_SPKI:
            selected = self.spki_der
        elif selector == TLSA_SELECTOR_FULL:
            selected = self.der
        else:
            raise ValueError(f"Unsupported TLSA selector {selector}")
        if not selected:
            raise ValueError("Certificate bytes not available for this selector")
        if matching_type == TLSA_MATCH_EXACT:
            return selected.hex()
        if matching_type == TLSA_MATCH_SHA256:
            return hashlib.sha256(selected).hexdigest()
        if matching_type == TLSA_MATCH_SHA512:
            return hashlib.sha512(selected).hexdigest()
        raise ValueError(f"Unsupported TLSA matching type {matching_type}")


@dataclass(frozen=True)
class Validation:
    valid: bool
    digest: str
    error: Optional[str] = None


def check_window(cert: NegotiatedCertificate, now: datetime) -> None:
    """Raise CertificateDateError unless not_before <= now < not_after."""
    if now < cert.not_before:
        raise CertificateDateError(f"valid_from {cert.not_before.isoformat()} is in the future")
    if now >= cert.not_after:
        raise CertificateDateError(f"expired at {cert.not_after.isoformat()}")


def validate(
    cert: NegotiatedCertificate,
    expected_digest: str,
    now: datetime,
    selector: int = TLSA_SELECTOR_SPKI,
    matching_type: int = TLSA_MATCH_SHA256,
) -> Validation:
    """
    Date window first; a date failure reports an empty digest. Otherwise the
    observed digest is always reported, matched or not.
    """
    try:
        check_window(cert, now)
    except CertificateDateError as e:
        logger.warning("Certificate has invalid date range: %s [ ERROR ]", e)
        return Validation(valid=False, digest="", error=e.code)

    try:
        digest = cert.association_data(selector, matching_type)
    except ValueError as e:
        logger.warning("Cannot compute association data: %s [ ERROR ]", e)
        return Validation(valid=False, digest="", error="unsupported_tlsa")
    if digest != expected_digest:
        mismatch = DigestMismatch(expected_digest, digest)
        logger.info("TLS certificate digest does not match TLSA record: %s [ ERROR ]", mismatch)
        return Validation(valid=False, digest=digest, error=mismatch.code)
    logger.info("TLS certificate digest matches TLSA record. [ VALID ]")
    return Validation(valid=True, digest=digest)
