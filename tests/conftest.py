"""
Shared fixtures: throwaway certificates and TLS server contexts.
"""
from datetime import datetime, timedelta, timezone
import hashlib
import ssl

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def _build_certificate(not_before=None, not_after=None, common_name="mail.test"):
    now = datetime.now(timezone.utc)
    not_before = not_before or now - timedelta(days=1)
    not_after = not_after or now + timedelta(days=30)
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return cert, key


def spki_sha256(cert: x509.Certificate) -> str:
    spki = cert.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return hashlib.sha256(spki).hexdigest()


@pytest.fixture
def make_certificate():
    """Factory: make_certificate(not_before=None, not_after=None) -> (cert, key)."""
    return _build_certificate


@pytest.fixture
def make_server_context(tmp_path):
    """Factory: make_server_context(cert, key) -> server-side SSLContext presenting cert."""

    def _context(cert, key) -> ssl.SSLContext:
        cert_path = tmp_path / f"cert-{cert.serial_number}.pem"
        key_path = tmp_path / f"key-{cert.serial_number}.pem"
        cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        key_path.write_bytes(
            key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )
        ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        ctx.load_cert_chain(str(cert_path), str(key_path))
        return ctx

    return _context


@pytest.fixture
def server_identity(make_certificate, make_server_context):
    """A currently valid certificate, its SPKI SHA-256 digest and a server context for it."""
    cert, key = make_certificate()
    return cert, spki_sha256(cert), make_server_context(cert, key)
