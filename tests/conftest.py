"""
Fixtures communes : clés et certificats générés à la volée avec cryptography.
"""

import datetime as dt
from typing import Callable, List

import pytest
from asn1crypto import keys
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from der_carver.registry.registry import Decoder, DecoderRegistry


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def spki_der(rsa_key) -> bytes:
    """SubjectPublicKeyInfo RSA 2048 (commence par 30 82)."""
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


@pytest.fixture(scope="session")
def pkcs1_der(rsa_key) -> bytes:
    return rsa_key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def pkcs8_der(rsa_key) -> bytes:
    return rsa_key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def pkcs8_with_attributes_der(pkcs8_der) -> bytes:
    """PKCS#8 RSA suivi d'un champ attributes [0] vide (absent chez OpenSSL)."""
    body = pkcs8_der[4:] + b"\xa0\x00"
    return b"\x30\x82" + len(body).to_bytes(2, "big") + body


@pytest.fixture(scope="session")
def asn1crypto_pkcs1_der(rsa_key) -> bytes:
    """RSAPrivateKey PKCS#1 encodé par asn1crypto plutôt que par OpenSSL."""
    numbers = rsa_key.private_numbers()
    return keys.RSAPrivateKey(
        {
            "version": "two-prime",
            "modulus": numbers.public_numbers.n,
            "public_exponent": numbers.public_numbers.e,
            "private_exponent": numbers.d,
            "prime1": numbers.p,
            "prime2": numbers.q,
            "exponent1": numbers.dmp1,
            "exponent2": numbers.dmq1,
            "coefficient": numbers.iqmp,
        }
    ).dump()


@pytest.fixture(scope="session")
def ec_pkcs8_no_public_key_der() -> bytes:
    """
    PKCS#8 EC P-256 sans clé publique dans l'ECPrivateKey.

    Clé privée du vecteur RFC 6979 A.2.5 ; en-tête court (30 41).
    """
    return bytes.fromhex(
        "3041020100301306072a8648ce3d020106082a8648ce3d030107042730250201010420"
        "c9afa9d845ba75166b5c215767b1d6934e50c3db36e89b127b8a622b120f6721"
    )


@pytest.fixture(scope="session")
def ec_compressed_spki_der(ec_key) -> bytes:
    """SubjectPublicKeyInfo EC P-256 avec point compressé (33 octets)."""
    point = ec_key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
    )
    algorithm = bytes.fromhex("301306072a8648ce3d020106082a8648ce3d030107")
    bit_string = b"\x03\x22\x00" + point
    body = algorithm + bit_string
    return b"\x30" + bytes([len(body)]) + body


@pytest.fixture(scope="session")
def make_cert(rsa_key) -> Callable[[str], bytes]:
    """Fabrique un certificat auto-signé DER pour un CN donné."""

    def _make(common_name: str) -> bytes:
        name = x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME, common_name)])
        now = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(rsa_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + dt.timedelta(days=365))
            .sign(rsa_key, hashes.SHA256())
        )
        return cert.public_bytes(serialization.Encoding.DER)

    return _make


class RecordingDecoder:
    """Décodeur bouchon : réussit pour une longueur donnée et note chaque appel."""

    def __init__(self, success_length: int, value="value", error=None):
        self.success_length = success_length
        self.value = value
        self.error = error
        self.lengths: List[int] = []

    def __call__(self, data: bytes):
        self.lengths.append(len(data))
        if len(data) == self.success_length:
            return self.value, self.error
        return None, ValueError("pas encore")


@pytest.fixture
def stub_registry() -> Callable[..., DecoderRegistry]:
    """Construit un registre à partir de couples (kind, fonction)."""

    def _build(*pairs) -> DecoderRegistry:
        return DecoderRegistry([Decoder(kind, func) for kind, func in pairs])

    return _build


@pytest.fixture
def recording_decoder():
    return RecordingDecoder
