from __future__ import annotations

from typing import Any, Optional, Tuple, Union

from asn1crypto import keys
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from der_carver.model.models import (
    CertificateValue,
    PKCS1PrivateKeyValue,
    PKCS8PrivateKeyValue,
    PKIXPublicKeyValue,
)

# Contrat brut d'un décodeur : (valeur, erreur). Le registre normalise.
RawResult = Tuple[Optional[Any], Optional[Exception]]

# Les décodeurs reçoivent des octets ou une vue mémoire sur le buffer.
BytesLike = Union[bytes, bytearray, memoryview]

# Erreurs attendues des libs sur des octets qui ne sont pas l'objet visé.
DECODE_ERRORS = (ValueError, TypeError, KeyError, UnsupportedAlgorithm)


# ---------------------------------------------------------------------------
# En-tête DER : SEQUENCE (0x30) + longueur courte, ou longue sur 1 à 4 octets
def der_sequence_size(data: BytesLike) -> Optional[int]:
    """Taille totale (en-tête compris) annoncée par l'en-tête, ou None."""
    if len(data) < 2 or data[0] != 0x30:
        return None
    lb = data[1]
    if lb < 0x80:
        return 2 + lb
    n = lb & 0x7F
    if n == 0 or n > 4 or len(data) < 2 + n:
        return None
    return 2 + n + int.from_bytes(data[2 : 2 + n], "big")


def _exact_sequence(data: BytesLike) -> Optional[bytes]:
    """
    Octets de `data` si l'en-tête annonce exactement sa taille, sinon None.

    Vérification en temps constant : on ne copie la vue que pour la bonne
    longueur.
    """
    if der_sequence_size(data) != len(data):
        return None
    return bytes(data)


def _check_structure(asn1_type, der: bytes, *fields: str) -> None:
    # strict=True : pas d'octets en trop ; l'accès aux champs vérifie les
    # tags de chaque élément de la SEQUENCE
    value = asn1_type.load(der, strict=True)
    for name in fields:
        value[name]


def _length_error(kind: str) -> ValueError:
    return ValueError(f"Longueur DER incohérente pour {kind}")


def _common_name(cert: x509.Certificate) -> str:
    try:
        attrs = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    except ValueError:
        return ""
    if not attrs:
        return ""
    value = attrs[0].value
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value or "")


def decode_certificate(data: BytesLike) -> RawResult:
    der = _exact_sequence(data)
    if der is None:
        return None, _length_error("Certificate")
    try:
        cert = x509.load_der_x509_certificate(der)
    except DECODE_ERRORS as e:
        return None, e
    return CertificateValue(certificate=cert, common_name=_common_name(cert)), None


# ---------------------------------------------------------------------------
# Clés privées : load_der_private_key accepte PKCS#1, PKCS#8 et SEC1.
# Le format est tranché par la structure ASN.1 (asn1crypto), la clé est
# ensuite chargée par cryptography.
def _load_private_key(der: bytes):
    return serialization.load_der_private_key(
        der, password=None, unsafe_skip_rsa_key_validation=True
    )


def decode_pkcs1_private_key(data: BytesLike) -> RawResult:
    der = _exact_sequence(data)
    if der is None:
        return None, _length_error("PKCS1PrivateKey")
    try:
        # version, modulus, public_exponent, ... (INTEGER, INTEGER, ...)
        _check_structure(keys.RSAPrivateKey, der, "version", "modulus")
        key = _load_private_key(der)
    except DECODE_ERRORS as e:
        return None, e
    if not isinstance(key, rsa.RSAPrivateKey):
        return None, ValueError("Clé privée non RSA")
    return PKCS1PrivateKeyValue(key=key), None


def decode_pkcs8_private_key(data: BytesLike) -> RawResult:
    der = _exact_sequence(data)
    if der is None:
        return None, _length_error("PKCS8PrivateKey")
    try:
        # version INTEGER, puis AlgorithmIdentifier (SEQUENCE), puis OCTET STRING
        _check_structure(
            keys.PrivateKeyInfo, der, "version", "private_key_algorithm"
        )
        key = _load_private_key(der)
    except DECODE_ERRORS as e:
        return None, e
    return PKCS8PrivateKeyValue(key=key), None


def decode_pkix_public_key(data: BytesLike) -> RawResult:
    der = _exact_sequence(data)
    if der is None:
        return None, _length_error("PKIXPublicKey")
    try:
        # AlgorithmIdentifier puis BIT STRING ; écarte le RSAPublicKey PKCS#1
        # nu que load_der_public_key accepte aussi
        _check_structure(keys.PublicKeyInfo, der, "algorithm", "public_key")
        key = serialization.load_der_public_key(der)
    except DECODE_ERRORS as e:
        return None, e
    return PKIXPublicKeyValue(key=key), None
