from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)


class ObjectKind(str, Enum):
    """Types d'objets récupérables. La valeur est le libellé affiché."""

    CERTIFICATE = "Certificate"
    PKCS1_PRIVATE_KEY = "PKCS1PrivateKey"
    PKCS8_PRIVATE_KEY = "PKCS8PrivateKey"
    PKIX_PUBLIC_KEY = "PKIXPublicKey"


# -----------------------------
# Union étiquetée des valeurs décodées (une variante par type d'objet)
@dataclass(frozen=True)
class CertificateValue:
    kind: ClassVar[ObjectKind] = ObjectKind.CERTIFICATE

    certificate: x509.Certificate
    common_name: str = ""


@dataclass(frozen=True)
class PKCS1PrivateKeyValue:
    kind: ClassVar[ObjectKind] = ObjectKind.PKCS1_PRIVATE_KEY

    key: rsa.RSAPrivateKey


@dataclass(frozen=True)
class PKCS8PrivateKeyValue:
    kind: ClassVar[ObjectKind] = ObjectKind.PKCS8_PRIVATE_KEY

    key: PrivateKeyTypes


@dataclass(frozen=True)
class PKIXPublicKeyValue:
    kind: ClassVar[ObjectKind] = ObjectKind.PKIX_PUBLIC_KEY

    key: PublicKeyTypes


DecodedValue = Union[
    CertificateValue, PKCS1PrivateKeyValue, PKCS8PrivateKeyValue, PKIXPublicKeyValue
]


def _is_empty(obj: Any) -> bool:
    """None ou chaîne/octets de longueur nulle."""
    return obj is None or (isinstance(obj, (str, bytes)) and len(obj) == 0)


@dataclass(frozen=True)
class DecodeResult:
    """
    Résultat normalisé d'une tentative de décodage.

    Un succès exige une valeur présente ET une erreur vide : une valeur
    accompagnée d'une erreur reste un échec.
    """

    value: Optional[Any] = None
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return not _is_empty(self.value) and _is_empty(self.error)


@dataclass(frozen=True)
class Finding:
    """Objet retrouvé dans le buffer : position, type, taille et valeur décodée."""

    offset: int
    kind: ObjectKind
    length: int
    # L'objet de la lib n'entre pas dans l'égalité : deux scans du même
    # buffer doivent donner des ensembles égaux.
    value: Any = field(compare=False, repr=False)
    detail: str = ""
