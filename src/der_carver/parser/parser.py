from __future__ import annotations

from typing import Iterator, Optional

from der_carver.model.models import CertificateValue, Finding
from der_carver.registry.registry import Decoder

# SEQUENCE (0x30) + longueur en forme longue sur 2 octets (0x82)
ASN1_SEQUENCE = b"\x30\x82"


# ---------------------------------------------------------------------------
# Recherche des offsets candidats
def find_offsets(data: bytes, marker: bytes = ASN1_SEQUENCE) -> Iterator[int]:
    """
    Renvoie, dans l'ordre croissant, chaque position où commence `marker`.

    La recherche reprend un octet après chaque occurrence (et non après la
    longueur du marqueur) pour ne pas rater un marqueur qui en recouvre un
    autre. Aucune validation de ce qui suit le marqueur.
    """
    if not marker:
        raise ValueError("Marqueur vide")
    i = data.find(marker)
    while i != -1:
        yield i
        i = data.find(marker, i + 1)


# ---------------------------------------------------------------------------
# Sondage par longueur croissante
def probe(
    data: bytes,
    offset: int,
    decoder: Decoder,
    max_length: Optional[int] = None,
) -> Optional[Finding]:
    """
    Essaie de décoder data[offset:offset+L] pour L = 1, 2, 3, … jusqu'à la
    fin du buffer (ou `max_length`) et s'arrête au premier succès.

    Coût : O(taille restante) décodages par couple (offset, décodeur) dans le
    pire cas. Les décodeurs reçoivent une vue mémoire, sans copie du buffer.
    """
    n = len(data)
    if not 0 <= offset < n:
        raise ValueError(f"Offset hors du buffer: {offset} (taille {n})")

    limit = n - offset
    if max_length is not None:
        limit = min(limit, max_length)

    view = memoryview(data)
    for length in range(1, limit + 1):
        result = decoder.decode(view[offset : offset + length])
        if not result.ok:
            continue
        detail = ""
        if isinstance(result.value, CertificateValue):
            detail = result.value.common_name
        return Finding(
            offset=offset,
            kind=decoder.kind,
            length=length,
            value=result.value,
            detail=detail,
        )
    return None
