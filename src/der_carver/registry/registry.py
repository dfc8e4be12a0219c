from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from der_carver.crypto.crypto import (
    BytesLike,
    RawResult,
    decode_certificate,
    decode_pkcs1_private_key,
    decode_pkcs8_private_key,
    decode_pkix_public_key,
)
from der_carver.model.models import DecodeResult, ObjectKind

# Décodeur brut : octets -> (valeur, erreur)
DecodeFunc = Callable[[BytesLike], RawResult]


@dataclass(frozen=True)
class Decoder:
    kind: ObjectKind
    func: DecodeFunc

    def decode(self, data: BytesLike) -> DecodeResult:
        """
        Appelle le décodeur brut et normalise son contrat :
        valeur ET erreur non vides -> échec ; exception -> échec.
        """
        try:
            value, error = self.func(data)
        except Exception as e:  # échec de décodage attendu, jamais remonté
            return DecodeResult(error=e)
        return DecodeResult(value=value, error=error)


class DecoderRegistry:
    """
    Ensemble fixe de décodeurs, un par type d'objet.

    Construit une fois et passé explicitement au coordinateur et au sondeur ;
    sans état, utilisable depuis plusieurs threads.
    """

    def __init__(self, decoders: Iterable[Decoder] = ()):
        self._decoders: Dict[ObjectKind, Decoder] = {}
        for d in decoders:
            self.register(d)

    @classmethod
    def default(cls) -> "DecoderRegistry":
        return cls(
            [
                Decoder(ObjectKind.CERTIFICATE, decode_certificate),
                Decoder(ObjectKind.PKCS1_PRIVATE_KEY, decode_pkcs1_private_key),
                Decoder(ObjectKind.PKCS8_PRIVATE_KEY, decode_pkcs8_private_key),
                Decoder(ObjectKind.PKIX_PUBLIC_KEY, decode_pkix_public_key),
            ]
        )

    def register(self, decoder: Decoder) -> None:
        if decoder.kind in self._decoders:
            raise ValueError(f"Décodeur déjà enregistré pour {decoder.kind.value}")
        self._decoders[decoder.kind] = decoder

    def get(self, kind: ObjectKind) -> Optional[Decoder]:
        return self._decoders.get(kind)

    @property
    def kinds(self) -> List[ObjectKind]:
        return list(self._decoders)

    def __iter__(self) -> Iterator[Decoder]:
        return iter(self._decoders.values())

    def __len__(self) -> int:
        return len(self._decoders)
