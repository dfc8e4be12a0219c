from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from typing import Dict, List, Optional, Union

from der_carver.config import PoolKind, RescanPolicy, Settings
from der_carver.exception.exceptions import CarverReadError
from der_carver.model.models import Finding, ObjectKind
from der_carver.parser.parser import find_offsets, probe
from der_carver.registry.registry import Decoder, DecoderRegistry

logger = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray, memoryview]


def load_buffer(path: Union[str, os.PathLike], max_size: Optional[int] = None) -> bytes:
    """Lit le fichier entier en mémoire (pas de streaming)."""
    try:
        if max_size is not None and os.stat(path).st_size > max_size:
            raise CarverReadError(
                f"'{path}' dépasse la taille maximale autorisée ({max_size} octets)"
            )
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise CarverReadError(f"Lecture impossible de '{path}': {e}") from e
    logger.info(f"{len(data)} octets lus depuis {path}")
    return data


def _skip_consumed(findings: List[Finding]) -> List[Finding]:
    """Par type, écarte les trouvailles situées dans une trouvaille déjà retenue."""
    kept: List[Finding] = []
    end_by_kind: Dict[ObjectKind, int] = {}
    for f in sorted(findings, key=lambda f: f.offset):
        if f.offset < end_by_kind.get(f.kind, 0):
            continue
        end_by_kind[f.kind] = f.offset + f.length
        kept.append(f)
    return kept


# ---------------------------------------------------------------------------
# Pool de processus : le buffer est transmis une fois par worker, et seule la
# longueur trouvée revient (les objets cryptography ne sont pas picklables).
_worker_data: bytes = b""


def _init_worker(data: bytes) -> None:
    global _worker_data
    _worker_data = data


def _probe_length(
    offset: int, decoder: Decoder, max_length: Optional[int]
) -> Optional[int]:
    finding = probe(_worker_data, offset, decoder, max_length)
    return finding.length if finding is not None else None


def _probe_in_processes(
    data: bytes,
    offsets: List[int],
    registry: DecoderRegistry,
    workers: int,
    settings: Settings,
) -> List[Optional[Finding]]:
    with ProcessPoolExecutor(
        max_workers=workers, initializer=_init_worker, initargs=(data,)
    ) as pool:
        futures = [
            (
                offset,
                decoder,
                pool.submit(_probe_length, offset, decoder, settings.max_object_size),
            )
            for offset in offsets
            for decoder in registry
        ]
        hits = [(offset, decoder, f.result()) for offset, decoder, f in futures]

    # Reconstruction dans le parent, bornée à la longueur trouvée
    return [
        probe(data, offset, decoder, max_length=length)
        for offset, decoder, length in hits
        if length is not None
    ]


def carve(
    data: Buffer,
    registry: Optional[DecoderRegistry] = None,
    settings: Optional[Settings] = None,
) -> List[Finding]:
    """
    Recherche tous les objets décodables du buffer.

    Stratégie : on énumère une fois les offsets candidats, puis chaque couple
    (offset, décodeur) est sondé indépendamment sur un pool borné (threads par défaut,
    processus en option).
    Un même offset peut produire plusieurs trouvailles de types différents :
    toutes sont remontées, sans priorité. On attend la fin de tous les
    sondages (pas d'annulation quand un décodeur a déjà réussi).
    """
    data = bytes(data)
    registry = registry if registry is not None else DecoderRegistry.default()
    settings = settings or Settings()

    offsets = list(find_offsets(data))
    logger.info(f"{len(offsets)} offset(s) candidat(s)")
    if not offsets or not len(registry):
        return []

    workers = settings.workers or os.cpu_count() or 1
    logger.debug(
        f"Sondage de {len(offsets) * len(registry)} couple(s) avec {workers} worker(s)"
    )
    if settings.pool is PoolKind.PROCESS:
        results = _probe_in_processes(data, offsets, registry, workers, settings)
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(probe, data, offset, decoder, settings.max_object_size)
                for offset in offsets
                for decoder in registry
            ]
            # result() relance toute exception qui n'est pas un échec de décodage
            results = [f.result() for f in futures]

    findings = [r for r in results if r is not None]
    if settings.rescan_policy is RescanPolicy.SKIP_CONSUMED:
        findings = _skip_consumed(findings)

    order = {kind: i for i, kind in enumerate(registry.kinds)}
    findings.sort(key=lambda f: (f.offset, order[f.kind]))
    for f in findings:
        logger.debug(f"{f.kind.value} à l'offset {f.offset} ({f.length} octets)")
    logger.info(f"{len(findings)} objet(s) trouvé(s)")
    return findings


def carve_file(
    path: Union[str, os.PathLike],
    registry: Optional[DecoderRegistry] = None,
    settings: Optional[Settings] = None,
) -> List[Finding]:
    settings = settings or Settings()
    data = load_buffer(path, settings.max_file_size)
    return carve(data, registry=registry, settings=settings)
