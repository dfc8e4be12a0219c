from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RescanPolicy(str, Enum):
    """
    Reprise du scan après un décodage réussi.

    - BYTE_GRANULAR : chaque marqueur est sondé, y compris à l'intérieur d'un
      objet déjà trouvé (objets imbriqués ou chevauchants remontés).
    - SKIP_CONSUMED : pour un même type, on écarte les trouvailles situées
      dans les octets consommés par une trouvaille précédente.
    """

    BYTE_GRANULAR = "byte-granular"
    SKIP_CONSUMED = "skip-consumed"


class PoolKind(str, Enum):
    """
    Pool de workers du scan.

    - THREAD : threads, décodeurs quelconques (y compris non picklables).
    - PROCESS : processus, vrai parallélisme CPU ; le registre doit être
      picklable (décodeurs définis au niveau module).
    """

    THREAD = "thread"
    PROCESS = "process"


class Settings(BaseModel):
    """Paramètres d'exécution."""

    verbose: bool = False
    debug: bool = False
    workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Taille du pool de workers (défaut : os.cpu_count())",
    )
    max_file_size: Optional[int] = Field(
        default=None, ge=1, description="Taille maximale du fichier lu, en octets"
    )
    max_object_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Longueur maximale sondée à chaque offset, en octets",
        examples=[10_000],
    )
    rescan_policy: RescanPolicy = RescanPolicy.BYTE_GRANULAR
    pool: PoolKind = PoolKind.THREAD

    def log_level(self) -> int:
        if self.debug:
            return logging.DEBUG
        if self.verbose:
            return logging.INFO
        return logging.WARNING
