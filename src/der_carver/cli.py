from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from der_carver.api import carve, load_buffer
from der_carver.config import PoolKind, RescanPolicy, Settings
from der_carver.exception.exceptions import CarverReadError
from der_carver.registry.registry import DecoderRegistry
from der_carver.report.reporter import report

logger = logging.getLogger("der_carver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="der-carver",
        description="Extrait certificats X.509 et clés DER d'un fichier binaire brut",
    )
    parser.add_argument("file", metavar="FILE", help="Fichier à analyser")
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Active les traces de debug"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Active les traces détaillées"
    )
    parser.add_argument(
        "-w", "--workers", type=int, default=None, help="Taille du pool de workers"
    )
    parser.add_argument(
        "-m",
        "--max-file-size",
        type=int,
        default=None,
        help="Taille maximale du fichier, en octets",
    )
    parser.add_argument(
        "--max-object-size",
        type=int,
        default=None,
        help="Longueur maximale sondée à chaque offset, en octets",
    )
    parser.add_argument(
        "--skip-consumed",
        action="store_true",
        help="Ne pas remonter les objets imbriqués dans un objet du même type déjà trouvé",
    )
    parser.add_argument(
        "--processes",
        action="store_true",
        help="Sonder avec un pool de processus plutôt que de threads",
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings(
            verbose=args.verbose,
            debug=args.debug,
            workers=args.workers,
            max_file_size=args.max_file_size,
            max_object_size=args.max_object_size,
            rescan_policy=(
                RescanPolicy.SKIP_CONSUMED
                if args.skip_consumed
                else RescanPolicy.BYTE_GRANULAR
            ),
            pool=PoolKind.PROCESS if args.processes else PoolKind.THREAD,
        )
    except ValidationError as e:
        parser.error(f"argument invalide: {e}")

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level(),
    )
    logger.setLevel(settings.log_level())

    try:
        data = load_buffer(args.file, settings.max_file_size)
    except CarverReadError as e:
        logger.error(str(e))
        return 1

    report(carve(data, registry=DecoderRegistry.default(), settings=settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
