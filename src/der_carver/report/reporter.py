from __future__ import annotations

import json
import sys
from typing import IO, Iterable, Optional

from der_carver.model.models import Finding, ObjectKind


def format_finding(finding: Finding) -> str:
    line = f"found {finding.kind.value} at index: {finding.offset}"
    if finding.kind is ObjectKind.CERTIFICATE:
        # CN entre guillemets, caractères spéciaux échappés
        line += f", CN={json.dumps(finding.detail, ensure_ascii=False)}"
    return line


def report(findings: Iterable[Finding], stream: Optional[IO[str]] = None) -> None:
    stream = stream or sys.stdout
    for f in findings:
        print(format_finding(f), file=stream)
