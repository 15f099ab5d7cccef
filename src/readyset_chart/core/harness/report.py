# src/readyset_chart/core/harness/report.py
"""
Persistência do relatório do harness.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from .harness import HarnessReport


def save_report(report: Union[HarnessReport, Dict[str, Any]], path: Path) -> None:
    """
    Persiste o relatório do harness em JSON.

    Decisões arquiteturais:
        - A ordenação de chaves é estável (`sort_keys=True`)
        - A escrita é legível (indentação) sem afetar o determinismo
        - Diretórios intermediários são criados automaticamente

    Raises:
        OSError: falha ao criar diretórios ou escrever o arquivo.
        TypeError: conteúdo não serializável em JSON.
    """
    path = Path(path)
    data = report.to_dict() if isinstance(report, HarnessReport) else report
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")


def load_report(path: Path) -> Dict[str, Any]:
    """Carrega um relatório persistido por `save_report` (dict puro)."""
    return json.loads(Path(path).read_text(encoding="utf-8"))
