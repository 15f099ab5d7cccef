# src/readyset_chart/core/harness/matrix.py
"""
Matriz de entradas do harness.

Uma `MatrixEntry` descreve uma renderização independente: um nome
estável, os values do operador e, para entradas negativas, o tipo de
erro (catálogo de `core.errors`) que a renderização deve produzir.

`default_matrix` cobre as variações relevantes do chart a partir de uma
base de values (tipicamente apenas os campos obrigatórios).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from readyset_chart.core.config.merge import deep_merge
from readyset_chart.core.errors import (
    INVALID_ENUM_VALUE,
    INVALID_VALUE_TYPE,
    MISSING_REQUIRED_FIELD,
    UNRESOLVED_CROSS_REFERENCE,
)


@dataclass(frozen=True)
class MatrixEntry:
    """Entrada da matriz de renderização."""

    name: str
    values: Mapping[str, Any]
    expect_error: Optional[str] = None


def _without(values: Mapping[str, Any], path: str) -> Dict[str, Any]:
    """Cópia de `values` sem a folha em `path` (caminho pontuado)."""
    out = copy.deepcopy(dict(values))
    node: Any = out
    *parents, leaf = path.split(".")
    for part in parents:
        node = node.get(part)
        if not isinstance(node, dict):
            return out
    node.pop(leaf, None)
    return out


def default_matrix(base_values: Mapping[str, Any]) -> List[MatrixEntry]:
    """
    Matriz padrão de renderizações.

    Args:
        base_values: values comuns a todas as entradas; deve conter os
            campos obrigatórios para que as entradas positivas passem.

    Returns:
        List[MatrixEntry]: entradas em ordem estável.
    """
    base = dict(base_values)

    def variant(name: str, override: Dict[str, Any], expect_error: Optional[str] = None) -> MatrixEntry:
        return MatrixEntry(name=name, values=deep_merge(base, override), expect_error=expect_error)

    return [
        variant("defaults", {}),
        variant("adapter-mysql", {"readyset": {"adapter": {"type": "mysql"}}}),
        variant("adapter-postgresql", {"readyset": {"adapter": {"type": "postgresql"}}}),
        variant("adapter-port-override", {"readyset": {"adapter": {"port": 6000}}}),
        variant("adapter-port-numeric-string", {"readyset": {"adapter": {"type": "postgresql", "port": "5433"}}}),
        variant("server-port-override", {"readyset": {"server": {"httpPort": 7033}}}),
        variant(
            "adapter-overrides-implicit-discovery",
            {"readyset": {"adapter": {"replicas": 3, "httpPort": 7034, "queryLog": False,
                                      "image": {"tag": "stable"}}}},
        ),
        variant("consul-replicas", {"consul": {"server": {"replicas": 5}}}),
        variant(
            "ingress-disabled",
            {"readyset": {"server": {"ingress": {"enabled": False}},
                          "adapter": {"ingress": {"enabled": False}}}},
        ),
        variant("storage-class", {"kubernetes": {"storageClass": "gp3"}}),
        variant(
            "external-discovery",
            {"consul": {"enabled": False, "externalAddress": "consul.example.internal:8500"}},
        ),
        variant("release-name", {"releaseName": "cache", "readyset": {"commonLabels": {"team": "data"}}}),
        # entradas negativas
        MatrixEntry("missing-namespace", _without(base, "namespace"), MISSING_REQUIRED_FIELD),
        MatrixEntry(
            "missing-secret",
            _without(base, "readyset.upstreamDatabase.secretName"),
            MISSING_REQUIRED_FIELD,
        ),
        variant("invalid-adapter-type", {"readyset": {"adapter": {"type": "oracle"}}}, INVALID_ENUM_VALUE),
        variant("invalid-port-type", {"readyset": {"adapter": {"port": "not-a-port"}}}, INVALID_VALUE_TYPE),
        variant("discovery-unresolved", {"consul": {"enabled": False}}, UNRESOLVED_CROSS_REFERENCE),
        variant(
            "consul-quorum-unreachable",
            {"consul": {"server": {"replicas": 1, "bootstrapExpect": 5}}},
            INVALID_VALUE_TYPE,
        ),
    ]
