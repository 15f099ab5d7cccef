# src/readyset_chart/core/config/effective.py
"""
Configuração efetiva do readyset-chart.

A `EffectiveConfig` é o resultado imutável do Resolver: todas as chaves
do schema resolvidas, indexadas pelo caminho pontuado, junto com a fonte
vencedora de cada chave (`explicit`, `computed:<nome>`, `constant`).

Invariantes:
    - Nenhuma folha permanece sem resolução
    - A estrutura não pode ser mutada após criada
    - `to_dict()` é determinístico e serializável

Limites explícitos:
    - Não resolve chains
    - Não conhece recursos renderizados
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping

from .hashing import compute_config_hash


COMPONENT_ROOTS: Mapping[str, str] = MappingProxyType({
    "server": "readyset.server",
    "adapter": "readyset.adapter",
    "discoveryCluster": "consul",
})


@dataclass(frozen=True)
class EffectiveConfig:
    """Configuração totalmente resolvida de uma renderização."""

    values: Mapping[str, Any]
    sources: Mapping[str, str]

    def __getitem__(self, path: str) -> Any:
        return self.values[path]

    def __contains__(self, path: object) -> bool:
        return path in self.values

    def get(self, path: str, default: Any = None) -> Any:
        return self.values.get(path, default)

    def source_of(self, path: str) -> str:
        return self.sources[path]

    @property
    def namespace(self) -> str:
        return self.values["namespace"]

    @property
    def release_name(self) -> str:
        return self.values["releaseName"]

    def component(self, name: str) -> Mapping[str, Any]:
        """Visão das chaves de um componente, relativas à sua raiz."""
        if name not in COMPONENT_ROOTS:
            raise KeyError(f"Componente desconhecido: {name}")
        prefix = COMPONENT_ROOTS[name] + "."
        return MappingProxyType({
            path[len(prefix):]: value
            for path, value in self.values.items()
            if path.startswith(prefix)
        })

    def to_dict(self) -> Dict[str, Any]:
        """Árvore aninhada (dict puro) da configuração efetiva."""
        tree: Dict[str, Any] = {}
        for path in sorted(self.values):
            node = tree
            *parents, leaf = path.split(".")
            for part in parents:
                node = node.setdefault(part, {})
            value = self.values[path]
            node[leaf] = dict(value) if isinstance(value, Mapping) else value
        return tree

    def digest(self) -> str:
        return compute_config_hash(self.to_dict())
