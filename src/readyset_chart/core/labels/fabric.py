# src/readyset_chart/core/labels/fabric.py
"""
Label/Selector Fabric do readyset-chart.

Este módulo deriva o conjunto canônico de labels de identidade de cada
componente e o predicado de seleção usado por qualquer recurso que
precise encontrar os pods desse componente.

Decisões arquiteturais:
    - O selector é sempre uma **projeção** do conjunto completo de labels,
      nunca um literal escrito de forma independente
    - `IdentityLabels` armazena apenas o conjunto de labels e as chaves
      de projeção; o selector é computado a cada acesso
    - Labels voláteis (ex.: versão da imagem) ficam fora da projeção,
      pois selectors de workloads são imutáveis no cluster
    - A versão vem da tag da imagem, normalizada para a sintaxe de valor
      de label (alfanumérico nas pontas, no máximo 63 caracteres)

Invariantes:
    - selector(componente) ⊆ labels(componente), estruturalmente
    - Todo recurso e pod template de um componente recebe o mesmo conjunto

Limites explícitos:
    - Não monta recursos
    - Não valida o output renderizado
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from readyset_chart.core.config.effective import EffectiveConfig


LABEL_NAME = "app.kubernetes.io/name"
LABEL_INSTANCE = "app.kubernetes.io/instance"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_PART_OF = "app.kubernetes.io/part-of"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_VERSION = "app.kubernetes.io/version"

APP_NAME = "readyset"
MANAGED_BY = "readyset-chart"

SELECTOR_KEYS: Tuple[str, ...] = (LABEL_NAME, LABEL_INSTANCE, LABEL_COMPONENT)

SERVER = "server"
ADAPTER = "adapter"
CONSUL_SERVER = "consul-server"
COMPONENTS: Tuple[str, ...] = (SERVER, ADAPTER, CONSUL_SERVER)

LABEL_VALUE_MAX = 63
_LABEL_VALUE_INVALID = re.compile(r"[^A-Za-z0-9._-]+")


def image_tag(image: str) -> str:
    """Extrai a tag de uma referência de imagem (`latest` quando ausente)."""
    name = image.split("@", 1)[0]
    last = name.rsplit("/", 1)[-1]
    return last.rsplit(":", 1)[-1] if ":" in last else "latest"


def label_value(raw: str) -> str:
    """
    Normaliza um texto livre para um valor de label válido.

    Caracteres fora de `[A-Za-z0-9._-]` viram `-`, o resultado é truncado
    em 63 caracteres e precisa começar e terminar em alfanumérico.
    """
    value = _LABEL_VALUE_INVALID.sub("-", raw)[:LABEL_VALUE_MAX]
    return value.strip("._-")


@dataclass(frozen=True)
class IdentityLabels:
    """Conjunto de labels de identidade de um componente."""

    component: str
    labels: Mapping[str, str]
    selector_keys: Tuple[str, ...] = SELECTOR_KEYS

    def __post_init__(self) -> None:
        missing = [k for k in self.selector_keys if k not in self.labels]
        if missing:
            raise ValueError(
                f"Chaves de selector ausentes no conjunto de labels de '{self.component}': {missing}"
            )

    @property
    def selector(self) -> Mapping[str, str]:
        return MappingProxyType({k: self.labels[k] for k in self.selector_keys})


class LabelFabric:
    """Deriva labels de identidade e selectors a partir da configuração efetiva."""

    def __init__(self, effective: EffectiveConfig):
        self.effective = effective

    def _version(self, component: str) -> str:
        if component == CONSUL_SERVER:
            return label_value(image_tag(self.effective["consul.image"]))
        return label_value(self.effective[f"readyset.{component}.image.tag"])

    def identity(self, component: str) -> IdentityLabels:
        if component not in COMPONENTS:
            raise KeyError(f"Componente desconhecido: {component}")

        labels: Dict[str, str] = dict(self.effective["readyset.commonLabels"])
        labels.update({
            LABEL_NAME: APP_NAME,
            LABEL_INSTANCE: self.effective.release_name,
            LABEL_COMPONENT: component,
            LABEL_PART_OF: APP_NAME,
            LABEL_MANAGED_BY: MANAGED_BY,
            LABEL_VERSION: self._version(component),
        })
        return IdentityLabels(component=component, labels=MappingProxyType(labels))

    def labels(self, component: str) -> Mapping[str, str]:
        return self.identity(component).labels

    def selector(self, component: str) -> Mapping[str, str]:
        return self.identity(component).selector
