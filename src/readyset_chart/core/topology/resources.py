# src/readyset_chart/core/topology/resources.py
"""
Documentos de recurso e Render Output do readyset-chart.

Este módulo define as estruturas imutáveis produzidas pelo Assembler
e os construtores de fragmentos recorrentes (portas, env, probes).

Componentes principais:
    - ResourceDocument → um documento `kind`/`name`/`labels`/`spec`
    - RenderOutput     → coleção ordenada de documentos de uma renderização
    - render_yaml      → stream YAML multi-documento para o runtime

Invariantes:
    - Documentos são congelados em profundidade (mapping proxies e tuplas)
    - `to_dict()` devolve estruturas puras e independentes do documento
    - A ordem dos documentos é a ordem de montagem

Limites explícitos:
    - Não decide valores (portas, nomes, labels)
    - Não valida invariantes entre recursos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import yaml  # PyYAML

from readyset_chart.core.config.hashing import compute_config_hash


_EMPTY: Mapping[str, Any] = MappingProxyType({})


def freeze(value: Any) -> Any:
    """Congela recursivamente dicts em MappingProxyType e listas em tuplas."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverso de `freeze`: devolve dicts e listas puros."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class ResourceDocument:
    """
    Documento de recurso renderizado.

    `body_key` indica onde o corpo é serializado (`spec` para workloads e
    Services, `data` para ConfigMaps, `None` para recursos sem corpo).
    """

    api_version: str
    kind: str
    name: str
    namespace: str
    labels: Mapping[str, str]
    spec: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    annotations: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    body_key: Optional[str] = "spec"

    @classmethod
    def create(
        cls,
        *,
        api_version: str,
        kind: str,
        name: str,
        namespace: str,
        labels: Mapping[str, str],
        spec: Optional[Mapping[str, Any]] = None,
        annotations: Optional[Mapping[str, str]] = None,
        body_key: Optional[str] = "spec",
    ) -> "ResourceDocument":
        return cls(
            api_version=api_version,
            kind=kind,
            name=name,
            namespace=namespace,
            labels=freeze(dict(labels)),
            spec=freeze(dict(spec or {})),
            annotations=freeze(dict(annotations or {})),
            body_key=body_key,
        )

    @property
    def identity(self) -> str:
        return f"{self.kind}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "labels": thaw(self.labels),
        }
        if self.annotations:
            metadata["annotations"] = thaw(self.annotations)
        doc: Dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
        }
        if self.body_key is not None:
            doc[self.body_key] = thaw(self.spec)
        return doc


@dataclass(frozen=True)
class RenderOutput:
    """Coleção ordenada e imutável de documentos de uma renderização."""

    documents: Tuple[ResourceDocument, ...]

    def __iter__(self) -> Iterator[ResourceDocument]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def find(self, kind: str, name: str) -> ResourceDocument:
        for doc in self.documents:
            if doc.kind == kind and doc.name == name:
                return doc
        raise KeyError(f"{kind}/{name}")

    def of_kind(self, *kinds: str) -> Tuple[ResourceDocument, ...]:
        return tuple(doc for doc in self.documents if doc.kind in kinds)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [doc.to_dict() for doc in self.documents]

    def digest(self) -> str:
        return compute_config_hash(self.to_dicts())


def render_yaml(output: RenderOutput) -> str:
    """Serializa o Render Output como stream YAML multi-documento."""
    return yaml.safe_dump_all(
        output.to_dicts(),
        sort_keys=False,
        default_flow_style=False,
        explicit_start=True,
    )


# -----------------------------
# Fragmentos recorrentes
# -----------------------------

def container_port(name: str, number: int, protocol: str = "TCP") -> Dict[str, Any]:
    return {"containerPort": number, "name": name, "protocol": protocol}


def service_port(name: str, number: int, protocol: str = "TCP") -> Dict[str, Any]:
    return {"name": name, "port": number, "targetPort": number, "protocol": protocol}


def env_value(name: str, value: Any) -> Dict[str, Any]:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return {"name": name, "value": str(value)}


def env_secret(name: str, *, secret: str, key: str) -> Dict[str, Any]:
    return {"name": name, "valueFrom": {"secretKeyRef": {"name": secret, "key": key}}}


def env_field(name: str, field_path: str) -> Dict[str, Any]:
    return {"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}}


def exec_probe(script: str, **timing: int) -> Dict[str, Any]:
    probe: Dict[str, Any] = {"exec": {"command": ["/bin/sh", "-ec", script]}}
    probe.update(timing)
    return probe


def resource_requests(cpu: str, memory: str) -> Dict[str, Any]:
    return {"requests": {"cpu": cpu, "memory": memory}}
