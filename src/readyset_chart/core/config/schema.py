# src/readyset_chart/core/config/schema.py
"""
Schema de configuração do readyset-chart (Default Chains).

Este módulo define, como **dados explícitos**, como cada chave da
configuração efetiva é resolvida. Cada chave possui uma Default Chain:
uma sequência ordenada de fontes avaliadas em regime first-match-wins.

Fontes disponíveis:
    - Explicit → valor fornecido pelo operador no caminho da chave
    - Computed → função pura sobre chaves já resolvidas (dependências declaradas)
    - Constant → valor fixo (terminador obrigatório de chains opcionais)

Princípios fundamentais:
    - Nenhum defaulting é expresso como condicional aninhada
    - Cada chain é introspectável e testável chave a chave
    - O schema é imutável e passado explicitamente ao Resolver
      (não existe estado global de defaults)

Invariantes:
    - Chains opcionais terminam sempre em `Constant` (função total)
    - Chains obrigatórias contêm apenas `Explicit` (ausência é erro fatal)
    - Dependências de `Computed` precedem a chave na ordem do schema
    - Caminhos são únicos no schema

Limites explícitos:
    - Não lê values do operador
    - Não realiza coerção de tipos (responsabilidade do Resolver)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union


Lookup = Callable[[str], Any]


class ValueKind(str, Enum):
    """Formato esperado do valor resolvido de uma chave."""

    PORT = "port"
    INTEGER = "integer"
    STRING = "string"
    OPTIONAL_STRING = "optional_string"
    QUANTITY = "quantity"
    BOOLEAN = "boolean"
    ENUM = "enum"
    LABELS = "labels"


# ---------------------------------------------------------------------------
# Fontes de uma Default Chain
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Explicit:
    """Valor declarado pelo operador no próprio caminho da chave."""

    def evaluate(self, user_value: Any, lookup: Lookup) -> Optional[Any]:
        return user_value

    def describe(self) -> str:
        return "explicit"


@dataclass(frozen=True)
class Computed:
    """Fallback derivado de chaves já resolvidas.

    `fn` recebe um `lookup(path)` restrito a `depends_on` e retorna o valor
    derivado, ou `None` quando não se aplica.
    """

    name: str
    fn: Callable[[Lookup], Optional[Any]] = field(compare=False)
    depends_on: Tuple[str, ...] = ()

    def evaluate(self, user_value: Any, lookup: Lookup) -> Optional[Any]:
        def scoped(path: str) -> Any:
            if path not in self.depends_on:
                raise KeyError(f"Computed '{self.name}' não declarou dependência de '{path}'")
            return lookup(path)

        return self.fn(scoped)

    def describe(self) -> str:
        return f"computed:{self.name}"


@dataclass(frozen=True)
class Constant:
    """Valor fixo; terminador das chains opcionais."""

    value: Any

    def evaluate(self, user_value: Any, lookup: Lookup) -> Optional[Any]:
        return self.value

    def describe(self) -> str:
        return "constant"


Source = Union[Explicit, Computed, Constant]


@dataclass(frozen=True)
class KeySpec:
    """
    Especificação de uma chave da configuração efetiva.

    Campos:
        - path: caminho pontuado nos values do operador (ex.: `readyset.adapter.port`)
        - kind: formato esperado do valor resolvido
        - chain: Default Chain, avaliada em ordem
        - required: chave obrigatória (chain composta apenas por `Explicit`)
        - choices: conjunto fechado aceito quando `kind == ENUM`
    """

    path: str
    kind: ValueKind
    chain: Tuple[Source, ...]
    required: bool = False
    choices: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.path or any(not part for part in self.path.split(".")):
            raise ValueError(f"Caminho de chave inválido: {self.path!r}")
        if not self.chain:
            raise ValueError(f"Chain vazia para '{self.path}'")
        if self.required:
            if any(not isinstance(s, Explicit) for s in self.chain):
                raise ValueError(f"Chave obrigatória '{self.path}' não pode ter fallback")
        elif not isinstance(self.chain[-1], Constant):
            raise ValueError(f"Chain de '{self.path}' deve terminar em Constant")
        elif self.chain[-1].value is None and self.kind != ValueKind.OPTIONAL_STRING:
            raise ValueError(f"Apenas chaves optional_string aceitam Constant(None): '{self.path}'")
        if self.kind == ValueKind.ENUM and not self.choices:
            raise ValueError(f"Chave enum '{self.path}' sem conjunto de valores aceitos")

    def describe(self) -> Tuple[str, ...]:
        return tuple(s.describe() for s in self.chain)


def required(path: str, kind: ValueKind = ValueKind.STRING) -> KeySpec:
    return KeySpec(path=path, kind=kind, chain=(Explicit(),), required=True)


def optional(
    path: str,
    kind: ValueKind,
    default: Any,
    *,
    computed: Optional[Computed] = None,
    choices: Tuple[str, ...] = (),
) -> KeySpec:
    chain: Tuple[Source, ...] = (Explicit(),)
    if computed is not None:
        chain += (computed,)
    chain += (Constant(default),)
    return KeySpec(path=path, kind=kind, chain=chain, choices=choices)


@dataclass(frozen=True)
class ConfigSchema:
    """
    Schema imutável e ordenado de Default Chains.

    A ordem das chaves é a ordem de resolução: um `Computed` só pode
    depender de chaves declaradas antes dele.
    """

    keys: Tuple[KeySpec, ...]

    def __post_init__(self) -> None:
        seen: Dict[str, KeySpec] = {}
        for spec in self.keys:
            if spec.path in seen:
                raise ValueError(f"Chave duplicada no schema: {spec.path}")
            for source in spec.chain:
                if isinstance(source, Computed):
                    for dep in source.depends_on:
                        if dep not in seen:
                            raise ValueError(
                                f"'{spec.path}' depende de '{dep}', que não precede a chave no schema"
                            )
            seen[spec.path] = spec

    def __iter__(self) -> Iterator[KeySpec]:
        return iter(self.keys)

    def __contains__(self, path: object) -> bool:
        return any(spec.path == path for spec in self.keys)

    def key(self, path: str) -> KeySpec:
        for spec in self.keys:
            if spec.path == path:
                return spec
        raise KeyError(path)

    def with_key(self, spec: KeySpec) -> "ConfigSchema":
        """Retorna um novo schema com `spec` substituindo (ou anexando) a chave."""
        if spec.path in self:
            return ConfigSchema(tuple(spec if s.path == spec.path else s for s in self.keys))
        return ConfigSchema(self.keys + (spec,))


# ---------------------------------------------------------------------------
# Convenções
# ---------------------------------------------------------------------------

ADAPTER_PORT_BY_TYPE: Dict[str, int] = {
    "mysql": 3306,
    "postgresql": 5432,
}
DATABASE_TYPES: Tuple[str, ...] = tuple(ADAPTER_PORT_BY_TYPE)

DEFAULT_RELEASE_NAME = "readyset"
DEFAULT_IMAGE_REPOSITORY = "public.ecr.aws/readyset"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_CONSUL_IMAGE = "hashicorp/consul:1.15.2"


def _inherit(parent: str) -> Computed:
    return Computed(name=f"inherit:{parent}", fn=lambda get: get(parent), depends_on=(parent,))


def _component_keys(component: str, http_port: int) -> Tuple[KeySpec, ...]:
    root = f"readyset.{component}"
    return (
        optional(f"{root}.image.repository", ValueKind.STRING, DEFAULT_IMAGE_REPOSITORY,
                 computed=_inherit("readyset.image.repository")),
        optional(f"{root}.image.tag", ValueKind.STRING, DEFAULT_IMAGE_TAG,
                 computed=_inherit("readyset.image.tag")),
        optional(f"{root}.httpPort", ValueKind.PORT, http_port),
        optional(f"{root}.replicas", ValueKind.INTEGER, 1),
        optional(f"{root}.ingress.enabled", ValueKind.BOOLEAN, True),
        optional(f"{root}.resources.requests.cpu", ValueKind.QUANTITY, "500m"),
        optional(f"{root}.resources.requests.memory", ValueKind.QUANTITY, "1Gi"),
    )


def build_default_schema() -> ConfigSchema:
    """Schema padrão, com as convenções do chart original."""
    adapter_port = Computed(
        name="adapter-type-convention",
        fn=lambda get: ADAPTER_PORT_BY_TYPE.get(get("readyset.adapter.type")),
        depends_on=("readyset.adapter.type",),
    )
    deployment = Computed(
        name="release-name",
        fn=lambda get: get("releaseName"),
        depends_on=("releaseName",),
    )
    bootstrap_expect = Computed(
        name="consul-replicas",
        fn=lambda get: get("consul.server.replicas"),
        depends_on=("consul.server.replicas",),
    )

    keys: Tuple[KeySpec, ...] = (
        required("namespace"),
        optional("releaseName", ValueKind.STRING, DEFAULT_RELEASE_NAME),
        optional("readyset.deployment", ValueKind.STRING, DEFAULT_RELEASE_NAME, computed=deployment),
        required("readyset.upstreamDatabase.secretName"),
        optional("readyset.upstreamDatabase.secretKey", ValueKind.STRING, "url"),
        optional("readyset.commonLabels", ValueKind.LABELS, {}),
        optional("readyset.image.repository", ValueKind.STRING, DEFAULT_IMAGE_REPOSITORY),
        optional("readyset.image.tag", ValueKind.STRING, DEFAULT_IMAGE_TAG),
        optional("kubernetes.storageClass", ValueKind.OPTIONAL_STRING, None),
        # server
        *_component_keys("server", 6033),
        optional("readyset.server.resources.requests.storage", ValueKind.QUANTITY, "50Gi"),
        # adapter
        optional("readyset.adapter.type", ValueKind.ENUM, "mysql", choices=DATABASE_TYPES),
        optional("readyset.adapter.port", ValueKind.PORT, ADAPTER_PORT_BY_TYPE["mysql"], computed=adapter_port),
        *_component_keys("adapter", 6034),
        optional("readyset.adapter.queryLog", ValueKind.BOOLEAN, True),
        optional("readyset.adapter.viewsPollingInterval", ValueKind.INTEGER, 180),
        # discovery cluster
        optional("consul.enabled", ValueKind.BOOLEAN, True),
        optional("consul.image", ValueKind.STRING, DEFAULT_CONSUL_IMAGE),
        optional("consul.externalAddress", ValueKind.OPTIONAL_STRING, None),
        optional("consul.server.replicas", ValueKind.INTEGER, 3),
        optional("consul.server.bootstrapExpect", ValueKind.INTEGER, 3, computed=bootstrap_expect),
        optional("consul.server.httpPort", ValueKind.PORT, 8500),
        optional("consul.server.serfLanPort", ValueKind.PORT, 8301),
        optional("consul.server.rpcPort", ValueKind.PORT, 8300),
        optional("consul.server.dnsPort", ValueKind.PORT, 8600),
        optional("consul.server.storage", ValueKind.QUANTITY, "10Gi"),
        optional("consul.server.resources.requests.cpu", ValueKind.QUANTITY, "500m"),
        optional("consul.server.resources.requests.memory", ValueKind.QUANTITY, "1Gi"),
        optional("consul.server.resources.limits.cpu", ValueKind.QUANTITY, "500m"),
        optional("consul.server.resources.limits.memory", ValueKind.QUANTITY, "1Gi"),
    )
    return ConfigSchema(keys)


DEFAULT_SCHEMA = build_default_schema()
