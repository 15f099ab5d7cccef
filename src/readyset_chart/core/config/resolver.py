# src/readyset_chart/core/config/resolver.py
"""
Resolver canônico de configuração do readyset-chart.

Este módulo transforma values parciais do operador (arbitrariamente
esparsos e aninhados) em uma `EffectiveConfig` totalmente resolvida,
seguindo as Default Chains declaradas em um `ConfigSchema`.

Algoritmo:
    - Percorre as chaves do schema em ordem
    - Para cada chave, avalia a chain em prioridade; a primeira fonte
      que produz valor definido (não-None) vence
    - O valor vencedor é validado e coagido conforme o `ValueKind`

Política de erros:
    - Chave obrigatória ausente (ou string vazia) → MissingRequiredField
    - Tipo/formato incompatível → InvalidValueType
    - Valor fora do conjunto fechado de um enum → InvalidEnumValue
    - Quórum do cluster de discovery inviável (replicas < 1 ou
      bootstrapExpect fora de 1..replicas) → InvalidValueType
    - Nenhum erro é silenciado ou substituído por default

Invariantes:
    - A mesma entrada e o mesmo schema produzem sempre a mesma configuração
    - Nenhum input é mutado
    - Chaves fora do schema são ignoradas

Limites explícitos:
    - Não carrega arquivos (responsabilidade do loader)
    - Não deriva labels nem recursos
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from readyset_chart.core.exceptions import (
    InvalidEnumValue,
    InvalidValueType,
    MissingRequiredField,
)

from .effective import EffectiveConfig
from .schema import DEFAULT_SCHEMA, ConfigSchema, KeySpec, ValueKind


RESERVED_LABEL_PREFIX = "app.kubernetes.io/"

_TRUE = {"true", "yes", "on"}
_FALSE = {"false", "no", "off"}


def _dig(values: Mapping[str, Any], path: str) -> Any:
    """Lê `path` dos values; prefixos não-mapeamento são erro de tipo."""
    node: Any = values
    walked = []
    for part in path.split("."):
        if node is None:
            return None
        if not isinstance(node, Mapping):
            raise InvalidValueType.for_key(".".join(walked), expected="mapping", actual=node)
        walked.append(part)
        node = node.get(part)
    return node


def _as_int(spec: KeySpec, value: Any, *, expected: str) -> int:
    if isinstance(value, bool):
        raise InvalidValueType.for_key(spec.path, expected=expected, actual=value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    raise InvalidValueType.for_key(spec.path, expected=expected, actual=value)


def _coerce(spec: KeySpec, value: Any) -> Any:
    kind = spec.kind

    if kind == ValueKind.PORT:
        port = _as_int(spec, value, expected="port (integer 1-65535)")
        if not 1 <= port <= 65535:
            raise InvalidValueType.for_key(spec.path, expected="port (integer 1-65535)", actual=value)
        return port

    if kind == ValueKind.INTEGER:
        number = _as_int(spec, value, expected="non-negative integer")
        if number < 0:
            raise InvalidValueType.for_key(spec.path, expected="non-negative integer", actual=value)
        return number

    if kind in (ValueKind.STRING, ValueKind.OPTIONAL_STRING):
        if not isinstance(value, str):
            raise InvalidValueType.for_key(spec.path, expected="string", actual=value)
        return value

    if kind == ValueKind.QUANTITY:
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise InvalidValueType.for_key(spec.path, expected="quantity (ex.: '500m', '1Gi')", actual=value)
        quantity = str(value).strip()
        if not quantity:
            raise InvalidValueType.for_key(spec.path, expected="quantity (ex.: '500m', '1Gi')", actual=value)
        return quantity

    if kind == ValueKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        raise InvalidValueType.for_key(spec.path, expected="boolean", actual=value)

    if kind == ValueKind.ENUM:
        if not isinstance(value, str) or value not in spec.choices:
            raise InvalidEnumValue.for_key(spec.path, allowed=spec.choices, actual=value)
        return value

    if kind == ValueKind.LABELS:
        if not isinstance(value, Mapping):
            raise InvalidValueType.for_key(spec.path, expected="mapping of string to string", actual=value)
        labels: Dict[str, str] = {}
        for k in sorted(value, key=str):
            v = value[k]
            if not isinstance(k, str) or not isinstance(v, str):
                raise InvalidValueType.for_key(f"{spec.path}.{k}", expected="string label", actual=v)
            if k.startswith(RESERVED_LABEL_PREFIX):
                raise InvalidValueType.for_key(
                    f"{spec.path}.{k}",
                    expected=f"label key outside the reserved '{RESERVED_LABEL_PREFIX}' prefix",
                    actual=k,
                )
            labels[k] = v
        return MappingProxyType(labels)

    raise ValueError(f"ValueKind não suportado: {kind}")  # pragma: no cover


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_discovery_quorum(resolved: Mapping[str, Any]) -> None:
    # o cluster consul só elege líder com 1 <= bootstrapExpect <= replicas
    if not resolved.get("consul.enabled"):
        return
    replicas = resolved.get("consul.server.replicas")
    expect = resolved.get("consul.server.bootstrapExpect")
    if replicas is not None and replicas < 1:
        raise InvalidValueType.for_key(
            "consul.server.replicas", expected="at least 1 server replica", actual=replicas,
        )
    if expect is not None and replicas is not None and not 1 <= expect <= replicas:
        raise InvalidValueType.for_key(
            "consul.server.bootstrapExpect",
            expected=f"integer between 1 and consul.server.replicas ({replicas})",
            actual=expect,
        )


def resolve_config(
    values: Optional[Mapping[str, Any]],
    schema: ConfigSchema = DEFAULT_SCHEMA,
) -> EffectiveConfig:
    """
    Resolve a configuração efetiva a partir dos values do operador.

    Decisões arquiteturais:
        - O schema é recebido explicitamente (substituível em testes)
        - `Computed` enxerga apenas chaves já resolvidas
        - A fonte vencedora de cada chave é registrada para introspecção

    Args:
        values: Values parciais do operador (`None` equivale a `{}`).
        schema: Schema de Default Chains.

    Returns:
        EffectiveConfig: Configuração imutável e totalmente resolvida.

    Raises:
        MissingRequiredField: Se uma chave obrigatória não foi fornecida.
        InvalidValueType: Se um valor tiver tipo/formato incompatível.
        InvalidEnumValue: Se um valor enum estiver fora do conjunto aceito.
    """
    if values is None:
        values = {}
    if not isinstance(values, Mapping):
        raise InvalidValueType.for_key("<root>", expected="mapping", actual=values)

    resolved: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    for spec in schema:
        user_value = _dig(values, spec.path)
        if _is_absent(user_value):
            user_value = None

        if spec.required and user_value is None:
            raise MissingRequiredField.for_key(spec.path)

        winner: Optional[str] = None
        for source in spec.chain:
            candidate = source.evaluate(user_value, resolved.__getitem__)
            if candidate is not None:
                resolved[spec.path] = _coerce(spec, candidate)
                winner = source.describe()
                break

        if winner is None:
            # chains opcionais terminam em Constant(None) apenas para OPTIONAL_STRING
            if spec.kind != ValueKind.OPTIONAL_STRING:
                raise ValueError(f"Chain de '{spec.path}' não produziu valor")  # pragma: no cover
            resolved[spec.path] = None
            winner = "constant"

        sources[spec.path] = winner

    _check_discovery_quorum(resolved)

    return EffectiveConfig(
        values=MappingProxyType(resolved),
        sources=MappingProxyType(sources),
    )
