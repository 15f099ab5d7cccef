# src/readyset_chart/core/config/merge.py
"""
Utilitário canônico de deep-merge de values.

Este módulo implementa a política de deep-merge utilizada pelo
readyset-chart para combinar camadas de values do operador
(ex.: `values.yaml` base + `values.prod.yaml`).

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (sem merge elemento a elemento)
    - escalar → sobrescrita direta
    - None em qualquer lado → prevalece o lado definido
    - conflito de tipos → erro estrutural explícito

Invariantes:
    - A mesma entrada sempre produz a mesma saída
    - Chaves não sobrescritas são preservadas
    - Nenhum input é mutado

Limites explícitos:
    - Não carrega arquivos
    - Não aplica defaults do schema (responsabilidade do Resolver)
    - Não realiza coerção de tipos
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _compatible(a: Any, b: Any) -> bool:
    # escalares textuais e numéricos se sobrescrevem ("5432" vs 5432); o Resolver decide a coerção
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b)
    scalar = (int, float, str)
    if isinstance(a, scalar) and isinstance(b, scalar):
        return True
    return type(a) is type(b)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, _path: str = "") -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre duas camadas de values.

    Decisões arquiteturais:
        - O merge é puramente funcional (inputs não são mutados)
        - Não existem heurísticas implícitas para listas
        - Chaves declaradas sem valor (`None`) não bloqueiam overrides
        - Conflitos estruturais são tratados como falha fatal

    Args:
        base (Dict[str, Any]): Camada base de values.
        override (Dict[str, Any]): Camada com precedência.

    Returns:
        Dict[str, Any]: Nova estrutura resultante do deep-merge.

    Raises:
        ConfigTypeConflictError: Se ocorrer conflito de tipo entre as camadas.
    """

    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        path = f"{_path}.{key}" if _path else str(key)

        if key not in result or result[key] is None:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if override_value is None:
            continue

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, _path=path)
            continue

        if isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        if isinstance(base_value, dict) or isinstance(override_value, dict) or not _compatible(base_value, override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{path}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
