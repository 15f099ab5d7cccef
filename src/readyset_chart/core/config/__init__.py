# src/readyset_chart/core/config/__init__.py
"""
Camada de configuração do readyset-chart.

Este pacote contém as estruturas responsáveis por carregar values do
operador, mesclá-los em camadas e resolvê-los contra um schema explícito
de Default Chains, produzindo a configuração efetiva de uma renderização.

Responsabilidades do pacote:
    - Carregamento de arquivos de values (YAML/JSON) em camadas
    - Deep-merge determinístico entre camadas
    - Schema de Default Chains (Explicit → Computed → Constant)
    - Resolução, coerção de tipos e chaves obrigatórias
    - Hash canônico para evidência de determinismo

Invariantes:
    - A configuração efetiva é imutável
    - A mesma entrada sempre produz a mesma configuração efetiva
    - Chaves obrigatórias ausentes são erro fatal, nunca placeholder

Limites explícitos:
    - Não deriva labels nem recursos
    - Não valida o output renderizado
"""

from .effective import COMPONENT_ROOTS, EffectiveConfig
from .hashing import compute_config_hash
from .loader import load_values
from .merge import deep_merge
from .resolver import resolve_config
from .schema import (
    ADAPTER_PORT_BY_TYPE,
    DATABASE_TYPES,
    DEFAULT_SCHEMA,
    Computed,
    ConfigSchema,
    Constant,
    Explicit,
    KeySpec,
    ValueKind,
    build_default_schema,
    optional,
    required,
)

__all__ = [
    "ADAPTER_PORT_BY_TYPE",
    "COMPONENT_ROOTS",
    "DATABASE_TYPES",
    "DEFAULT_SCHEMA",
    "Computed",
    "ConfigSchema",
    "Constant",
    "EffectiveConfig",
    "Explicit",
    "KeySpec",
    "ValueKind",
    "build_default_schema",
    "compute_config_hash",
    "deep_merge",
    "load_values",
    "optional",
    "required",
    "resolve_config",
]
