# src/readyset_chart/core/config/loader.py
"""
Loader canônico de values do readyset-chart.

Este módulo é responsável por carregar e combinar os arquivos de values
fornecidos pelo operador, produzindo a configuração parcial do usuário
que será entregue ao Resolver.

Os values são resolvidos a partir de:
    - uma lista ordenada de arquivos (o último tem maior precedência)
    - um dicionário opcional de overrides inline (precedência máxima)

Princípios fundamentais:
    - Values são declarativos e explícitos
    - Nenhum default do schema é aplicado aqui
    - Erros estruturais são tratados como falhas fatais
    - A mesma entrada sempre produz os mesmos values

Limites explícitos:
    - Não valida tipos nem chaves obrigatórias (responsabilidade do Resolver)
    - Não renderiza recursos
"""

from pathlib import Path
from typing import Any, Callable, Dict, IO, Optional, Sequence, Union
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    ValuesFileNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


_PARSERS: Dict[str, Callable[[IO[str]], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de values e valida sua estrutura básica.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Decisões arquiteturais:
        - O arquivo deve existir no momento do carregamento
        - O conteúdo raiz deve ser um dicionário (`dict`)
        - Arquivos vazios são interpretados como dicionários vazios

    Raises:
        ValuesFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise ValuesFileNotFoundError(f"Arquivo de values não encontrado: {path}")

    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise UnsupportedConfigFormatError(
            f"Formato não suportado: {path.suffix} (aceitos: {', '.join(sorted(_PARSERS))})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = parser(f)

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Values root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_values(
    paths: Sequence[Union[str, Path]] = (),
    *,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Carrega e combina camadas de values do operador.

    Política de resolução:
        - Arquivos são aplicados na ordem declarada (último vence)
        - `overrides` é aplicado por último
        - A combinação utiliza `deep_merge`

    Args:
        paths: Caminhos dos arquivos de values, em ordem de precedência crescente.
        overrides: Values inline com precedência máxima.

    Returns:
        Dict[str, Any]: Values combinados (configuração parcial do usuário).

    Raises:
        ValuesFileNotFoundError: Se algum arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """

    effective: Dict[str, Any] = {}

    for p in paths:
        effective = deep_merge(effective, _load_file(Path(p)))

    if overrides:
        if not isinstance(overrides, dict):
            raise InvalidConfigRootTypeError(
                f"Overrides devem ser dict, recebido: {type(overrides).__name__}"
            )
        effective = deep_merge(effective, overrides)

    return effective
