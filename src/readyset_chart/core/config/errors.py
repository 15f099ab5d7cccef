# src/readyset_chart/core/config/errors.py
"""
Exceções canônicas do carregamento de values do readyset-chart.

Este módulo define a hierarquia de exceções utilizadas durante a leitura
e o merge dos arquivos de values fornecidos pelo operador, antes que a
configuração chegue ao Resolver.

As exceções aqui definidas representam **violações estruturais dos
arquivos de entrada**, e não erros de resolução de schema (estes vivem em
`readyset_chart.core.exceptions`).

Invariantes:
    - Todas as exceções de carregamento herdam de `ConfigError`
    - Nenhuma exceção representa erro de resolução, montagem ou validação

Limites explícitos:
    - Não realiza fallback ou recovery
    - Não depende de Resolver, Assembler ou Harness
"""


class ConfigError(Exception):
    """
    Exceção base para erros de carregamento de values.

    Todas as exceções levantadas durante leitura de arquivos e deep-merge
    devem herdar desta classe, permitindo captura genérica de falhas
    estruturais de entrada.
    """


class ValuesFileNotFoundError(ConfigError):
    """
    Exceção levantada quando um arquivo de values declarado não existe.

    Decisões arquiteturais:
        - Todo arquivo declarado explicitamente pelo operador é obrigatório
        - Um caminho inexistente invalida o carregamento inteiro

    Limites explícitos:
        - Não tenta localizar arquivos alternativos
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo de values
    não é suportado pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Limites explícitos:
        - Não tenta inferir formato por conteúdo
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz de um arquivo de values
    não é um dicionário (`dict`).

    Invariantes:
        - O loader só opera sobre estruturas do tipo dicionário
    """


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge.

    Este erro indica que uma mesma chave possui tipos incompatíveis
    entre duas camadas de values.

    Exemplo de conflito:
        - base:     {"readyset": {"adapter": {"port": 3306}}}
        - override: {"readyset": {"adapter": "postgresql"}}

    Decisões arquiteturais:
        - O deep-merge é estritamente tipado por chave
        - `None` (chave declarada sem valor no YAML) cede para o outro lado
        - Conflitos estruturais são tratados como erro fatal

    Limites explícitos:
        - Não realiza coerção ou conversão de tipos
    """
