# src/readyset_chart/__init__.py
"""
readyset-chart — compilador e validador da topologia de deploy do ReadySet.

Este pacote raiz define o namespace público do readyset-chart, que compila
uma configuração hierárquica do operador em um conjunto coerente de
recursos de cluster (server, adapter e cluster de descoberta) e verifica,
antes de qualquer aplicação, que os recursos concordam entre si.

Princípios centrais:
    - Defaults são dados explícitos (Default Chains), não condicionais
    - Valores derivados (portas, labels, endereços) têm uma única origem
    - A mesma entrada sempre produz o mesmo output, byte a byte
    - Consistência entre recursos é verificada por um harness, não por revisão

Arquitetura em alto nível:
    - core.config   → carregamento, merge, schema e resolução de values
    - core.labels   → labels de identidade e selectors por projeção
    - core.topology → montagem do Render Output e emissão YAML
    - core.harness  → matriz de entradas, regras estruturais e relatório

Limites explícitos:
    - Não aplica recursos no cluster
    - Não monitora workloads em execução
    - Não produz segredos (apenas os referencia)
"""

from .core.harness import Harness, MatrixEntry, default_matrix, render
from .core.topology import render_yaml

__all__ = ["Harness", "MatrixEntry", "default_matrix", "render", "render_yaml"]
