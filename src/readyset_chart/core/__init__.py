# src/readyset_chart/core/__init__.py
"""
Core do readyset-chart.

Este pacote reúne as quatro camadas do compilador de topologia, da
configuração do operador até o relatório de validação.

O core é projetado para ser:
    - determinístico
    - testável de forma isolada
    - livre de acesso ao cluster

Componentes principais:
    - config   → Values Loader, deep-merge, schema de Default Chains e Resolver
    - labels   → Label/Selector Fabric
    - topology → Topology Assembler e documentos de recurso
    - harness  → Render-and-Validate Harness

Princípios fundamentais:
    - Nenhuma decisão silenciosa: ausência de campo obrigatório é erro fatal
    - Separação estrita entre resolução, montagem e validação
    - Erros são tipados e serializáveis (ver `exceptions` e `errors`)

Limites explícitos:
    - Não aplica nem reconcilia recursos
    - Não lê segredos
"""
