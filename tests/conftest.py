# tests/conftest.py
"""
Fixtures compartilhados para testes do readyset-chart.

Este módulo define fixtures reutilizáveis que fornecem:
- values mínimos (apenas campos obrigatórios) e determinísticos
- arquivos de values em YAML para testes do loader
- configuração efetiva e Render Output já resolvidos
- contexto de execução controlado (RenderContext)

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Dados retornados são novos a cada uso (sem estado compartilhado)
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture acessa cluster ou rede
    - Apenas fixtures de YAML retornam texto; nenhuma escreve em disco

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica condicional complexa
"""

import pytest
from datetime import datetime, timezone


# =====================================================
# Values do operador
# =====================================================

@pytest.fixture
def minimal_values() -> dict:
    """
    Values mínimos aceitos pelo Resolver: apenas os campos obrigatórios.

    Representa a "configuração all-default" do chart: todo o restante
    vem das Default Chains do schema padrão.

    Returns:
        dict: values com `namespace` e `readyset.upstreamDatabase.secretName`.
    """
    return {
        "namespace": "readyset",
        "readyset": {"upstreamDatabase": {"secretName": "readyset-upstream-database"}},
    }


@pytest.fixture
def base_values_yaml() -> str:
    """Arquivo de values base (equivalente a um `values.yaml`)."""
    return """\
namespace: readyset
readyset:
  upstreamDatabase:
    secretName: readyset-upstream-database
  adapter:
    type: mysql
    replicas: 1
consul:
  server:
    replicas: 3
"""


@pytest.fixture
def prod_values_yaml() -> str:
    """Camada de override (equivalente a um `values.prod.yaml`)."""
    return """\
readyset:
  adapter:
    type: postgresql
    replicas: 2
kubernetes:
  storageClass: gp3
"""


# =====================================================
# Estruturas resolvidas
# =====================================================

@pytest.fixture
def effective(minimal_values):
    """Configuração efetiva resolvida a partir de `minimal_values`."""
    from readyset_chart.core.config.resolver import resolve_config

    return resolve_config(minimal_values)


@pytest.fixture
def rendered(minimal_values):
    """Render completo (effective + output + digest) de `minimal_values`."""
    from readyset_chart.core.harness.harness import render

    return render(minimal_values)


@pytest.fixture
def render_ctx():
    """
    RenderContext determinístico para testes do harness.

    `run_id` e `created_at` são fixos para que relatórios e eventos
    possam ser comparados entre execuções.
    """
    from readyset_chart.core.harness.context import RenderContext

    return RenderContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        meta={"source": "pytest"},
    )
