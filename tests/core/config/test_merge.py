# tests/core/config/test_merge.py
"""
Testes da política de deep-merge de values.

Este módulo valida o comportamento da função `deep_merge`, responsável
por combinar camadas de values do operador (ex.: `values.yaml` base +
`values.prod.yaml`) antes da resolução pelo Resolver.

Os testes asseguram que:
- valores escalares são sobrescritos corretamente
- dicionários são mesclados de forma recursiva
- listas são sobrescritas integralmente
- `None` em qualquer lado cede ao lado definido
- conflitos de tipo são detectados e rejeitados explicitamente
- objetos de entrada não são mutados durante o merge

Limites explícitos:
    - Não valida carregamento de arquivos YAML
    - Não valida coerção de tipos (responsabilidade do Resolver)
"""

import pytest

try:
    from readyset_chart.core.config.merge import deep_merge
    from readyset_chart.core.config.errors import ConfigTypeConflictError
except Exception as e:  # noqa: BLE001
    deep_merge = None
    ConfigTypeConflictError = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que os módulos de merge de values estejam disponíveis para os testes.

    Falha explicitamente com uma mensagem orientada quando `deep_merge`
    e/ou `ConfigTypeConflictError` não podem ser importados.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing config merge modules. Implement:\n"
            "- src/readyset_chart/core/config/merge.py (deep_merge)\n"
            "- src/readyset_chart/core/config/errors.py (ConfigTypeConflictError)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_merge_simple_override():
    """
    Verifica o override de escalares sem mutar os dicionários de entrada.

    Invariantes:
        - O valor sobrescrito reflete exatamente o override
        - Chaves não sobrescritas permanecem inalteradas
        - `base` e `override` não sofrem mutação
    """
    _require_imports()
    base = {"namespace": "readyset", "releaseName": "readyset"}
    override = {"releaseName": "cache"}
    out = deep_merge(base, override)
    assert out == {"namespace": "readyset", "releaseName": "cache"}
    assert base == {"namespace": "readyset", "releaseName": "readyset"}
    assert override == {"releaseName": "cache"}


def test_merge_nested_dict():
    """
    Verifica que dicionários aninhados são mesclados recursivamente.

    Apenas as folhas presentes no override são substituídas; irmãs
    declaradas na base permanecem.
    """
    _require_imports()
    base = {"readyset": {"adapter": {"type": "mysql", "replicas": 1}}}
    override = {"readyset": {"adapter": {"replicas": 3}}}
    out = deep_merge(base, override)
    assert out == {"readyset": {"adapter": {"type": "mysql", "replicas": 3}}}


def test_merge_list_override_total():
    """Listas do override substituem integralmente a lista da base."""
    _require_imports()
    base = {"extraArgs": ["--a", "--b"]}
    override = {"extraArgs": ["--c"]}
    assert deep_merge(base, override) == {"extraArgs": ["--c"]}


def test_merge_none_yields_to_defined_side():
    """
    Verifica a política de `None` em qualquer lado do merge.

    Chaves declaradas sem valor em YAML (`storageClass:`) chegam como
    `None` e não podem bloquear nem apagar valores da outra camada.
    """
    _require_imports()
    assert deep_merge({"kubernetes": {"storageClass": None}}, {"kubernetes": {"storageClass": "gp3"}}) == {
        "kubernetes": {"storageClass": "gp3"}
    }
    assert deep_merge({"kubernetes": {"storageClass": "gp3"}}, {"kubernetes": {"storageClass": None}}) == {
        "kubernetes": {"storageClass": "gp3"}
    }


def test_merge_numeric_string_and_int_are_compatible():
    """Uma porta declarada como string pode sobrescrever uma porta inteira."""
    _require_imports()
    out = deep_merge({"readyset": {"adapter": {"port": 3306}}}, {"readyset": {"adapter": {"port": "5433"}}})
    assert out["readyset"]["adapter"]["port"] == "5433"


def test_merge_type_conflict_raises():
    """
    Verifica que conflitos estruturais são rejeitados e nomeiam o caminho.

    Decisões arquiteturais:
        - dict vs escalar é erro fatal, nunca resolvido por heurística
        - bool não é intercambiável com string
    """
    _require_imports()
    if ConfigTypeConflictError is None:
        pytest.fail("ConfigTypeConflictError must be defined in errors.py")

    with pytest.raises(ConfigTypeConflictError) as exc:
        deep_merge({"readyset": {"adapter": {"type": "mysql"}}}, {"readyset": {"adapter": "mysql"}})
    assert "readyset.adapter" in str(exc.value)

    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"consul": {"enabled": True}}, {"consul": {"enabled": "false"}})
