# tests/core/harness/test_harness.py
"""
Testes do Render-and-Validate Harness.

Este módulo valida a execução da matriz de renderização:
- a matriz padrão passa integralmente
- entradas negativas passam quando produzem o erro esperado
- falhas de uma entrada não afetam as demais
- o relatório é o mesmo com e sem paralelismo
- fail_fast interrompe a matriz na primeira entrada não aprovada

Decisões arquiteturais:
    - O harness recebe regras e schema explicitamente
    - Exceções de renderização nunca escapam de `Harness.run`

Limites explícitos:
    - Regras individuais são testadas em test_rules.py
"""

import pytest

try:
    from readyset_chart.core.exceptions import StructuralInvariantViolation
    from readyset_chart.core.harness import (
        DEFAULT_RULES,
        EntryStatus,
        Harness,
        MatrixEntry,
        Rule,
        default_matrix,
        render,
    )
except Exception as e:  # noqa: BLE001
    Harness = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que o harness e seus tipos públicos estejam disponíveis.

    Invariantes:
        - Se os módulos existem, a função não produz efeitos colaterais
        - Se algum módulo está ausente, o teste falha imediatamente
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing harness modules. Implement:\n"
            "- src/readyset_chart/core/harness/harness.py (Harness, render)\n"
            "- src/readyset_chart/core/harness/matrix.py (MatrixEntry, default_matrix)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _comparable(report):
    data = report.to_dict()
    data.pop("run_id")
    return data


def test_render_returns_effective_output_and_digest(minimal_values):
    _require_imports()
    r = render(minimal_values)
    assert r.digest == r.output.digest()
    assert r.effective["namespace"] == "readyset"
    assert render(minimal_values).digest == r.digest


def test_default_matrix_passes(minimal_values, render_ctx):
    """
    Verifica que toda a matriz padrão é aprovada.

    Invariantes:
        - Entradas positivas passam em todas as regras
        - Entradas negativas passam por produzirem o erro esperado
        - O relatório preserva a ordem da matriz
    """
    _require_imports()
    entries = default_matrix(minimal_values)
    report = Harness().run(entries, render_ctx)

    assert report.ok, [f.to_dict() for f in report.failures()]
    assert [r.name for r in report.results] == [e.name for e in entries]
    assert report.run_id == "run-test-001"

    positive = report.result("defaults")
    assert positive.rules_checked == tuple(r.name for r in DEFAULT_RULES)
    assert positive.digest and len(positive.digest) == 64

    negative = report.result("missing-namespace")
    assert negative.status == EntryStatus.PASSED
    assert negative.error.type == "MISSING_REQUIRED_FIELD"
    assert negative.error.details["key"] == "namespace"


def test_matrix_entries_are_independent(minimal_values, render_ctx):
    """Uma entrada com erro não afeta o resultado das demais."""
    _require_imports()
    broken = MatrixEntry("broken", {"readyset": {"adapter": {"type": "oracle"}}})
    good = MatrixEntry("good", minimal_values)
    report = Harness().run([broken, good], render_ctx)

    assert report.result("broken").status == EntryStatus.ERROR
    assert report.result("broken").error.type == "MISSING_REQUIRED_FIELD"
    assert report.result("good").status == EntryStatus.PASSED
    assert not report.ok
    assert [f.name for f in report.failures()] == ["broken"]
    assert render_ctx.events_for("broken")[-1]["level"] == "ERROR"


def test_mismatched_expected_error_is_error_with_warning(minimal_values, render_ctx):
    _require_imports()
    entry = MatrixEntry("wrong-expectation", {"namespace": "readyset"}, expect_error="INVALID_ENUM_VALUE")
    result = Harness().run([entry], render_ctx).result("wrong-expectation")
    assert result.status == EntryStatus.ERROR
    assert render_ctx.warnings["wrong-expectation"]


def test_expected_error_not_raised_fails(minimal_values, render_ctx):
    _require_imports()
    entry = MatrixEntry("should-fail", minimal_values, expect_error="MISSING_REQUIRED_FIELD")
    result = Harness().run([entry], render_ctx).result("should-fail")
    assert result.status == EntryStatus.FAILED
    assert result.error.type == "UNEXPECTED_OUTCOME"


def test_violated_rule_fails_entry_and_stops_rules(minimal_values):
    """
    Verifica que a primeira regra violada encerra a validação da entrada.

    A regra sintética sempre falha; as regras após ela não são avaliadas.
    """
    _require_imports()

    def always_fails(output, effective):
        raise StructuralInvariantViolation.for_rule(
            "always-fails", resource_pair=("Service/readyset-adapter",),
            key_path="spec", expected="x", actual="y",
        )

    rules = (DEFAULT_RULES[0], Rule("always-fails", always_fails), DEFAULT_RULES[1])
    result = Harness(rules=rules).run([MatrixEntry("defaults", minimal_values)]).result("defaults")
    assert result.status == EntryStatus.FAILED
    assert result.rules_checked == ("unique-identities", "always-fails")
    assert result.error.type == "STRUCTURAL_INVARIANT_VIOLATION"
    assert result.error.fatal is False


@pytest.mark.parametrize("max_workers", [None, 4])
def test_crashing_rule_is_isolated_to_its_entry(minimal_values, max_workers):
    """
    Verifica que uma exceção inesperada de uma regra não aborta a matriz.

    A entrada afetada termina com status `error` (RENDER_EXECUTION_ERROR);
    as demais entradas são executadas e aprovadas normalmente.
    """
    _require_imports()

    def crashes_on_postgresql(output, effective):
        if effective["readyset.adapter.type"] == "postgresql":
            raise KeyError("selector")

    rules = DEFAULT_RULES + (Rule("crashes-on-postgresql", crashes_on_postgresql),)
    postgresql = {**minimal_values, "readyset": {
        **minimal_values["readyset"], "adapter": {"type": "postgresql"},
    }}
    entries = [
        MatrixEntry("a", minimal_values),
        MatrixEntry("b", postgresql),
        MatrixEntry("c", minimal_values),
    ]

    report = Harness(rules=rules, max_workers=max_workers).run(entries)

    assert [r.name for r in report.results] == ["a", "b", "c"]
    assert report.result("a").passed
    assert report.result("c").passed
    crashed = report.result("b")
    assert crashed.status == EntryStatus.ERROR
    assert crashed.error.type == "RENDER_EXECUTION_ERROR"
    assert crashed.error.details["exception_class"] == "KeyError"
    assert crashed.rules_checked[-1] == "crashes-on-postgresql"
    assert crashed.digest is not None


def test_parallel_report_matches_sequential(minimal_values):
    """
    Verifica o determinismo do relatório sob paralelismo.

    O relatório (sem `run_id`) é idêntico com e sem pool de threads.
    """
    _require_imports()
    entries = default_matrix(minimal_values)
    sequential = Harness().run(entries)
    parallel = Harness(max_workers=4).run(entries)
    assert _comparable(parallel) == _comparable(sequential)


@pytest.mark.parametrize("max_workers", [None, 4])
def test_fail_fast_stops_at_first_non_passing(minimal_values, max_workers):
    _require_imports()
    entries = [
        MatrixEntry("first", minimal_values),
        MatrixEntry("broken", {}),
        MatrixEntry("after", minimal_values),
    ]
    report = Harness(fail_fast=True, max_workers=max_workers).run(entries)
    assert [r.name for r in report.results] == ["first", "broken"]
    assert report.skipped == ("after",)
    assert report.ok is False
    assert report.to_dict()["skipped"] == ["after"]


def test_duplicate_entry_names_are_rejected(minimal_values):
    _require_imports()
    with pytest.raises(ValueError):
        Harness().run([MatrixEntry("a", minimal_values), MatrixEntry("a", minimal_values)])


def test_summary_counts_statuses(minimal_values):
    _require_imports()
    report = Harness().run([MatrixEntry("ok", minimal_values), MatrixEntry("bad", {})])
    assert report.to_dict()["summary"] == {"passed": 1, "failed": 0, "error": 1}
