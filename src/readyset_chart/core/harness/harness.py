# src/readyset_chart/core/harness/harness.py
"""
Render-and-Validate Harness do readyset-chart.

Este módulo renderiza a topologia para cada entrada de uma matriz de
values e verifica as regras estruturais sobre cada Render Output.

Decisões arquiteturais:
    - Entradas são independentes: cada uma resolve, monta e valida sem
      compartilhar estado mutável com as demais
    - Com `max_workers > 1` as entradas executam em um pool de threads;
      o relatório é sempre montado na ordem da matriz
    - Erros de resolução/montagem abortam apenas a entrada (status `error`,
      ou `passed` quando coincidem com `expect_error`)
    - A primeira regra violada encerra a validação da entrada (status `failed`);
      qualquer outra exceção de uma regra vira status `error` da entrada
    - `fail_fast=True` interrompe a matriz na primeira entrada não aprovada;
      as entradas seguintes são listadas como `skipped` no relatório

Invariantes:
    - O relatório de uma matriz é o mesmo com ou sem paralelismo
      (exceto `run_id` e timestamps do log de eventos)
    - Exceções de renderização nunca escapam de `Harness.run`: viram ChartErrorPayload

Limites explícitos:
    - Não aplica recursos no cluster
    - Não persiste o relatório (ver `report.save_report`)
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from readyset_chart.core.config.effective import EffectiveConfig
from readyset_chart.core.config.resolver import resolve_config
from readyset_chart.core.config.schema import DEFAULT_SCHEMA, ConfigSchema
from readyset_chart.core.errors import ChartErrorPayload, exception_to_payload, unexpected_outcome
from readyset_chart.core.exceptions import StructuralInvariantViolation
from readyset_chart.core.topology.assembler import assemble
from readyset_chart.core.topology.resources import RenderOutput

from .context import RenderContext
from .matrix import MatrixEntry
from .rules import DEFAULT_RULES, Rule


@dataclass(frozen=True)
class Render:
    """Resultado de uma renderização: configuração efetiva, output e digest."""

    effective: EffectiveConfig
    output: RenderOutput
    digest: str


def render(values: Optional[Mapping[str, Any]], schema: ConfigSchema = DEFAULT_SCHEMA) -> Render:
    """
    Resolve e monta uma renderização completa.

    Raises:
        MissingRequiredField, InvalidValueType, InvalidEnumValue: na resolução.
        UnresolvedCrossReference: na montagem.
    """
    effective = resolve_config(values, schema)
    output = assemble(effective)
    return Render(effective=effective, output=output, digest=output.digest())


class EntryStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass(frozen=True)
class EntryResult:
    """Resultado de uma entrada da matriz."""

    name: str
    status: EntryStatus
    digest: Optional[str] = None
    error: Optional[ChartErrorPayload] = None
    expect_error: Optional[str] = None
    rules_checked: Tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return self.status == EntryStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "digest": self.digest,
            "error": self.error.to_dict() if self.error else None,
            "expect_error": self.expect_error,
            "rules_checked": list(self.rules_checked),
        }


@dataclass(frozen=True)
class HarnessReport:
    """Relatório de uma execução da matriz, na ordem da matriz."""

    run_id: str
    results: Tuple[EntryResult, ...]
    skipped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.skipped and all(r.passed for r in self.results)

    def failures(self) -> List[EntryResult]:
        return [r for r in self.results if not r.passed]

    def result(self, name: str) -> EntryResult:
        for r in self.results:
            if r.name == name:
                return r
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "ok": self.ok,
            "summary": {
                status.value: sum(1 for r in self.results if r.status == status)
                for status in EntryStatus
            },
            "results": [r.to_dict() for r in self.results],
            "skipped": list(self.skipped),
        }


class Harness:
    """Executor da matriz de renderização (render + regras)."""

    def __init__(
        self,
        *,
        rules: Sequence[Rule] = DEFAULT_RULES,
        schema: ConfigSchema = DEFAULT_SCHEMA,
        fail_fast: bool = False,
        max_workers: Optional[int] = None,
    ):
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.schema = schema
        self.fail_fast = fail_fast
        self.max_workers = max_workers

    def _validate(self, entry: MatrixEntry, rendered: Render, ctx: RenderContext) -> EntryResult:
        checked: List[str] = []
        for rule in self.rules:
            checked.append(rule.name)
            try:
                rule(rendered.output, rendered.effective)
            except StructuralInvariantViolation as violation:
                ctx.log(entry=entry.name, level="ERROR", message=violation.message, rule=rule.name)
                return EntryResult(
                    name=entry.name,
                    status=EntryStatus.FAILED,
                    digest=rendered.digest,
                    error=exception_to_payload(violation),
                    rules_checked=tuple(checked),
                )
            except Exception as exc:
                payload = exception_to_payload(exc)
                ctx.log(entry=entry.name, level="ERROR", message=payload.message, rule=rule.name)
                return EntryResult(
                    name=entry.name,
                    status=EntryStatus.ERROR,
                    digest=rendered.digest,
                    error=payload,
                    rules_checked=tuple(checked),
                )
        ctx.log(entry=entry.name, level="INFO", message="entry passed", digest=rendered.digest)
        return EntryResult(
            name=entry.name,
            status=EntryStatus.PASSED,
            digest=rendered.digest,
            rules_checked=tuple(checked),
        )

    def run_entry(self, entry: MatrixEntry, ctx: Optional[RenderContext] = None) -> EntryResult:
        ctx = ctx or RenderContext()
        ctx.log(entry=entry.name, level="INFO", message="render started")

        try:
            rendered = render(entry.values, self.schema)
        except Exception as exc:
            payload = exception_to_payload(exc)
            if entry.expect_error is not None and payload.type == entry.expect_error:
                ctx.log(entry=entry.name, level="INFO", message="expected error raised", error_type=payload.type)
                return EntryResult(
                    name=entry.name,
                    status=EntryStatus.PASSED,
                    error=payload,
                    expect_error=entry.expect_error,
                )
            if entry.expect_error is not None:
                ctx.add_warning(
                    entry=entry.name,
                    message=f"esperado {entry.expect_error}, obtido {payload.type}",
                )
            ctx.log(entry=entry.name, level="ERROR", message=payload.message, error_type=payload.type)
            return EntryResult(
                name=entry.name,
                status=EntryStatus.ERROR,
                error=payload,
                expect_error=entry.expect_error,
            )

        if entry.expect_error is not None:
            ctx.log(entry=entry.name, level="ERROR", message="expected error not raised")
            return EntryResult(
                name=entry.name,
                status=EntryStatus.FAILED,
                digest=rendered.digest,
                error=unexpected_outcome(entry=entry.name, expected_error=entry.expect_error, actual_error=None),
                expect_error=entry.expect_error,
            )

        return self._validate(entry, rendered, ctx)

    def run(self, entries: Sequence[MatrixEntry], ctx: Optional[RenderContext] = None) -> HarnessReport:
        ctx = ctx or RenderContext()
        entries = list(entries)
        names = [e.name for e in entries]
        if len(set(names)) != len(names):
            raise ValueError(f"Nomes de entradas duplicados na matriz: {names}")

        results: List[EntryResult] = []
        if self.max_workers is not None and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(lambda e: self.run_entry(e, ctx), entries))
            if self.fail_fast:
                for i, r in enumerate(results):
                    if not r.passed:
                        results = results[: i + 1]
                        break
        else:
            for entry in entries:
                result = self.run_entry(entry, ctx)
                results.append(result)
                if self.fail_fast and not result.passed:
                    break

        skipped = tuple(names[len(results):])
        for name in skipped:
            ctx.log(entry=name, level="WARNING", message="skipped by fail_fast")
        return HarnessReport(run_id=ctx.run_id, results=tuple(results), skipped=skipped)
