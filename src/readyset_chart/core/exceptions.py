"""
readyset-chart — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do readyset-chart.

Objetivo:
- Permitir que Resolver, Assembler e Harness levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ChartErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Taxonomia:
- resolução: MissingRequiredField, InvalidValueType, InvalidEnumValue
- montagem: UnresolvedCrossReference
- validação: StructuralInvariantViolation

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Erros de resolução e montagem são fatais para a entrada que os produziu.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ChartException(Exception):
    """Base class para exceções internas do readyset-chart.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Resolução
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MissingRequiredField(ChartException):
    """Chave obrigatória ausente na configuração do operador."""

    @classmethod
    def for_key(cls, key: str) -> "MissingRequiredField":
        return cls(
            message=f"Campo obrigatório ausente: {key}",
            details={"key": key},
            hint=f"Declare '{key}' explicitamente nos values; não existe default para esta chave.",
        )

    @property
    def key(self) -> str:
        return self.details["key"]


@dataclass(frozen=True)
class InvalidValueType(ChartException):
    """Valor com tipo/formato incompatível com o declarado no schema."""

    @classmethod
    def for_key(cls, key: str, *, expected: str, actual: Any) -> "InvalidValueType":
        return cls(
            message=f"Valor inválido para '{key}': esperado {expected}, recebido {actual!r}",
            details={"key": key, "expected": expected, "actual": repr(actual)},
            hint=f"Ajuste '{key}' para {expected}.",
        )

    @property
    def key(self) -> str:
        return self.details["key"]

    @property
    def expected(self) -> str:
        return self.details["expected"]


@dataclass(frozen=True)
class InvalidEnumValue(ChartException):
    """Valor fora do conjunto fechado aceito por uma chave enum."""

    @classmethod
    def for_key(cls, key: str, *, allowed: Tuple[str, ...], actual: Any) -> "InvalidEnumValue":
        return cls(
            message=f"Valor fora do domínio para '{key}': {actual!r} (aceitos: {', '.join(allowed)})",
            details={"key": key, "allowed": list(allowed), "actual": repr(actual)},
            hint=f"Use um dos valores aceitos para '{key}'.",
        )

    @property
    def key(self) -> str:
        return self.details["key"]

    @property
    def allowed(self) -> List[str]:
        return list(self.details["allowed"])


# ---------------------------------------------------------------------------
# Montagem
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnresolvedCrossReference(ChartException):
    """Referência entre recursos que não pôde ser resolvida na montagem."""

    @classmethod
    def for_reference(cls, reference: str, *, required_by: str, hint: Optional[str] = None) -> "UnresolvedCrossReference":
        return cls(
            message=f"Referência não resolvida: {reference} (exigida por {required_by})",
            details={"reference": reference, "required_by": required_by},
            hint=hint,
        )

    @property
    def reference(self) -> str:
        return self.details["reference"]


# ---------------------------------------------------------------------------
# Validação
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StructuralInvariantViolation(ChartException):
    """Output renderizado viola uma invariante estrutural do harness."""

    @classmethod
    def for_rule(
        cls,
        rule: str,
        *,
        resource_pair: Tuple[str, ...],
        key_path: str,
        expected: Any,
        actual: Any,
    ) -> "StructuralInvariantViolation":
        return cls(
            message=f"[{rule}] {' <-> '.join(resource_pair)} em {key_path}: esperado {expected!r}, obtido {actual!r}",
            details={
                "rule": rule,
                "resource_pair": list(resource_pair),
                "key_path": key_path,
                "expected": expected,
                "actual": actual,
            },
        )

    @property
    def rule(self) -> str:
        return self.details["rule"]

    @property
    def resource_pair(self) -> Tuple[str, ...]:
        return tuple(self.details["resource_pair"])

    @property
    def key_path(self) -> str:
        return self.details["key_path"]

    @property
    def expected(self) -> Any:
        return self.details["expected"]

    @property
    def actual(self) -> Any:
        return self.details["actual"]
