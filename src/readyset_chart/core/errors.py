"""
readyset-chart — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros reportados pelo readyset-chart.
Erros fazem parte do contrato operacional do harness de validação e devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhuma decisão implícita é permitida.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import ChartException


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChartErrorPayload:
    """
    Payload canônico de erro do readyset-chart.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - fatal: indica se o erro aborta a renderização da entrada
      (resolução/montagem) ou é apenas reportado (validação)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    fatal: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Resolução
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
INVALID_VALUE_TYPE = "INVALID_VALUE_TYPE"
INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"

# Montagem
UNRESOLVED_CROSS_REFERENCE = "UNRESOLVED_CROSS_REFERENCE"

# Validação
STRUCTURAL_INVARIANT_VIOLATION = "STRUCTURAL_INVARIANT_VIOLATION"

# Harness
RENDER_EXECUTION_ERROR = "RENDER_EXECUTION_ERROR"
UNEXPECTED_OUTCOME = "UNEXPECTED_OUTCOME"

_TYPE_BY_EXCEPTION = {
    "MissingRequiredField": MISSING_REQUIRED_FIELD,
    "InvalidValueType": INVALID_VALUE_TYPE,
    "InvalidEnumValue": INVALID_ENUM_VALUE,
    "UnresolvedCrossReference": UNRESOLVED_CROSS_REFERENCE,
    "StructuralInvariantViolation": STRUCTURAL_INVARIANT_VIOLATION,
}


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def unexpected_outcome(
    *,
    entry: str,
    expected_error: Optional[str],
    actual_error: Optional[str],
) -> ChartErrorPayload:
    return ChartErrorPayload(
        type=UNEXPECTED_OUTCOME,
        message="Resultado da entrada diverge do erro esperado",
        details={
            "entry": entry,
            "expected_error": expected_error,
            "actual_error": actual_error,
        },
        hint="Revise a entrada da matriz ou o erro esperado declarado para ela.",
        fatal=False,
    )


def exception_to_payload(exc: Exception) -> ChartErrorPayload:
    """Converte exceções em ChartErrorPayload (serializável, acionável).

    Regras:
    - ChartException: já vem com message/details/hint; o tipo vem do catálogo.
    - Outras exceções: encapsular como RENDER_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, ChartException):
        name = exc.__class__.__name__
        return ChartErrorPayload(
            type=_TYPE_BY_EXCEPTION.get(name, name),
            message=str(exc) or "Erro de renderização",
            details=dict(exc.details or {}),
            hint=exc.hint,
            fatal=name != "StructuralInvariantViolation",
        )

    return ChartErrorPayload(
        type=RENDER_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante renderização",
        details={"exception_class": exc.__class__.__name__},
        hint="Verifique o log de eventos do harness e os values da entrada.",
    )
