"""
Render-and-Validate Harness do readyset-chart.

Matriz de entradas, regras estruturais, execução e relatório.
"""

from .context import RenderContext
from .harness import EntryResult, EntryStatus, Harness, HarnessReport, Render, render
from .matrix import MatrixEntry, default_matrix
from .report import load_report, save_report
from .rules import DEFAULT_RULES, Rule

__all__ = [
    "DEFAULT_RULES",
    "EntryResult",
    "EntryStatus",
    "Harness",
    "HarnessReport",
    "MatrixEntry",
    "Render",
    "RenderContext",
    "Rule",
    "default_matrix",
    "load_report",
    "render",
    "save_report",
]
