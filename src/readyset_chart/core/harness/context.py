# src/readyset_chart/core/harness/context.py
"""
Contexto de execução de uma run do harness.

Este módulo define o `RenderContext`, a estrutura que acompanha uma
execução da matriz de renderização e concentra o log estruturado de
eventos e os warnings não fatais de cada entrada.

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Eventos estruturados em memória, sem logger global
    - Estrutura simples e testável

Invariantes:
    - Eventos sempre incluem `run_id` e `entry`
    - Warnings são agrupados por `entry`
    - Registro de eventos é seguro sob execução paralela das entradas

Limites explícitos:
    - Não renderiza nem valida entradas
    - Não persiste dados automaticamente
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


@dataclass
class RenderContext:
    """
    Contexto compartilhado de uma run do harness.

    Decisões arquiteturais:
        - Entradas da matriz não compartilham estado entre si; o contexto
          apenas recebe eventos
        - A ordem dos eventos reflete a ordem de registro; consumidores que
          precisam de determinismo usam `events_for(entry)`
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, entry: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "entry": entry,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)

    def add_warning(self, *, entry: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(entry, []).append(message)

    def events_for(self, entry: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [e for e in self.events if e["entry"] == entry]
