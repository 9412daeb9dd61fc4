# src/deployflow/core/modules/context.py
"""
Contexto de execução compartilhado de um run de deployment.

Este módulo define o `RunContext`, a estrutura canônica que acompanha uma
invocação do engine e concentra a observabilidade do run:

    - identidade da execução (run_id, created_at)
    - configuração efetiva (defaults + local deep-merge)
    - log estruturado de eventos (por instância)
    - warnings não fatais por instância
    - Manifest opcional para rastreabilidade forense

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Logs são eventos estruturados, não texto livre
    - Escrita segura a partir dos workers do coordenador

Limites explícitos:
    - Não armazena outputs resolvidos (ver ResolvedOutputs)
    - Não executa instâncias
    - Não persiste dados automaticamente
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class RunContext:
    """Contexto de um run: config, eventos, warnings e Manifest opcional."""

    run_id: str
    created_at: datetime
    config: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    manifest: Optional[Any] = None

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, instance: Optional[str], level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "instance": instance,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)

    def add_warning(self, *, instance: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(instance, []).append(message)

    def warnings_for(self, instance: str) -> List[str]:
        with self._lock:
            return list(self.warnings.get(instance, []))
