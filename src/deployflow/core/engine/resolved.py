# src/deployflow/core/engine/resolved.py
"""
ResolvedOutputs — único estado mutável compartilhado de um run.

Mapeia (instância, output) → valor concreto. Cada instância publica seus
outputs exatamente uma vez, de forma atômica; leitores nunca observam uma
publicação parcial. Leitores podem bloquear em `wait_for` até a publicação
(condition variable, sem polling).
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from deployflow.core.modules.expressions import OutputRef


class ResolvedOutputs:
    """Store write-once por instância, seguro entre threads."""

    def __init__(self) -> None:
        self._values: Dict[str, Dict[str, Any]] = {}
        self._order: List[str] = []
        self._cond = threading.Condition()

    def publish(self, instance: str, outputs: Mapping[str, Any]) -> None:
        with self._cond:
            if instance in self._values:
                raise ValueError(f"outputs of '{instance}' were already published")
            self._values[instance] = dict(outputs)
            self._order.append(instance)
            self._cond.notify_all()

    def wait_for(self, instance: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Bloqueia até `instance` publicar; TimeoutError se `timeout` expirar."""
        with self._cond:
            if not self._cond.wait_for(lambda: instance in self._values, timeout=timeout):
                raise TimeoutError(f"outputs of '{instance}' were not published in time")
            return dict(self._values[instance])

    def has(self, instance: str) -> bool:
        with self._cond:
            return instance in self._values

    def get(self, instance: str, output: str) -> Any:
        with self._cond:
            return self._values[instance][output]

    def resolve(self, ref: OutputRef) -> Any:
        """Resolver para `evaluate_expr`; KeyError se indisponível."""
        return self.get(ref.instance, ref.output)

    def for_instance(self, instance: str) -> Dict[str, Any]:
        with self._cond:
            return dict(self._values[instance])

    def instances(self) -> List[str]:
        """Instâncias publicadas, na ordem de publicação."""
        with self._cond:
            return list(self._order)

    def as_dict(self) -> Dict[Tuple[str, str], Any]:
        with self._cond:
            return {
                (instance, name): value
                for instance, values in self._values.items()
                for name, value in values.items()
            }

    def __getitem__(self, key: Tuple[str, str]) -> Any:
        instance, output = key
        return self.get(instance, output)

    def __contains__(self, key: object) -> bool:
        with self._cond:
            if isinstance(key, tuple) and len(key) == 2:
                return key[0] in self._values and key[1] in self._values[key[0]]
            return key in self._values

    def __len__(self) -> int:
        with self._cond:
            return sum(len(v) for v in self._values.values())

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.as_dict())

    def __repr__(self) -> str:
        return f"ResolvedOutputs(instances={self.instances()!r})"
