# src/deployflow/core/modules/registry.py
"""
Registro estrutural de instâncias de módulo.

Este módulo define o `InstanceRegistry`, responsável por registrar
instâncias e validar a integridade estrutural do escopo antes de qualquer
resolução de referências ou planejamento.

O registry atua como uma camada de proteção antecipada, garantindo que:
    - cada instância possua um nome de deployment válido
    - não existam nomes duplicados entre irmãs
    - a ordem de declaração seja preservada explicitamente

Decisões arquiteturais:
    - Duplicidades são reportadas todas de uma vez
    - A ordem de registro é o desempate determinístico do planner

Limites explícitos:
    - Não resolve referências (ver graph.references)
    - Não planeja nem executa
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from deployflow.core.exceptions import DuplicateInstanceError

from .types import ModuleInstance


@dataclass
class InstanceRegistry:
    """Tabela de instâncias do escopo, indexada por nome e ordenada por declaração."""

    _instances: Dict[str, ModuleInstance] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def from_instances(cls, instances: Iterable[ModuleInstance]) -> "InstanceRegistry":
        registry = cls()
        duplicates: List[str] = []
        for instance in instances:
            if instance.name in registry._instances:
                if instance.name not in duplicates:
                    duplicates.append(instance.name)
                continue
            registry.add(instance)
        if duplicates:
            raise DuplicateInstanceError(
                f"Duplicate deployment name(s): {', '.join(duplicates)}",
                details={"instances": duplicates},
                hint="Nomes de deployment devem ser únicos entre instâncias irmãs",
            )
        return registry

    def add(self, instance: ModuleInstance) -> None:
        if instance.name in self._instances:
            raise DuplicateInstanceError(
                f"Duplicate deployment name: {instance.name}",
                details={"instances": [instance.name]},
            )
        self._instances[instance.name] = instance
        self._order.append(instance.name)

    def get(self, name: str) -> ModuleInstance:
        return self._instances[name]

    def __contains__(self, name: object) -> bool:
        return name in self._instances

    def __len__(self) -> int:
        return len(self._order)

    def names(self) -> List[str]:
        return list(self._order)

    def list(self) -> List[ModuleInstance]:
        return [self._instances[n] for n in self._order]

    def index(self, name: str) -> int:
        return self._order.index(name)
