# src/deployflow/core/graph/builder.py
"""
Construtor do grafo de dependências entre instâncias.

Aplica o resolvedor de referências a cada instância do escopo e constrói
um grafo dirigido produtor → consumidor.

Garantias:
    - exatamente um nó por instância (ordem de declaração preservada)
    - exatamente uma aresta por par (produtor, consumidor), qualquer que
      seja a multiplicidade das referências
    - arestas vindas de condições são arestas comuns (marcadas pela origem)

Falhas de resolução são agregadas e reportadas de uma vez em
`DanglingReferenceError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from deployflow.core.exceptions import DanglingReferenceError, PlanningError
from deployflow.core.modules.registry import InstanceRegistry
from deployflow.core.modules.types import ModuleInstance

from .references import check_references, references_by_source


@dataclass(frozen=True)
class DependencyEdge:
    """`producer` precisa ser implantado antes de `consumer`."""

    producer: str
    consumer: str
    sources: Tuple[str, ...] = ()

    @property
    def from_condition(self) -> bool:
        return "condition" in self.sources


@dataclass
class DependencyGraph:
    nodes: List[str]
    instances: Dict[str, ModuleInstance]
    edges: Dict[Tuple[str, str], DependencyEdge] = field(default_factory=dict)

    def producers(self, consumer: str) -> List[str]:
        found = {p for (p, c) in self.edges if c == consumer}
        return [n for n in self.nodes if n in found]

    def consumers(self, producer: str) -> List[str]:
        found = {c for (p, c) in self.edges if p == producer}
        return [n for n in self.nodes if n in found]

    def condition_producers(self, consumer: str) -> List[str]:
        found = {p for (p, c), e in self.edges.items() if c == consumer and e.from_condition}
        return [n for n in self.nodes if n in found]

    def edge(self, producer: str, consumer: str) -> DependencyEdge:
        return self.edges[(producer, consumer)]

    def edge_list(self) -> List[DependencyEdge]:
        order = {n: i for i, n in enumerate(self.nodes)}
        return sorted(self.edges.values(), key=lambda e: (order[e.consumer], order[e.producer]))

    def index(self, name: str) -> int:
        return self.nodes.index(name)


def build_graph(instances: Iterable[ModuleInstance]) -> DependencyGraph:
    """
    Constrói o grafo de dependências do escopo.

    Raises:
        DuplicateInstanceError: nomes de deployment repetidos.
        DanglingReferenceError: uma ou mais referências quebradas (todas listadas).
    """
    registry = instances if isinstance(instances, InstanceRegistry) else InstanceRegistry.from_instances(instances)

    failures: List[PlanningError] = []
    edges: Dict[Tuple[str, str], DependencyEdge] = {}

    for instance in registry.list():
        _, instance_failures = check_references(instance, registry)
        failures.extend(instance_failures)
        if instance_failures:
            continue
        for source, refs in references_by_source(instance).items():
            for ref in refs:
                key = (ref.instance, instance.name)
                existing = edges.get(key)
                if existing is None:
                    edges[key] = DependencyEdge(ref.instance, instance.name, (source,))
                elif source not in existing.sources:
                    edges[key] = DependencyEdge(ref.instance, instance.name, existing.sources + (source,))

    if failures:
        names = sorted({f.details.get("instance", "") for f in failures})
        raise DanglingReferenceError(
            f"{len(failures)} dangling reference(s) in instance(s): {', '.join(names)}",
            details={
                "instances": names,
                "references": [
                    {"instance": f.details.get("instance"), "reference": f.details.get("reference"), "error": str(f)}
                    for f in failures
                ],
            },
            hint="Corrija as referências a instâncias/outputs inexistentes",
            failures=failures,
        )

    return DependencyGraph(
        nodes=registry.names(),
        instances={i.name: i for i in registry.list()},
        edges=edges,
    )
