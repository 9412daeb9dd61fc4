# src/deployflow/core/engine/planner.py
"""
Planejador de deployment (DAG).

Este módulo valida a estrutura do deployment e produz um plano de execução
topológico determinístico das instâncias ativas.

O planner opera exclusivamente em nível estrutural, analisando:
    - parâmetros de topo e ligações de cada instância
    - referências inferidas entre instâncias (grafo de dependências)
    - formação de ciclos
    - atividade das instâncias (condições avaliadas antes do planejamento)

Princípios fundamentais:
    - O grafo deve formar um DAG; ciclo é erro de Build, nunca de runtime
    - Instâncias inativas são podadas antes da travessia
    - Erros são reportados de forma exaustiva sempre que possível
    - Nenhum efeito colateral: o Build é puro

Decisões arquiteturais:
    - Ciclos detectados por DFS de três cores (branco/cinza/preto); cada
      aresta de retorno produz o caminho completo do ciclo
    - Ordenação topológica de Kahn; empates resolvidos pela ordem de
      declaração das instâncias
    - Condições só podem ler outputs de produtores incondicionalmente ativos

Invariantes:
    - Toda aresta aponta para trás no plano (produtor antes do consumidor)
    - Nenhuma instância inativa aparece no plano
    - A mesma entrada produz sempre o mesmo plano

Limites explícitos:
    - Não executa instâncias
    - Não interage com o Deployer
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional, Tuple

from deployflow.core.config.hashing import compute_hash
from deployflow.core.exceptions import (
    CyclicDependencyError,
    DanglingReferenceError,
    InactiveDependencyError,
    ParameterBindingError,
    PlanningError,
    UnknownModuleError,
    UnknownOutputError,
    UnknownParameterError,
)
from deployflow.core.graph.builder import DependencyGraph, build_graph
from deployflow.core.graph.conditions import evaluate_conditions
from deployflow.core.graph.references import collect_output_refs
from deployflow.core.modules.expressions import ValueExpr, expr_to_dict, param_refs
from deployflow.core.modules.parameters import bind_parameters, binding_problems
from deployflow.core.modules.registry import InstanceRegistry
from deployflow.core.modules.types import Deployment, ModuleInstance, OutputSelection, ParameterSpec

_WHITE, _GRAY, _BLACK = 0, 1, 2


@dataclass(frozen=True)
class PlannedInstance:
    """Entrada do plano: instância ativa e seus produtores diretos."""

    name: str
    template: str
    producers: Tuple[str, ...] = ()
    deferred: bool = False


@dataclass(frozen=True)
class DeploymentPlan:
    """
    Plano validado: sequência de instâncias ativas em ordem topológica.

    A ordem linear é uma das possíveis; o contrato real é a ordem parcial
    dada por `producers` (usada pelo coordenador para paralelizar).
    """

    entries: Tuple[PlannedInstance, ...]
    instances: Mapping[str, ModuleInstance]
    parameters: Mapping[str, Any] = field(default_factory=dict)
    parameter_specs: Tuple[ParameterSpec, ...] = ()
    activity: Mapping[str, Optional[bool]] = field(default_factory=dict)
    skipped: Tuple[str, ...] = ()
    outputs: Mapping[str, OutputSelection] = field(default_factory=dict)

    @property
    def order(self) -> List[str]:
        return [e.name for e in self.entries]

    def entry(self, name: str) -> PlannedInstance:
        for e in self.entries:
            if e.name == name:
                return e
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: object) -> bool:
        return any(e.name == name for e in self.entries)

    def selection(self) -> Dict[str, ValueExpr]:
        return {name: sel.value for name, sel in self.outputs.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order,
            "instances": [
                {
                    "name": e.name,
                    "template": e.template,
                    "producers": list(e.producers),
                    "deferred": e.deferred,
                    "params": {
                        k: expr_to_dict(v) for k, v in self.instances[e.name].params.items()
                    },
                }
                for e in self.entries
            ],
            "skipped": list(self.skipped),
            "parameters": dict(self.parameters),
        }

    def plan_hash(self) -> str:
        return compute_hash(self.to_dict())


# ---------------------------------------------------------------------------
# Ciclos
# ---------------------------------------------------------------------------

def _canonical_cycle(cycle: List[str], order: Dict[str, int]) -> Tuple[str, ...]:
    body = cycle[:-1]
    start = min(range(len(body)), key=lambda i: order[body[i]])
    return tuple(body[start:] + body[:start])


def find_cycles(graph: DependencyGraph) -> List[List[str]]:
    """
    Todos os ciclos encontrados por DFS de três cores.

    A travessia segue arestas consumidor → produtor ("depende de"), partindo
    dos nós em ordem de declaração. Cada caminho retornado começa e termina
    no mesmo nó, ex.: ["a", "b", "a"].
    """
    order = {n: i for i, n in enumerate(graph.nodes)}
    color = {n: _WHITE for n in graph.nodes}
    cycles: List[List[str]] = []
    seen = set()

    for root in graph.nodes:
        if color[root] != _WHITE:
            continue
        color[root] = _GRAY
        path = [root]
        stack = [iter(graph.producers(root))]

        while stack:
            advanced = False
            for nxt in stack[-1]:
                if color[nxt] == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(iter(graph.producers(nxt)))
                    advanced = True
                    break
                if color[nxt] == _GRAY:
                    cycle = path[path.index(nxt):] + [nxt]
                    key = _canonical_cycle(cycle, order)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
            if not advanced:
                color[path.pop()] = _BLACK
                stack.pop()

    return cycles


def check_acyclic(graph: DependencyGraph) -> None:
    cycles = find_cycles(graph)
    if cycles:
        rendered = [" -> ".join(c) for c in cycles]
        raise CyclicDependencyError(
            f"Cyclic dependency detected: {'; '.join(rendered)}",
            details={"cycles": cycles, "instances": sorted({n for c in cycles for n in c})},
            hint="Quebre o ciclo removendo uma das referências entre as instâncias listadas",
        )


# ---------------------------------------------------------------------------
# Atividade
# ---------------------------------------------------------------------------

def check_active_dependencies(graph: DependencyGraph, activity: Mapping[str, Optional[bool]]) -> None:
    """
    Toda instância não-inativa só pode depender de produtores ativos.

    Condições são mais estritas: só podem ler outputs de produtores
    incondicionalmente ativos (atividade True no Build).
    """
    violations: List[Dict[str, str]] = []
    for consumer in graph.nodes:
        if activity.get(consumer) is False:
            continue
        for producer in graph.producers(consumer):
            edge = graph.edge(producer, consumer)
            state = activity.get(producer)
            if state is False:
                violations.append(
                    {"instance": consumer, "producer": producer, "reason": "inactive producer",
                     "via": ", ".join(edge.sources)}
                )
            elif state is None and edge.from_condition:
                violations.append(
                    {"instance": consumer, "producer": producer,
                     "reason": "condition reads output of a conditionally deployed producer",
                     "via": "condition"}
                )

    if violations:
        rendered = [f"{v['instance']} <- {v['producer']} ({v['reason']})" for v in violations]
        raise InactiveDependencyError(
            f"Active instance(s) depend on inactive producer(s): {'; '.join(rendered)}",
            details={"violations": violations},
            hint="Ative o produtor ou torne o consumidor condicional à mesma condição",
        )


# ---------------------------------------------------------------------------
# Ordenação
# ---------------------------------------------------------------------------

def topological_order(graph: DependencyGraph, active: Collection[str]) -> List[str]:
    """Kahn sobre o subgrafo ativo; empate → ordem de declaração."""
    order = {n: i for i, n in enumerate(graph.nodes)}
    active_set = set(active)

    incoming: Dict[str, int] = {}
    for n in graph.nodes:
        if n in active_set:
            incoming[n] = len([p for p in graph.producers(n) if p in active_set])

    ready = [(order[n], n) for n, count in incoming.items() if count == 0]
    heapq.heapify(ready)
    result: List[str] = []

    while ready:
        _, name = heapq.heappop(ready)
        result.append(name)
        for child in graph.consumers(name):
            if child not in active_set:
                continue
            incoming[child] -= 1
            if incoming[child] == 0:
                heapq.heappush(ready, (order[child], child))

    if len(result) != len(incoming):
        # check_acyclic já rejeita ciclos; mantido como guarda estrutural
        raise CyclicDependencyError(
            "Cyclic dependency detected among active instances",
            details={"cycles": [], "instances": sorted(set(incoming) - set(result))},
        )
    return result


def plan_deployment(
    graph: DependencyGraph,
    activity: Mapping[str, Optional[bool]],
    *,
    parameters: Optional[Mapping[str, Any]] = None,
    parameter_specs: Iterable[ParameterSpec] = (),
    outputs: Optional[Mapping[str, OutputSelection]] = None,
) -> DeploymentPlan:
    """
    Produz o plano a partir do grafo e da atividade já avaliada.

    Raises:
        CyclicDependencyError: ciclo no grafo (caminho completo reportado).
        InactiveDependencyError: consumidor ativo de produtor inativo.
    """
    check_acyclic(graph)
    check_active_dependencies(graph, activity)

    active = [n for n in graph.nodes if activity.get(n, True) is not False]
    ordered = topological_order(graph, active)

    entries = tuple(
        PlannedInstance(
            name=n,
            template=graph.instances[n].template,
            producers=tuple(graph.producers(n)),
            deferred=activity.get(n, True) is None,
        )
        for n in ordered
    )
    return DeploymentPlan(
        entries=entries,
        instances=dict(graph.instances),
        parameters=dict(parameters or {}),
        parameter_specs=tuple(parameter_specs),
        activity=dict(activity),
        skipped=tuple(n for n in graph.nodes if activity.get(n, True) is False),
        outputs=dict(outputs or {}),
    )


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def _check_bindings(registry: InstanceRegistry) -> None:
    problems: List[str] = []
    instances: List[str] = []
    for instance in registry.list():
        for problem in binding_problems(instance):
            problems.append(f"{instance.name}: {problem}")
            if instance.name not in instances:
                instances.append(instance.name)
    if problems:
        raise ParameterBindingError(
            f"Invalid parameter bindings in instance(s): {', '.join(instances)}",
            details={"instances": instances, "problems": problems},
            hint="Ligue todos os parâmetros obrigatórios e remova parâmetros não declarados",
        )


def _check_param_refs(deployment: Deployment, registry: InstanceRegistry) -> None:
    declared = {p.name for p in deployment.parameters}
    missing: List[Dict[str, str]] = []

    sources: List[Tuple[str, ValueExpr]] = []
    for instance in registry.list():
        for _, expr in instance.expressions():
            sources.append((instance.name, expr))
    for name, selection in deployment.outputs.items():
        sources.append((f"outputs.{name}", selection.value))

    for owner, expr in sources:
        for ref in param_refs(expr):
            if ref.name not in declared:
                entry = {"instance": owner, "parameter": ref.name}
                if entry not in missing:
                    missing.append(entry)

    if missing:
        rendered = [f"{m['instance']} -> {m['parameter']}" for m in missing]
        raise UnknownParameterError(
            f"Reference(s) to undeclared parameter(s): {'; '.join(rendered)}",
            details={"references": missing},
            hint="Declare o parâmetro no escopo de topo do deployment",
        )


def _check_output_selection(deployment: Deployment, registry: InstanceRegistry) -> None:
    failures: List[PlanningError] = []
    for name, selection in deployment.outputs.items():
        owner = f"outputs.{name}"
        for ref in collect_output_refs(selection.value):
            if ref.instance not in registry:
                failures.append(
                    UnknownModuleError(
                        f"Output '{name}' references unknown module instance '{ref.instance}'",
                        details={"instance": owner, "reference": str(ref)},
                    )
                )
            elif not registry.get(ref.instance).definition.has_output(ref.output):
                failures.append(
                    UnknownOutputError(
                        f"Output '{name}' references undeclared output '{ref}'",
                        details={"instance": owner, "reference": str(ref)},
                    )
                )
    if failures:
        raise DanglingReferenceError(
            f"{len(failures)} dangling reference(s) in top-level outputs",
            details={
                "instances": sorted({f.details["instance"] for f in failures}),
                "references": [
                    {"instance": f.details["instance"], "reference": f.details["reference"], "error": str(f)}
                    for f in failures
                ],
            },
            failures=failures,
        )


def build_plan(
    deployment: Deployment,
    parameters: Optional[Mapping[str, Any]] = None,
    *,
    disabled: Collection[str] = (),
) -> DeploymentPlan:
    """
    Build: valida o deployment inteiro e produz o plano.

    Etapas (todas antes de qualquer efeito colateral):
        1. liga os parâmetros de topo (defaults aplicados)
        2. unicidade de nomes e ligações estáticas das instâncias
        3. ParamRefs apontam para parâmetros declarados
        4. grafo de dependências (referências quebradas agregadas)
        5. condições avaliadas; instâncias em `disabled` ficam inativas
        6. ciclos, dependências inativas e ordenação topológica

    Raises:
        PlanningError: qualquer subclasse descrita no pacote de exceções.
    """
    bound = bind_parameters(deployment.parameters, parameters, scope="deployment")
    registry = InstanceRegistry.from_instances(deployment.instances)

    _check_bindings(registry)
    _check_param_refs(deployment, registry)

    graph = build_graph(registry)
    _check_output_selection(deployment, registry)

    # ciclos antes das condições: um ciclo é erro mesmo entre instâncias inativas
    check_acyclic(graph)
    activity = evaluate_conditions(registry.list(), bound, disabled=disabled)

    return plan_deployment(
        graph,
        activity,
        parameters=bound,
        parameter_specs=deployment.parameters,
        outputs=deployment.outputs,
    )
