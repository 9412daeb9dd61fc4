# src/deployflow/core/graph/references.py
"""
Resolvedor de referências entre instâncias.

Extrai, das expressões de parâmetro e da condição efetiva de uma instância,
o conjunto de `OutputRef` do qual ela depende, validando que cada
referência aponta para uma instância existente do escopo (que não seja a
própria) e para um output declarado na definição do produtor.

Esta é a única etapa de inferência do sistema: dependências nunca são
declaradas à mão.

Limites explícitos:
    - Função pura: não constrói grafo, não avalia condições
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Tuple, Union

from deployflow.core.exceptions import PlanningError, UnknownModuleError, UnknownOutputError
from deployflow.core.modules.expressions import OutputRef, ValueExpr, output_refs
from deployflow.core.modules.registry import InstanceRegistry
from deployflow.core.modules.types import ModuleInstance

Scope = Union[InstanceRegistry, Mapping[str, ModuleInstance]]


def collect_output_refs(expr: ValueExpr) -> List[OutputRef]:
    """OutputRefs distintos da expressão, na ordem em que aparecem."""
    seen = set()
    refs: List[OutputRef] = []
    for ref in output_refs(expr):
        if ref not in seen:
            seen.add(ref)
            refs.append(ref)
    return refs


def _lookup(scope: Scope, name: str) -> ModuleInstance:
    if isinstance(scope, InstanceRegistry):
        return scope.get(name)
    return scope[name]


def references_by_source(instance: ModuleInstance) -> Dict[str, List[OutputRef]]:
    """Mapa origem (`param:<nome>` ou `condition`) → OutputRefs daquela origem."""
    return {source: collect_output_refs(expr) for source, expr in instance.expressions()}


def check_references(
    instance: ModuleInstance, scope: Scope
) -> Tuple[List[OutputRef], List[PlanningError]]:
    """Valida todas as referências de uma instância sem parar na primeira falha."""
    valid: List[OutputRef] = []
    failures: List[PlanningError] = []
    seen = set()

    for source, refs in references_by_source(instance).items():
        for ref in refs:
            if ref.instance == instance.name:
                failures.append(
                    UnknownModuleError(
                        f"Instance '{instance.name}' references its own output '{ref}'",
                        details={"instance": instance.name, "reference": str(ref), "source": source},
                        hint="Uma instância não pode consumir os próprios outputs",
                    )
                )
                continue
            if ref.instance not in scope:
                failures.append(
                    UnknownModuleError(
                        f"Instance '{instance.name}' references unknown module instance '{ref.instance}'",
                        details={"instance": instance.name, "reference": str(ref), "source": source},
                    )
                )
                continue
            producer = _lookup(scope, ref.instance)
            if not producer.definition.has_output(ref.output):
                failures.append(
                    UnknownOutputError(
                        f"Instance '{instance.name}' references undeclared output '{ref}'",
                        details={
                            "instance": instance.name,
                            "reference": str(ref),
                            "source": source,
                            "declared_outputs": producer.definition.output_names,
                        },
                    )
                )
                continue
            if ref not in seen:
                seen.add(ref)
                valid.append(ref)

    return valid, failures


def resolve_references(instance: ModuleInstance, scope: Scope) -> List[OutputRef]:
    """
    Conjunto de OutputRefs do qual a instância depende.

    Raises:
        UnknownModuleError: instância referenciada inexistente (ou a própria).
        UnknownOutputError: output não declarado na definição do produtor.
    """
    refs, failures = check_references(instance, scope)
    if failures:
        raise failures[0]
    return refs
