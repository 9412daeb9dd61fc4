# src/deployflow/core/modules/parameters.py
"""
Ligação de valores concretos a ParameterSpecs.

Usado em dois momentos:
    - no Build, para os parâmetros de topo (defaults aplicados) e para a
      checagem estática das ligações de cada instância
    - na execução, para os parâmetros já resolvidos de cada instância,
      imediatamente antes da chamada ao Deployer

Todos os problemas são reportados de uma vez, nunca um por vez.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from deployflow.core.exceptions import ParameterBindingError

from .types import ModuleInstance, ParameterSpec


def bind_parameters(
    specs: Sequence[ParameterSpec],
    values: Optional[Mapping[str, Any]],
    *,
    scope: str,
) -> Dict[str, Any]:
    """
    Valida `values` contra `specs` e devolve o mapa final com defaults.

    Todo parâmetro declarado aparece no resultado: opcionais sem valor nem
    default ficam `None`.

    Raises:
        ParameterBindingError: parâmetros obrigatórios ausentes, nomes não
            declarados ou tipos incompatíveis.
    """
    values = dict(values or {})
    problems: List[str] = []
    bound: Dict[str, Any] = {}

    declared = {s.name for s in specs}
    for name in values:
        if name not in declared:
            problems.append(f"unknown parameter '{name}'")

    for spec in specs:
        if values.get(spec.name) is None and not spec.required:
            # opcional não informado (ou None explícito): default ou None
            bound[spec.name] = spec.default
        elif spec.name in values:
            value = values[spec.name]
            if not spec.accepts(value):
                problems.append(
                    f"parameter '{spec.name}' expects {spec.type}, got {type(value).__name__}"
                )
            bound[spec.name] = value
        else:
            problems.append(f"missing required parameter '{spec.name}'")

    if problems:
        raise ParameterBindingError(
            f"invalid parameters for '{scope}': " + "; ".join(problems),
            details={"instance": scope, "problems": problems},
            hint="Ajuste os valores ligados ou as declarações de parâmetro do módulo",
        )
    return bound


def binding_problems(instance: ModuleInstance) -> List[str]:
    """Checagem estática (sem valores): nomes desconhecidos e obrigatórios ausentes."""
    problems: List[str] = []
    definition = instance.definition
    for name in instance.params:
        if definition.parameter(name) is None:
            problems.append(f"unknown parameter '{name}' for module '{definition.name}'")
    for spec in definition.parameters:
        if spec.required and spec.name not in instance.params:
            problems.append(f"missing required parameter '{spec.name}'")
    return problems
