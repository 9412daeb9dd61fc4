# src/deployflow/core/engine/outputs.py
"""
Agregador de outputs de topo.

Depois de uma execução bem-sucedida, avalia as expressões de seleção
declaradas pelo deployment contra os outputs resolvidos. Condicionais são
avaliadas com curto-circuito: o ramo não escolhido nunca é resolvido, de
modo que `cond ? B.out : A.out` com `cond` falso devolve o valor de A mesmo
quando B foi pulado.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from deployflow.core.exceptions import OutputContractError, UnresolvedOutputError
from deployflow.core.graph.conditions import PendingValue, evaluate_expr
from deployflow.core.modules.expressions import OutputRef, ValueExpr, as_expr, is_expr

from .planner import DeploymentPlan
from .resolved import ResolvedOutputs

OutputSource = Union[ResolvedOutputs, Mapping[Tuple[str, str], Any]]


def _resolver(outputs: OutputSource) -> Callable[[OutputRef], Any]:
    if isinstance(outputs, ResolvedOutputs):
        return outputs.resolve

    def resolve(ref: OutputRef) -> Any:
        return outputs[(ref.instance, ref.output)]

    return resolve


def _select_one(name: str, expr: ValueExpr, parameters: Mapping[str, Any], resolve: Callable) -> Any:
    try:
        return evaluate_expr(expr, parameters, resolve)
    except PendingValue as e:
        raise UnresolvedOutputError(
            f"Output '{name}' selects '{e.ref}', but instance '{e.ref.instance}' was never deployed",
            details={"output": name, "instance": e.ref.instance, "reference": str(e.ref)},
            hint="Use uma expressão condicional com um ramo de fallback para instâncias condicionais",
        ) from None


def select_outputs(
    selection: Union[ValueExpr, Mapping[str, Any]],
    outputs: OutputSource,
    parameters: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    SelectOutputs: avalia uma expressão (ou um mapa nome → expressão).

    Raises:
        UnresolvedOutputError: a expressão escolhida referencia instância
            que nunca publicou outputs.
    """
    params = dict(parameters or {})
    resolve = _resolver(outputs)
    if is_expr(selection):
        return _select_one("<value>", selection, params, resolve)
    return {name: _select_one(name, as_expr(expr), params, resolve) for name, expr in selection.items()}


def select_plan_outputs(plan: DeploymentPlan, outputs: OutputSource) -> Dict[str, Any]:
    """Avalia os outputs de topo do plano e confere o tipo declarado de cada um."""
    values = select_outputs(plan.selection(), outputs, plan.parameters)
    for name, selection in plan.outputs.items():
        if not selection.spec.accepts(values[name]):
            raise OutputContractError(
                f"Output '{name}' expects {selection.spec.type}, got {type(values[name]).__name__}",
                details={"output": name, "type": selection.spec.type},
            )
    return values
