# src/deployflow/core/graph/conditions.py
"""
Avaliador de condições e de expressões de valor.

Uma condição é avaliada contra os valores disponíveis no momento:
parâmetros externos estão sempre disponíveis; outputs de módulos só estão
disponíveis depois que o produtor publicou. O resultado por instância é
tri-state:

    - True  → ativa
    - False → inativa (podada antes do planejamento)
    - None  → diferida: depende de outputs ainda não publicados e será
              reavaliada pelo coordenador quando os produtores concluírem

Operadores booleanos fazem curto-circuito da esquerda para a direita, de
modo que `AllOf(param falso, output)` é decidido sem o output.

Limites explícitos:
    - Não constrói grafo nem decide ordem
    - Sem efeitos colaterais
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Dict, Iterable, Mapping, Optional

from deployflow.core.exceptions import UnknownParameterError
from deployflow.core.modules.expressions import (
    AllOf,
    AnyOf,
    Conditional,
    Equals,
    Literal,
    Not,
    OutputRef,
    ParamRef,
    ValueExpr,
)
from deployflow.core.modules.types import ModuleInstance

OutputResolver = Callable[[OutputRef], Any]


class PendingValue(LookupError):
    """Sinal interno: a expressão precisa de um output ainda indisponível."""

    def __init__(self, ref: OutputRef):
        super().__init__(str(ref))
        self.ref = ref


def evaluate_expr(
    expr: ValueExpr,
    parameters: Mapping[str, Any],
    resolve_output: Optional[OutputResolver] = None,
) -> Any:
    """
    Avalia uma ValueExpr.

    `resolve_output` deve levantar KeyError para outputs indisponíveis;
    nesse caso (ou sem resolver) a avaliação levanta `PendingValue`.

    Raises:
        UnknownParameterError: ParamRef não presente em `parameters`.
        PendingValue: output necessário ainda não publicado.
    """
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, ParamRef):
        if expr.name not in parameters:
            raise UnknownParameterError(
                f"Unknown parameter '{expr.name}'",
                details={"parameter": expr.name},
            )
        return parameters[expr.name]

    if isinstance(expr, OutputRef):
        if resolve_output is None:
            raise PendingValue(expr)
        try:
            return resolve_output(expr)
        except KeyError:
            raise PendingValue(expr) from None

    if isinstance(expr, Not):
        return not bool(evaluate_expr(expr.operand, parameters, resolve_output))

    if isinstance(expr, (AllOf, AnyOf)):
        # operando pendente só adia o resultado se nenhum outro o decidir
        decisive = isinstance(expr, AnyOf)
        pending: Optional[PendingValue] = None
        for operand in expr.operands:
            try:
                value = bool(evaluate_expr(operand, parameters, resolve_output))
            except PendingValue as e:
                pending = pending or e
                continue
            if value is decisive:
                return decisive
        if pending is not None:
            raise pending
        return not decisive

    if isinstance(expr, Equals):
        left = evaluate_expr(expr.left, parameters, resolve_output)
        right = evaluate_expr(expr.right, parameters, resolve_output)
        return left == right

    if isinstance(expr, Conditional):
        if bool(evaluate_expr(expr.condition, parameters, resolve_output)):
            return evaluate_expr(expr.then, parameters, resolve_output)
        return evaluate_expr(expr.otherwise, parameters, resolve_output)

    raise TypeError(f"not a ValueExpr: {type(expr).__name__}")


def evaluate_condition(
    expr: Optional[ValueExpr],
    parameters: Mapping[str, Any],
    resolve_output: Optional[OutputResolver] = None,
) -> Optional[bool]:
    """True/False, ou None quando depende de output ainda indisponível."""
    if expr is None:
        return True
    try:
        return bool(evaluate_expr(expr, parameters, resolve_output))
    except PendingValue:
        return None


def evaluate_conditions(
    instances: Iterable[ModuleInstance],
    parameters: Mapping[str, Any],
    *,
    disabled: Collection[str] = (),
) -> Dict[str, Optional[bool]]:
    """Atividade de cada instância no Build (sem outputs disponíveis)."""
    activity: Dict[str, Optional[bool]] = {}
    for instance in instances:
        if instance.name in disabled:
            activity[instance.name] = False
            continue
        try:
            activity[instance.name] = evaluate_condition(instance.effective_condition(), parameters)
        except UnknownParameterError as e:
            raise UnknownParameterError(
                f"Condition of instance '{instance.name}' references unknown parameter "
                f"'{e.details.get('parameter')}'",
                details={"instance": instance.name, "parameter": e.details.get("parameter")},
            ) from e
    return activity
