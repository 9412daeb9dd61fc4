# src/deployflow/core/modules/expressions.py
"""
Expressões de valor (ValueExpr) do deployflow.

Uma ValueExpr descreve de onde vem o valor de um parâmetro, de uma
condição ou de um output de topo. É uma variante etiquetada, imutável e
puramente declarativa:

    - Literal(value)                    → valor constante
    - ParamRef(name)                    → parâmetro do escopo externo
    - OutputRef(instance, output)       → output de outra instância
    - Not / AllOf / AnyOf / Equals      → expressões booleanas de condição
    - Conditional(condition, then, otherwise) → seleção condicional

Dependências entre instâncias são inferidas estaticamente percorrendo
estas expressões (ver `deployflow.core.graph.references`), nunca pela
ordem de avaliação.

Limites explícitos:
    - Não avalia expressões (ver `deployflow.core.graph.conditions`)
    - Não faz parsing de linguagem de template
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Mapping, Tuple, Union


@dataclass(frozen=True)
class Literal:
    value: Any

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class ParamRef:
    name: str

    def __str__(self) -> str:
        return f"param:{self.name}"


@dataclass(frozen=True)
class OutputRef:
    """Referência ao output `output` da instância `instance`."""

    instance: str
    output: str

    def __str__(self) -> str:
        return f"{self.instance}.{self.output}"


@dataclass(frozen=True)
class Not:
    operand: "ValueExpr"


@dataclass(frozen=True)
class AllOf:
    operands: Tuple["ValueExpr", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", tuple(self.operands))


@dataclass(frozen=True)
class AnyOf:
    operands: Tuple["ValueExpr", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", tuple(self.operands))


@dataclass(frozen=True)
class Equals:
    left: "ValueExpr"
    right: "ValueExpr"


@dataclass(frozen=True)
class Conditional:
    """`condition ? then : otherwise` — só o ramo escolhido é resolvido."""

    condition: "ValueExpr"
    then: "ValueExpr"
    otherwise: "ValueExpr"


ValueExpr = Union[Literal, ParamRef, OutputRef, Not, AllOf, AnyOf, Equals, Conditional]

EXPRESSION_TYPES = (Literal, ParamRef, OutputRef, Not, AllOf, AnyOf, Equals, Conditional)


def is_expr(value: Any) -> bool:
    return isinstance(value, EXPRESSION_TYPES)


def as_expr(value: Any) -> ValueExpr:
    """Valores Python crus viram Literal; expressões passam intactas."""
    if is_expr(value):
        return value
    return Literal(value)


def children(expr: ValueExpr) -> Tuple[ValueExpr, ...]:
    if isinstance(expr, Not):
        return (expr.operand,)
    if isinstance(expr, (AllOf, AnyOf)):
        return tuple(expr.operands)
    if isinstance(expr, Equals):
        return (expr.left, expr.right)
    if isinstance(expr, Conditional):
        return (expr.condition, expr.then, expr.otherwise)
    return ()


def walk(expr: ValueExpr) -> Iterator[ValueExpr]:
    """Percorre a expressão em pré-ordem (ordem de declaração preservada)."""
    yield expr
    for child in children(expr):
        yield from walk(child)


def output_refs(expr: ValueExpr) -> List[OutputRef]:
    return [e for e in walk(expr) if isinstance(e, OutputRef)]


def param_refs(expr: ValueExpr) -> List[ParamRef]:
    return [e for e in walk(expr) if isinstance(e, ParamRef)]


def transform(expr: ValueExpr, fn: Callable[[ValueExpr], ValueExpr]) -> ValueExpr:
    """Reconstrói a expressão de baixo para cima aplicando `fn` a cada nó."""
    if isinstance(expr, Not):
        rebuilt: ValueExpr = Not(transform(expr.operand, fn))
    elif isinstance(expr, AllOf):
        rebuilt = AllOf(tuple(transform(o, fn) for o in expr.operands))
    elif isinstance(expr, AnyOf):
        rebuilt = AnyOf(tuple(transform(o, fn) for o in expr.operands))
    elif isinstance(expr, Equals):
        rebuilt = Equals(transform(expr.left, fn), transform(expr.right, fn))
    elif isinstance(expr, Conditional):
        rebuilt = Conditional(
            transform(expr.condition, fn),
            transform(expr.then, fn),
            transform(expr.otherwise, fn),
        )
    else:
        rebuilt = expr
    return fn(rebuilt)


def substitute_params(expr: ValueExpr, bindings: Mapping[str, ValueExpr]) -> ValueExpr:
    """Substitui ParamRef pelos valores ligados (usado em condições de definição)."""

    def _swap(node: ValueExpr) -> ValueExpr:
        if isinstance(node, ParamRef) and node.name in bindings:
            return bindings[node.name]
        return node

    return transform(expr, _swap)


def expr_to_dict(expr: ValueExpr) -> Any:
    """Forma serializável, usada no plano e no hash do plano."""
    if isinstance(expr, Literal):
        return {"literal": expr.value}
    if isinstance(expr, ParamRef):
        return {"param": expr.name}
    if isinstance(expr, OutputRef):
        return {"output": str(expr)}
    if isinstance(expr, Not):
        return {"not": expr_to_dict(expr.operand)}
    if isinstance(expr, AllOf):
        return {"all": [expr_to_dict(o) for o in expr.operands]}
    if isinstance(expr, AnyOf):
        return {"any": [expr_to_dict(o) for o in expr.operands]}
    if isinstance(expr, Equals):
        return {"equals": [expr_to_dict(expr.left), expr_to_dict(expr.right)]}
    if isinstance(expr, Conditional):
        return {
            "if": expr_to_dict(expr.condition),
            "then": expr_to_dict(expr.then),
            "else": expr_to_dict(expr.otherwise),
        }
    raise TypeError(f"not a ValueExpr: {type(expr).__name__}")
