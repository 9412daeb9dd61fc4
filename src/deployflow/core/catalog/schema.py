"""
Schema canônico — documento de deployment v1.

Forma do documento (YAML preferencial, JSON alternativo):

    parameters:
      env: {type: string, default: dev}
      replicas: int
    definitions:
      network: modules/network.yaml      # arquivo de definição
      app:
        template: registry/app@1.2
        parameters: {subnet: string}
        outputs: {url: string}
    instances:
      - name: net
        module: network
      - name: web
        module: app
        params: {subnet: {output: net.subnet_id}}
        condition: {equals: [{param: env}, prod]}
    outputs:
      url: {type: string, value: {output: web.url}}

Expressões de valor:
    - escalares e listas são literais
    - mappings de uma chave são operadores: `param`, `output`
      ("instancia.output"), `not`, `all`, `any`, `equals`, `literal`
    - `if`/`then`/`else` formam a expressão condicional
    - `literal` escapa mappings que devem ser valores

Esta implementação evita dependências de validação externas (ex.:
Pydantic) e produz diretamente o modelo de `deployflow.core.modules`.
A montagem do documento completo fica em `loader.py`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple

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
from deployflow.core.modules.types import ModuleDefinition, OutputSpec, ParameterSpec

from .errors import DocumentValidationError

_OPERATORS = {"param", "output", "not", "all", "any", "equals", "literal"}
_CONDITIONAL_KEYS = {"if", "then", "else"}
_DEFINITION_KEYS = {"template", "parameters", "outputs", "condition"}


class TemplateLoader(Protocol):
    """Resolve uma referência de definição (`definitions.<nome>`) em ModuleDefinition."""

    def load(self, ref: str, *, name: Optional[str] = None) -> ModuleDefinition:
        ...


def _is_non_empty_str(x: Any) -> bool:
    return isinstance(x, str) and bool(x.strip())


def _expect(cond: bool, msg: str, where: str) -> None:
    if not cond:
        raise DocumentValidationError(msg, details={"where": where})


# ---------------------------------------------------------------------------
# Expressões
# ---------------------------------------------------------------------------

def decode_expr(raw: Any, where: str = "value") -> ValueExpr:
    """Converte a forma serializada de uma expressão em ValueExpr."""
    if not isinstance(raw, dict):
        return Literal(raw)

    keys = set(raw)
    if keys == _CONDITIONAL_KEYS:
        return Conditional(
            condition=decode_expr(raw["if"], f"{where}.if"),
            then=decode_expr(raw["then"], f"{where}.then"),
            otherwise=decode_expr(raw["else"], f"{where}.else"),
        )

    _expect(
        len(keys) == 1 and keys <= _OPERATORS,
        f"{where}: mapping is not an expression; wrap literal mappings in {{literal: ...}}",
        where,
    )
    (op, arg), = raw.items()

    if op == "literal":
        return Literal(arg)
    if op == "param":
        _expect(_is_non_empty_str(arg), f"{where}.param must be a parameter name", where)
        return ParamRef(arg)
    if op == "output":
        _expect(
            isinstance(arg, str) and arg.count(".") >= 1 and all(arg.split(".", 1)),
            f"{where}.output must look like 'instance.output', got {arg!r}",
            where,
        )
        instance, output = arg.split(".", 1)
        return OutputRef(instance, output)
    if op == "not":
        return Not(decode_expr(arg, f"{where}.not"))
    if op in ("all", "any"):
        _expect(isinstance(arg, list), f"{where}.{op} must be a list", where)
        operands = [decode_expr(x, f"{where}.{op}[{i}]") for i, x in enumerate(arg)]
        return AllOf(operands) if op == "all" else AnyOf(operands)

    _expect(isinstance(arg, list) and len(arg) == 2, f"{where}.equals must be a list of two values", where)
    return Equals(decode_expr(arg[0], f"{where}.equals[0]"), decode_expr(arg[1], f"{where}.equals[1]"))


# ---------------------------------------------------------------------------
# Especificações
# ---------------------------------------------------------------------------

def _spec_fields(raw: Any, where: str) -> Dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, str):
        return {"type": raw}
    _expect(isinstance(raw, dict), f"{where} must be a type name or a mapping", where)
    return dict(raw)


def parse_parameters(raw: Any, where: str) -> Tuple[ParameterSpec, ...]:
    if raw is None:
        return ()
    _expect(isinstance(raw, dict), f"{where} must be a mapping of name -> spec", where)
    specs: List[ParameterSpec] = []
    for name, spec in raw.items():
        fields = _spec_fields(spec, f"{where}.{name}")
        unknown = set(fields) - {"type", "required", "default"}
        _expect(not unknown, f"{where}.{name}: unknown keys {sorted(unknown)}", where)
        specs.append(
            ParameterSpec(
                name=name,
                type=fields.get("type", "any"),
                required=fields.get("required", "default" not in fields),
                default=fields.get("default"),
            )
        )
    return tuple(specs)


def parse_outputs(raw: Any, where: str) -> Tuple[OutputSpec, ...]:
    if raw is None:
        return ()
    _expect(isinstance(raw, dict), f"{where} must be a mapping of name -> type", where)
    specs: List[OutputSpec] = []
    for name, spec in raw.items():
        fields = _spec_fields(spec, f"{where}.{name}")
        _expect(set(fields) <= {"type"}, f"{where}.{name}: only 'type' is allowed", where)
        specs.append(OutputSpec(name=name, type=fields.get("type", "any")))
    return tuple(specs)


def parse_definition(name: str, data: Any, where: Optional[str] = None) -> ModuleDefinition:
    """Valida e materializa uma definição de módulo."""
    where = where or f"definitions.{name}"
    _expect(isinstance(data, dict), f"{where} must be a mapping", where)
    unknown = set(data) - _DEFINITION_KEYS - {"name"}
    _expect(not unknown, f"{where}: unknown keys {sorted(unknown)}", where)
    _expect(_is_non_empty_str(data.get("template")), f"{where}.template is required", where)

    condition = data.get("condition")
    return ModuleDefinition(
        name=name,
        template=data["template"],
        parameters=parse_parameters(data.get("parameters"), f"{where}.parameters"),
        outputs=parse_outputs(data.get("outputs"), f"{where}.outputs"),
        condition=None if condition is None else decode_expr(condition, f"{where}.condition"),
    )

