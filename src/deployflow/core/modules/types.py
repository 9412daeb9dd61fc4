# src/deployflow/core/modules/types.py
"""
Tipos canônicos do modelo de módulos do deployflow.

Este módulo define as estruturas imutáveis que descrevem um deployment:

    - ParameterSpec / OutputSpec → contratos tipados de entrada e saída
    - ModuleDefinition           → template reutilizável (carregado uma vez)
    - ModuleInstance             → uso nomeado de uma definição num deployment
    - OutputSelection            → output de topo (spec + expressão de seleção)
    - Deployment                 → escopo de topo (parâmetros, instâncias, outputs)
    - InstanceStatus / InstanceResult → estado final de cada instância no run

Princípios fundamentais:
    - Definições e instâncias são imutáveis após construídas
    - Valores resolvidos nunca vivem nestes tipos (ver ResolvedOutputs)
    - A ordem de declaração é preservada e usada como desempate do planner

Limites explícitos:
    - Não resolve referências
    - Não planeja nem executa deployments
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from deployflow.core.exceptions import DefinitionError

from .expressions import AllOf, Literal, ValueExpr, as_expr, param_refs, substitute_params


PARAMETER_TYPES = ("string", "int", "number", "bool", "object", "array", "any")


def value_matches_type(value: Any, type_name: str) -> bool:
    """Checagem estrutural de tipo (bool nunca é aceito como número)."""
    if type_name == "any":
        return True
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "bool":
        return isinstance(value, bool)
    if type_name == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_name == "object":
        return isinstance(value, MappingABC)
    if type_name == "array":
        return isinstance(value, (list, tuple))
    return False


def _check_type_name(owner: str, type_name: str) -> None:
    if type_name not in PARAMETER_TYPES:
        raise DefinitionError(
            f"{owner}: unsupported type '{type_name}'",
            details={"owner": owner, "type": type_name, "allowed": list(PARAMETER_TYPES)},
        )


def _check_name(kind: str, name: Any) -> None:
    if not isinstance(name, str) or not name.strip():
        raise DefinitionError(f"{kind} name must be a non-empty string", details={"kind": kind})


@dataclass(frozen=True)
class ParameterSpec:
    """Parâmetro declarado. Um parâmetro com default nunca é obrigatório."""

    name: str
    type: str = "any"
    required: bool = True
    default: Any = None

    def __post_init__(self) -> None:
        _check_name("parameter", self.name)
        _check_type_name(f"parameter '{self.name}'", self.type)
        if self.default is not None:
            object.__setattr__(self, "required", False)
            if not value_matches_type(self.default, self.type):
                raise DefinitionError(
                    f"default of parameter '{self.name}' is not of type {self.type}",
                    details={"parameter": self.name, "type": self.type},
                )

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def accepts(self, value: Any) -> bool:
        return value_matches_type(value, self.type)


@dataclass(frozen=True)
class OutputSpec:
    name: str
    type: str = "any"

    def __post_init__(self) -> None:
        _check_name("output", self.name)
        _check_type_name(f"output '{self.name}'", self.type)

    def accepts(self, value: Any) -> bool:
        return value_matches_type(value, self.type)


def _unique(kind: str, owner: str, names: List[str]) -> None:
    seen = set()
    for n in names:
        if n in seen:
            raise DefinitionError(
                f"duplicate {kind} '{n}' in '{owner}'",
                details={"owner": owner, kind: n},
            )
        seen.add(n)


@dataclass(frozen=True)
class ModuleDefinition:
    """
    Definição estática de um módulo: contrato de parâmetros/outputs e,
    opcionalmente, uma condição expressa sobre os próprios parâmetros.

    Invariantes:
        - Nomes de parâmetros e outputs são únicos na definição
        - A condição de definição só referencia parâmetros declarados
    """

    name: str
    template: str
    parameters: Tuple[ParameterSpec, ...] = ()
    outputs: Tuple[OutputSpec, ...] = ()
    condition: Optional[ValueExpr] = None

    def __post_init__(self) -> None:
        _check_name("module definition", self.name)
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        _unique("parameter", self.name, [p.name for p in self.parameters])
        _unique("output", self.name, [o.name for o in self.outputs])
        if self.condition is not None:
            object.__setattr__(self, "condition", as_expr(self.condition))
            declared = set(self.parameter_names)
            for ref in param_refs(self.condition):
                if ref.name not in declared:
                    raise DefinitionError(
                        f"condition of module '{self.name}' references undeclared parameter '{ref.name}'",
                        details={"module": self.name, "parameter": ref.name},
                    )

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def output_names(self) -> List[str]:
        return [o.name for o in self.outputs]

    def parameter(self, name: str) -> Optional[ParameterSpec]:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def output(self, name: str) -> Optional[OutputSpec]:
        for o in self.outputs:
            if o.name == name:
                return o
        return None

    def has_output(self, name: str) -> bool:
        return self.output(name) is not None


@dataclass(frozen=True)
class ModuleInstance:
    """
    Uma definição ligada a um nome de deployment e a expressões de parâmetro.

    `condition` é avaliada no escopo externo (parâmetros de topo e outputs de
    outras instâncias). A condição efetiva combina a condição da instância com
    a condição da definição, esta última com os parâmetros substituídos pelas
    expressões ligadas nesta instância.
    """

    name: str
    definition: ModuleDefinition
    params: Mapping[str, Any] = field(default_factory=dict)
    condition: Optional[ValueExpr] = None

    def __post_init__(self) -> None:
        _check_name("module instance", self.name)
        object.__setattr__(self, "params", {k: as_expr(v) for k, v in dict(self.params).items()})
        if self.condition is not None:
            object.__setattr__(self, "condition", as_expr(self.condition))

    @property
    def template(self) -> str:
        return self.definition.template

    def bound_expressions(self) -> Dict[str, ValueExpr]:
        """Expressões ligadas mais defaults da definição, na ordem declarada."""
        bound: Dict[str, ValueExpr] = {}
        for spec in self.definition.parameters:
            if spec.name in self.params:
                bound[spec.name] = self.params[spec.name]
            elif spec.has_default:
                bound[spec.name] = Literal(spec.default)
        for name, expr in self.params.items():
            bound.setdefault(name, expr)
        return bound

    def effective_condition(self) -> Optional[ValueExpr]:
        parts: List[ValueExpr] = []
        if self.condition is not None:
            parts.append(self.condition)
        if self.definition.condition is not None:
            # escopo fechado: todo parâmetro declarado é substituído (ligado, default ou None)
            scope = {
                spec.name: self.params.get(spec.name, Literal(spec.default))
                for spec in self.definition.parameters
            }
            parts.append(substitute_params(self.definition.condition, scope))
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return AllOf(tuple(parts))

    def expressions(self) -> Iterator[Tuple[str, ValueExpr]]:
        """Pares (origem, expressão) alimentando esta instância."""
        for name, expr in self.params.items():
            yield f"param:{name}", expr
        cond = self.effective_condition()
        if cond is not None:
            yield "condition", cond


@dataclass(frozen=True)
class OutputSelection:
    spec: OutputSpec
    value: ValueExpr

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", as_expr(self.value))


@dataclass(frozen=True)
class Deployment:
    """Escopo de topo: parâmetros, definições, instâncias e outputs selecionados."""

    parameters: Tuple[ParameterSpec, ...] = ()
    definitions: Tuple[ModuleDefinition, ...] = ()
    instances: Tuple[ModuleInstance, ...] = ()
    outputs: Mapping[str, OutputSelection] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "definitions", tuple(self.definitions))
        object.__setattr__(self, "instances", tuple(self.instances))
        object.__setattr__(self, "outputs", dict(self.outputs))
        _unique("parameter", "deployment", [p.name for p in self.parameters])

    def definition(self, name: str) -> ModuleDefinition:
        for d in self.definitions:
            if d.name == name:
                return d
        raise KeyError(name)

    def selection(self) -> Dict[str, ValueExpr]:
        return {name: sel.value for name, sel in self.outputs.items()}


class InstanceStatus(str, Enum):
    """
    Estados finais de uma instância no run.

    Valores textuais estáveis (persistidos no Manifest):
        - SUCCESS: Deployer concluiu e outputs foram publicados
        - SKIPPED: condição diferida avaliou como falsa
        - FAILED: Deployer ou resolução de parâmetros falhou
        - CANCELLED: não iniciada porque o run foi cancelado (fail-fast)
    """
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class InstanceResult:
    """Resultado imutável do processamento de uma instância."""

    instance: str
    status: InstanceStatus
    summary: str
    outputs: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
