# src/deployflow/core/modules/__init__.py
"""
# Modelo de módulos — deployflow

Este pacote define os **contratos canônicos** de um deployment composto
por módulos.

## Componentes

- **expressions**: `ValueExpr` (Literal, ParamRef, OutputRef e formas
  booleanas/condicionais) e utilitários de travessia
- **types**: `ParameterSpec`, `OutputSpec`, `ModuleDefinition`,
  `ModuleInstance`, `Deployment`, `InstanceStatus`, `InstanceResult`
- **parameters**: ligação e validação tipada de parâmetros
- **registry**: `InstanceRegistry` (unicidade e ordem de declaração)
- **context**: `RunContext` (eventos estruturados, warnings, Manifest)

## Invariantes

- Definições e instâncias são imutáveis
- Nomes de deployment são únicos entre irmãs
- Dependências nunca são declaradas à mão: são inferidas das expressões
"""

from .expressions import (
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
from .types import (
    Deployment,
    InstanceResult,
    InstanceStatus,
    ModuleDefinition,
    ModuleInstance,
    OutputSelection,
    OutputSpec,
    ParameterSpec,
)
from .context import RunContext
from .registry import InstanceRegistry

__all__ = [
    "AllOf",
    "AnyOf",
    "Conditional",
    "Equals",
    "Literal",
    "Not",
    "OutputRef",
    "ParamRef",
    "ValueExpr",
    "Deployment",
    "InstanceResult",
    "InstanceStatus",
    "ModuleDefinition",
    "ModuleInstance",
    "OutputSelection",
    "OutputSpec",
    "ParameterSpec",
    "RunContext",
    "InstanceRegistry",
]
