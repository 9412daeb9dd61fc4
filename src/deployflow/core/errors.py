"""
deployflow — Estruturas canônicas de erro (v1)

Este módulo define o padrão canônico de erros serializáveis do deployflow.
Erros são artefatos do run (resultados por instância e Manifest) e devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum stack trace cru é exposto ao operador.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import DeployflowException, ExecutionError


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do deployflow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Planejamento
PLANNING_DUPLICATE_INSTANCE = "PLANNING_DUPLICATE_INSTANCE"
PLANNING_DANGLING_REFERENCE = "PLANNING_DANGLING_REFERENCE"
PLANNING_UNKNOWN_PARAMETER = "PLANNING_UNKNOWN_PARAMETER"
PLANNING_PARAMETER_BINDING = "PLANNING_PARAMETER_BINDING"
PLANNING_CYCLIC_DEPENDENCY = "PLANNING_CYCLIC_DEPENDENCY"
PLANNING_INACTIVE_DEPENDENCY = "PLANNING_INACTIVE_DEPENDENCY"

# Execução
EXECUTION_DEPLOYER_FAILED = "EXECUTION_DEPLOYER_FAILED"
EXECUTION_OUTPUT_CONTRACT = "EXECUTION_OUTPUT_CONTRACT"
EXECUTION_UNRESOLVED_OUTPUT = "EXECUTION_UNRESOLVED_OUTPUT"

# Definições
DEFINITION_INVALID = "DEFINITION_INVALID"

_CODES = {
    "DuplicateInstanceError": PLANNING_DUPLICATE_INSTANCE,
    "DanglingReferenceError": PLANNING_DANGLING_REFERENCE,
    "UnknownModuleError": PLANNING_DANGLING_REFERENCE,
    "UnknownOutputError": PLANNING_DANGLING_REFERENCE,
    "UnknownParameterError": PLANNING_UNKNOWN_PARAMETER,
    "ParameterBindingError": PLANNING_PARAMETER_BINDING,
    "CyclicDependencyError": PLANNING_CYCLIC_DEPENDENCY,
    "InactiveDependencyError": PLANNING_INACTIVE_DEPENDENCY,
    "ExecutionError": EXECUTION_DEPLOYER_FAILED,
    "OutputContractError": EXECUTION_OUTPUT_CONTRACT,
    "UnresolvedOutputError": EXECUTION_UNRESOLVED_OUTPUT,
    "DefinitionError": DEFINITION_INVALID,
}


def error_code_for(exc: BaseException) -> str:
    """Código estável para uma exceção (fallback: falha do Deployer)."""
    for klass in type(exc).__mro__:
        code = _CODES.get(klass.__name__)
        if code is not None:
            return code
    return EXECUTION_DEPLOYER_FAILED


def exception_to_error(exc: BaseException, *, instance: Optional[str] = None) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - DeployflowException: já vem com message/details/hint.
    - ExecutionError: o payload descreve a causa encapsulada.
    - Outras exceções: encapsular como falha do Deployer sem expor stack trace.
    """
    if isinstance(exc, ExecutionError) and exc.cause is not None:
        exc = exc.cause

    if isinstance(exc, DeployflowException):
        details = dict(exc.details or {})
        if instance is not None:
            details.setdefault("instance", instance)
        return ErrorPayload(
            type=error_code_for(exc),
            message=str(exc) or "Erro de execução",
            details=details,
            hint=exc.hint,
        )

    return ErrorPayload(
        type=EXECUTION_DEPLOYER_FAILED,
        message=str(exc) or "Erro inesperado durante o deploy",
        details={
            "instance": instance,
            "exception_class": exc.__class__.__name__,
        },
        hint="Verifique o log do Deployer para a instância indicada",
    )
