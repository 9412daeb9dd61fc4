"""
deployflow — Exceções canônicas (v1)

Este módulo define as exceções tipadas do deployflow.

Objetivo:
- Permitir que planner e coordenador levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Taxonomia:
- PlanningError  → detectado antes de qualquer efeito colateral
- ExecutionError → falha de uma instância durante a execução do plano
- UnresolvedOutputError → seleção de output aponta para instância não executada

Regras:
- Toda exceção identifica a instância ofensora pelo nome de deployment.
- `details` carrega apenas dados estruturados (serializáveis).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(eq=False)
class DeployflowException(Exception):
    """Base class para exceções internas do deployflow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    - Não congelar: o interpretador atribui `__traceback__` ao propagar
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Definições / documentos
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class DefinitionError(DeployflowException):
    """Definição de módulo, instância ou documento de deployment malformado."""


# ---------------------------------------------------------------------------
# Planejamento
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class PlanningError(DeployflowException):
    """Erro estrutural detectado durante o Build (nenhuma execução ocorre)."""


@dataclass(eq=False)
class DuplicateInstanceError(PlanningError):
    """Dois ou mais irmãos declaram o mesmo nome de deployment."""


@dataclass(eq=False)
class UnknownModuleError(PlanningError):
    """OutputRef aponta para instância inexistente no escopo (ou para si mesma)."""

    @property
    def instance(self) -> str:
        return self.details.get("instance", "")


@dataclass(eq=False)
class UnknownOutputError(PlanningError):
    """OutputRef aponta para output não declarado na definição do produtor."""

    @property
    def instance(self) -> str:
        return self.details.get("instance", "")


@dataclass(eq=False)
class DanglingReferenceError(PlanningError):
    """Agrega todas as referências quebradas encontradas em uma única passada."""

    failures: List[PlanningError] = field(default_factory=list)


@dataclass(eq=False)
class UnknownParameterError(PlanningError):
    """ParamRef aponta para parâmetro de topo não declarado."""


@dataclass(eq=False)
class ParameterBindingError(PlanningError):
    """Parâmetros ausentes, desconhecidos ou com tipo incompatível."""

    @property
    def problems(self) -> List[str]:
        return list(self.details.get("problems", []))


@dataclass(eq=False)
class CyclicDependencyError(PlanningError):
    """O grafo de dependências contém ao menos um ciclo."""

    @property
    def path(self) -> List[str]:
        cycles = self.details.get("cycles") or [[]]
        return list(cycles[0])

    @property
    def cycles(self) -> List[List[str]]:
        return [list(c) for c in self.details.get("cycles", [])]


@dataclass(eq=False)
class InactiveDependencyError(PlanningError):
    """Instância ativa depende de um produtor inativo."""

    @property
    def violations(self) -> List[Dict[str, str]]:
        return [dict(v) for v in self.details.get("violations", [])]

    @property
    def instances(self) -> List[str]:
        return [v["instance"] for v in self.violations]


# ---------------------------------------------------------------------------
# Execução / outputs
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ExecutionError(DeployflowException):
    """Falha do Deployer (ou da resolução de parâmetros) em uma instância.

    `outputs` preserva os outputs já publicados por instâncias concluídas e
    `results` o resultado de cada instância processada até o cancelamento.
    """

    instance: str = ""
    cause: Optional[BaseException] = None
    outputs: Any = None
    results: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class OutputContractError(DeployflowException):
    """Outputs retornados pelo Deployer não satisfazem os OutputSpecs."""


@dataclass(eq=False)
class UnresolvedOutputError(DeployflowException):
    """Fonte selecionada nunca foi executada (condição falsa, sem fallback)."""

    @property
    def instance(self) -> str:
        return self.details.get("instance", "")
